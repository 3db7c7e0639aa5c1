from typing import Any, Dict, Iterable, List, Optional

DEFAULT_DATE = "May 14, 2022"


def resolve_date(date: Optional[str], default: str = DEFAULT_DATE) -> str:
    """Return the requested date, or the fallback day when none was given."""
    return date if date else default


def compute_availability(
    date: str,
    services: Iterable[Dict[str, Any]],
    bookings: Iterable[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """
    Narrow each service's slots to the ones nobody has booked on ``date``.

    ``bookings`` must already be limited to that date; no date filtering
    happens here. Treatment names and slot labels are compared as exact
    strings. The returned services are copies in catalog order, and the
    input documents are left untouched.
    """
    bookings = list(bookings)
    available = []
    for service in services:
        taken = {
            booking.get("slot")
            for booking in bookings
            if booking.get("treatment") == service.get("name")
        }
        slots = [slot for slot in service.get("slots") or [] if slot not in taken]
        available.append({**service, "slots": slots})
    return available
