import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import DuplicateKeyError

from models.booking_model import BookingRequest


@dataclass
class AdmissionResult:
    accepted: bool
    existing: Optional[Dict[str, Any]] = None
    stored: Optional[Dict[str, Any]] = None


def _object_id(booking_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(booking_id)
    except (InvalidId, TypeError):
        return None


class BookingStore:
    """Exact-match queries over the bookings collection."""

    def __init__(self, collection):
        self.collection = collection

    def find_duplicate(self, treatment: str, date: str, patient: str) -> Optional[Dict[str, Any]]:
        return self.collection.find_one({"treatment": treatment, "date": date, "patient": patient})

    def find_by_date(self, date: str) -> List[Dict[str, Any]]:
        return list(self.collection.find({"date": date}))

    def find_slot_holder(self, treatment: str, date: str, slot: str) -> Optional[Dict[str, Any]]:
        return self.collection.find_one({"treatment": treatment, "date": date, "slot": slot})

    def insert(self, document: Dict[str, Any]) -> Dict[str, Any]:
        stored = dict(document)
        result = self.collection.insert_one(stored)
        stored["_id"] = result.inserted_id
        return stored

    def get(self, booking_id: str) -> Optional[Dict[str, Any]]:
        oid = _object_id(booking_id)
        if oid is None:
            return None
        return self.collection.find_one({"_id": oid})

    def list_for_patient(self, patient: str) -> List[Dict[str, Any]]:
        return list(self.collection.find({"patient": patient}))

    def record_payment(self, booking_id: str, payment: Dict[str, Any], payments_collection) -> bool:
        """Store the payment and flag the booking as paid.

        Returns False when no booking has that id; nothing is written then.
        """
        oid = _object_id(booking_id)
        if oid is None or self.collection.find_one({"_id": oid}) is None:
            return False
        payments_collection.insert_one(dict(payment))
        self.collection.update_one(
            {"_id": oid},
            {"$set": {"paid": True, "transactionId": payment.get("transactionId")}},
        )
        return True


def admit_booking(candidate: BookingRequest, store: BookingStore, strict_slots: bool = False) -> AdmissionResult:
    """
    Accept a booking unless the same patient already booked this treatment on this date.

    The pre-check covers the common retried-submission case; the unique index on
    (treatment, date, patient) catches concurrent twins, whose DuplicateKeyError is
    reported as a rejection too. Any other store error propagates to the caller.

    With ``strict_slots`` a candidate is also rejected when another booking already
    holds its slot for the same treatment and date. No index backs that check, so two
    concurrent submissions by different patients for one slot can both be accepted.
    """
    existing = store.find_duplicate(candidate.treatment, candidate.date, candidate.patient)
    if existing is not None:
        logging.info(f"Duplicate booking for {candidate.patient}: {candidate.treatment} on {candidate.date}")
        return AdmissionResult(accepted=False, existing=existing)

    if strict_slots:
        holder = store.find_slot_holder(candidate.treatment, candidate.date, candidate.slot)
        if holder is not None:
            logging.info(f"Slot {candidate.slot} for {candidate.treatment} on {candidate.date} already taken")
            return AdmissionResult(accepted=False, existing=holder)

    try:
        stored = store.insert(candidate.to_document())
    except DuplicateKeyError:
        existing = store.find_duplicate(candidate.treatment, candidate.date, candidate.patient)
        logging.warning(f"Concurrent duplicate booking for {candidate.patient} rejected by index")
        return AdmissionResult(accepted=False, existing=existing)

    return AdmissionResult(accepted=True, stored=stored)
