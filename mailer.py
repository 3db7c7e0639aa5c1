import logging
from typing import Any, Dict

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from config import Settings


def build_appointment_email(booking: Dict[str, Any], from_email: str) -> Mail:
    patient_name = booking.get("patientName")
    treatment = booking.get("treatment")
    date = booking.get("date")
    slot = booking.get("slot")
    subject = f"Your Appointment for {treatment} is on {date} at {slot} is confirmed"
    html_content = f"""
    <html>
        <body>
            <p>Hello {patient_name}</p>
            <div>Your appointment for {treatment} is confirmed.</div>
            <p>Looking forward to seeing you on {date} at {slot}</p>
        </body>
    </html>
    """
    return Mail(
        from_email=from_email,
        to_emails=booking.get("patient"),
        subject=subject,
        plain_text_content=subject,
        html_content=html_content,
    )


def send_appointment_email(booking: Dict[str, Any], settings: Settings) -> bool:
    """Send the booking confirmation. Failures are logged, never raised."""
    if not settings.sendgrid_api_key or not settings.from_email:
        logging.info("SendGrid not configured, skipping confirmation email")
        return False
    try:
        message = build_appointment_email(booking, settings.from_email)
        response = SendGridAPIClient(settings.sendgrid_api_key).send(message)
        logging.info(f"Confirmation email sent to {booking.get('patient')}: {response.status_code}")
        return True
    except Exception as e:
        logging.error(f"SendGrid Error: {str(e)}")
        return False
