from unittest.mock import MagicMock, patch

from config import Settings
from mailer import build_appointment_email, send_appointment_email

BOOKING = {
    "patient": "a@x.com",
    "patientName": "Alice",
    "treatment": "Cleaning",
    "date": "May 14, 2022",
    "slot": "9:00 AM",
}


def test_email_mentions_appointment():
    message = build_appointment_email(BOOKING, "clinic@x.com").get()

    assert message["subject"] == "Your Appointment for Cleaning is on May 14, 2022 at 9:00 AM is confirmed"
    assert message["personalizations"][0]["to"][0]["email"] == "a@x.com"


def test_skipped_without_api_key():
    with patch("mailer.SendGridAPIClient") as client:
        assert send_appointment_email(BOOKING, Settings()) is False

    client.assert_not_called()


def test_sent_with_api_key():
    settings = Settings(sendgrid_api_key="SG.key", from_email="clinic@x.com")
    with patch("mailer.SendGridAPIClient") as client:
        client.return_value.send.return_value = MagicMock(status_code=202)
        assert send_appointment_email(BOOKING, settings) is True

    client.assert_called_once_with("SG.key")


def test_delivery_failure_is_logged_not_raised(caplog):
    settings = Settings(sendgrid_api_key="SG.key", from_email="clinic@x.com")
    with patch("mailer.SendGridAPIClient") as client:
        client.return_value.send.side_effect = RuntimeError("boom")
        assert send_appointment_email(BOOKING, settings) is False

    assert "SendGrid Error: boom" in caplog.text
