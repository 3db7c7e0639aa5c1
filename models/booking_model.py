from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class BookingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    patient: str  # patient email, part of the booking key
    patient_name: str = Field(alias="patientName")
    treatment: str  # must match a service name
    date: str  # "May 14, 2022"
    slot: str  # "9:30 AM"

    def to_document(self) -> dict:
        document = self.model_dump(by_alias=True)
        document["paid"] = False
        document["transactionId"] = None
        return document


class PaymentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    transaction_id: str = Field(alias="transactionId")
    appointment: Optional[str] = None
