from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional


class UserRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    email: Optional[EmailStr] = None


class DoctorRequest(BaseModel):
    name: str
    email: EmailStr
    specialty: str
    img: Optional[str] = None


class PaymentIntentRequest(BaseModel):
    price: float = Field(gt=0)
