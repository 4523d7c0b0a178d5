"""Booking domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.utils import utcnow
from ...shared.validators import to_naive_utc, validate_email, validate_length, validate_phone
from ..pricing.schemas import AddonSelection


class BookingCreateBase(BaseModel):
    customer_name: str
    customer_email: str
    customer_phone: str
    from_location_id: int
    to_location_id: int
    pickup_address: Optional[str] = None
    dropoff_address: Optional[str] = None
    pickup_datetime: datetime
    passenger_count: int = Field(1, ge=1, le=20)
    luggage_count: int = Field(0, ge=0, le=50)
    vehicle_type_id: int
    addons: list[AddonSelection] = []
    customer_notes: Optional[str] = None

    @field_validator("customer_name")
    @classmethod
    def check_name(cls, v):
        return validate_length(v, "Customer name", 2, 100)

    @field_validator("customer_email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("customer_phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("pickup_address", "dropoff_address")
    @classmethod
    def check_address(cls, v):
        return validate_length(v, "Address", 0, 500)

    @field_validator("customer_notes")
    @classmethod
    def check_notes(cls, v):
        return validate_length(v, "Notes", 0, 500)

    @field_validator("pickup_datetime")
    @classmethod
    def check_pickup(cls, v):
        v = to_naive_utc(v)
        if v <= utcnow():
            raise ValueError("Pickup time must be in the future")
        return v

    @model_validator(mode="after")
    def check_route(self):
        if self.from_location_id == self.to_location_id:
            raise ValueError("Pickup and drop-off locations must differ")
        return self


class BusinessBookingCreate(BookingCreateBase):
    reference_number: Optional[str] = None

    @field_validator("reference_number")
    @classmethod
    def check_reference(cls, v):
        return validate_length(v, "Reference number", 0, 50)


class CustomerBookingCreate(BookingCreateBase):
    pass


class CancelBookingRequest(BaseModel):
    reason: str

    @field_validator("reason")
    @classmethod
    def check_reason(cls, v):
        return validate_length(v, "Cancellation reason", 10, 500)


class ModifyDatetimeRequest(BaseModel):
    new_pickup_datetime: datetime
    reason: Optional[str] = None

    @field_validator("new_pickup_datetime")
    @classmethod
    def normalize(cls, v):
        return to_naive_utc(v)

    @field_validator("reason")
    @classmethod
    def check_reason(cls, v):
        return validate_length(v, "Reason", 0, 500)
