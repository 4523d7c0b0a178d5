"""Assignment schemas"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

BookingType = Literal["customer", "business"]


class AssignVendorRequest(BaseModel):
    vendor_id: int
    notes: Optional[str] = Field(None, max_length=1000)


class AcceptAssignmentRequest(BaseModel):
    driver_id: int
    vehicle_id: int


class RejectAssignmentRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)
