"""Availability schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.validators import to_naive_utc

ResourceType = Literal["vehicle", "driver"]


class UnavailabilityCreate(BaseModel):
    resource_type: ResourceType
    resource_id: int
    start_datetime: datetime
    end_datetime: datetime
    reason: Optional[str] = Field(None, max_length=500)

    @field_validator("start_datetime", "end_datetime")
    @classmethod
    def normalize(cls, v):
        return to_naive_utc(v)

    @model_validator(mode="after")
    def check_window(self):
        if self.end_datetime <= self.start_datetime:
            raise ValueError("End time must be after start time")
        return self
