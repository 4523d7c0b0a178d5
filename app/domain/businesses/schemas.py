"""Business account schemas"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...services.currency import is_supported
from ...shared.validators import (
    validate_email,
    validate_length,
    validate_phone,
    validate_theme_config,
)


class BusinessSignup(BaseModel):
    business_name: str
    business_email: str
    business_phone: str
    address: Optional[str] = Field(None, max_length=500)
    full_name: Optional[str] = Field(None, max_length=255)
    preferred_currency: str = "USD"

    @field_validator("business_name")
    @classmethod
    def check_name(cls, v):
        return validate_length(v, "Business name", 2, 100)

    @field_validator("business_email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("business_phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("preferred_currency")
    @classmethod
    def check_currency(cls, v):
        if not is_supported(v):
            raise ValueError(f"Unsupported currency: {v}")
        return v.upper()


class BrandingUpdate(BaseModel):
    brand_name: Optional[str] = None
    logo_url: Optional[str] = Field(None, max_length=500)
    theme_config: Optional[dict] = None

    @field_validator("brand_name")
    @classmethod
    def check_brand_name(cls, v):
        return validate_length(v, "Brand name", 1, 100)

    @field_validator("logo_url")
    @classmethod
    def check_logo_url(cls, v):
        if v and not v.startswith(("https://", "http://")):
            raise ValueError("Logo URL must be an http(s) URL")
        return v

    @field_validator("theme_config")
    @classmethod
    def check_theme(cls, v):
        return validate_theme_config(v)


class CurrencyUpdate(BaseModel):
    currency: str

    @field_validator("currency")
    @classmethod
    def check_currency(cls, v):
        if not is_supported(v):
            raise ValueError(f"Unsupported currency: {v}")
        return v.upper()


class StatusReason(BaseModel):
    reason: str

    @field_validator("reason")
    @classmethod
    def check_reason(cls, v):
        return validate_length(v, "Reason", 5, 500)


BusinessAction = Literal["approve", "reject", "suspend", "reactivate"]


class BulkBusinessAction(BaseModel):
    business_ids: list[int] = Field(..., min_length=1, max_length=100)
    action: BusinessAction
    reason: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def reason_required(self):
        if self.action in ("reject", "suspend") and not (self.reason and self.reason.strip()):
            raise ValueError(f"A reason is required to {self.action} businesses")
        return self
