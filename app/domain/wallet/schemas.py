"""Wallet domain schemas - Pydantic models for validation"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...services.currency import is_supported
from ...shared.validators import validate_length

MIN_RECHARGE = Decimal("10")
MAX_RECHARGE = Decimal("10000")


class RechargeRequest(BaseModel):
    """Manual wallet top-up through hosted checkout"""

    amount: Decimal = Field(..., ge=MIN_RECHARGE, le=MAX_RECHARGE)
    currency: Optional[str] = None

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v):
        if v is None:
            return v
        if not is_supported(v):
            raise ValueError(f"Unsupported currency: {v}")
        return v.upper()


class RechargeResponse(BaseModel):
    checkout_url: str
    session_id: str
    amount: float
    currency: str
    credit_amount: float
    wallet_currency: str


class AutoRechargeSettingsUpdate(BaseModel):
    enabled: bool
    threshold_amount: Decimal = Field(..., gt=0)
    recharge_amount: Decimal = Field(..., ge=MIN_RECHARGE, le=MAX_RECHARGE)
    payment_method_id: Optional[str] = Field(None, max_length=255)
    max_retries: int = Field(3, ge=1, le=10)

    @model_validator(mode="after")
    def require_payment_method(self):
        if self.enabled and not self.payment_method_id:
            raise ValueError("A saved payment method is required to enable auto-recharge")
        return self


# ============================================================================
# ADMIN
# ============================================================================


class FreezeRequest(BaseModel):
    reason: str

    @field_validator("reason")
    @classmethod
    def check_reason(cls, v):
        return validate_length(v, "Reason", 10, 500)


class UnfreezeRequest(BaseModel):
    reason: Optional[str] = None

    @field_validator("reason")
    @classmethod
    def check_reason(cls, v):
        return validate_length(v, "Reason", 0, 500)


class SpendingLimitsUpdate(BaseModel):
    enabled: bool = True
    max_transaction_amount: Optional[Decimal] = Field(None, gt=0)
    max_daily_spend: Optional[Decimal] = Field(None, gt=0)
    max_monthly_spend: Optional[Decimal] = Field(None, gt=0)
    reason: str = "Updated spending limits"

    @field_validator("reason")
    @classmethod
    def check_reason(cls, v):
        return validate_length(v, "Reason", 5, 500)


class BalanceAdjustment(BaseModel):
    amount: Decimal
    reason: str

    @field_validator("amount")
    @classmethod
    def non_zero(cls, v):
        if v == 0:
            raise ValueError("Adjustment amount cannot be zero")
        return v

    @field_validator("reason")
    @classmethod
    def check_reason(cls, v):
        return validate_length(v, "Reason", 10, 200)
