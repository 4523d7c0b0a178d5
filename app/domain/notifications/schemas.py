"""Notification preference schemas"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class PreferencesUpdate(BaseModel):
    email_low_balance: Optional[bool] = None
    email_transactions: Optional[bool] = None
    email_monthly_statements: Optional[bool] = None
    email_booking_updates: Optional[bool] = None
    low_balance_threshold: Optional[Decimal] = Field(None, ge=0, le=1000000)
