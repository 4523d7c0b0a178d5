"""
Wallet, auto-recharge and notification models for business accounts
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from .database import Base
from .shared.utils import utcnow


class WalletTransaction(Base):
    """Ledger row. Credits are positive, debits negative; balance_after is the running balance"""

    __tablename__ = "wallet_transactions"

    id = Column(Integer, primary_key=True, index=True)
    business_account_id = Column(
        Integer, ForeignKey("business_accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount = Column(Numeric(12, 2), nullable=False)
    balance_after = Column(Numeric(12, 2), nullable=False)
    # credit_added, booking_deduction, refund, admin_adjustment
    transaction_type = Column(String(30), nullable=False, index=True)
    description = Column(Text, nullable=True)
    reference_id = Column(Integer, nullable=True)  # business booking id
    # Provider payment id; unique so webhook retries cannot double credit
    payment_id = Column(String(255), unique=True, nullable=True)
    currency = Column(String(3), default="USD", nullable=False)
    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)

    business_account = relationship("BusinessAccount")


class AdminWalletAuditLog(Base):
    __tablename__ = "admin_wallet_audit_log"

    id = Column(Integer, primary_key=True, index=True)
    business_account_id = Column(
        Integer, ForeignKey("business_accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    admin_profile_id = Column(Integer, ForeignKey("profiles.id"), nullable=True)
    # freeze_wallet, unfreeze_wallet, set_spending_limits, adjust_balance
    action = Column(String(50), nullable=False)
    reason = Column(Text, nullable=True)
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    admin = relationship("Profile")


class AutoRechargeSettings(Base):
    __tablename__ = "auto_recharge_settings"

    id = Column(Integer, primary_key=True, index=True)
    business_account_id = Column(
        Integer, ForeignKey("business_accounts.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    enabled = Column(Boolean, default=False, nullable=False)
    threshold_amount = Column(Numeric(12, 2), default=100, nullable=False)
    recharge_amount = Column(Numeric(12, 2), default=500, nullable=False)
    payment_method_id = Column(String(255), nullable=True)
    max_retries = Column(Integer, default=3, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class AutoRechargeAttempt(Base):
    __tablename__ = "auto_recharge_attempts"

    id = Column(Integer, primary_key=True, index=True)
    business_account_id = Column(
        Integer, ForeignKey("business_accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    trigger_balance = Column(Numeric(12, 2), nullable=False)
    requested_amount = Column(Numeric(12, 2), nullable=False)
    actual_recharged_amount = Column(Numeric(12, 2), nullable=True)
    currency = Column(String(3), default="USD", nullable=False)
    payment_method_id = Column(String(255), nullable=True)
    idempotency_key = Column(String(100), unique=True, nullable=False)
    payment_id = Column(String(255), nullable=True)
    # pending, processing, succeeded, failed, cancelled
    status = Column(String(20), default="pending", nullable=False, index=True)
    retry_count = Column(Integer, default=0, nullable=False)
    max_retries = Column(Integer, default=3, nullable=False)
    error_message = Column(Text, nullable=True)
    wallet_transaction_id = Column(Integer, nullable=True)
    processed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class BusinessNotification(Base):
    """In-app notification shown in the business portal"""

    __tablename__ = "business_notifications"

    id = Column(Integer, primary_key=True, index=True)
    business_account_id = Column(
        Integer, ForeignKey("business_accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    business_user_id = Column(
        Integer, ForeignKey("business_users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category = Column(String(20), nullable=False)  # booking, payment, account, system
    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    link = Column(String(255), nullable=True)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)


class NotificationPreferences(Base):
    __tablename__ = "notification_preferences"

    id = Column(Integer, primary_key=True, index=True)
    business_account_id = Column(
        Integer, ForeignKey("business_accounts.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    email_low_balance = Column(Boolean, default=True, nullable=False)
    email_transactions = Column(Boolean, default=True, nullable=False)
    email_monthly_statements = Column(Boolean, default=True, nullable=False)
    email_booking_updates = Column(Boolean, default=True, nullable=False)
    low_balance_threshold = Column(Numeric(12, 2), default=100, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
