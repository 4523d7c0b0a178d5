"""
Unified Notification Service
Creates in-app business notifications and queues the matching emails so both
channels fire from the same event. Emails are sent after the request commits.
"""

import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ..models import BusinessAccount, BusinessUser
from ..models_wallet import BusinessNotification, NotificationPreferences

logger = logging.getLogger(__name__)


def get_or_create_preferences(db: Session, business_account_id: int) -> NotificationPreferences:
    prefs = (
        db.query(NotificationPreferences)
        .filter(NotificationPreferences.business_account_id == business_account_id)
        .first()
    )
    if prefs is None:
        prefs = NotificationPreferences(
            business_account_id=business_account_id,
            email_low_balance=True,
            email_transactions=True,
            email_monthly_statements=True,
            email_booking_updates=True,
            low_balance_threshold=100,
        )
        db.add(prefs)
        db.flush()
    return prefs


def get_owner(db: Session, business_account_id: int) -> Optional[BusinessUser]:
    return (
        db.query(BusinessUser)
        .filter(
            BusinessUser.business_account_id == business_account_id,
            BusinessUser.role == "owner",
            BusinessUser.is_active.is_(True),
        )
        .order_by(BusinessUser.id)
        .first()
    )


class Notifier:
    """
    Collects notifications for one unit of work.

    In-app rows are added to the caller's session (committed with it);
    emails are queued in `outbox` and sent by `flush()` once the work is done.
    """

    def __init__(self, db: Session):
        self.db = db
        self.outbox: list[tuple[Callable, tuple, dict]] = []

    def in_app(
        self,
        account: BusinessAccount,
        category: str,
        type: str,
        title: str,
        message: str,
        data: Optional[dict] = None,
        link: Optional[str] = None,
    ) -> Optional[BusinessNotification]:
        """Notify the account owner in the portal"""
        owner = get_owner(self.db, account.id)
        if not owner:
            logger.warning(f"⚠️ No owner for business {account.id}, skipping {type} notification")
            return None

        notification = BusinessNotification(
            business_account_id=account.id,
            business_user_id=owner.id,
            category=category,
            type=type,
            title=title,
            message=message,
            data=data or {},
            link=link,
        )
        self.db.add(notification)
        logger.debug(f"🔔 Queued {type} notification for business {account.id}")
        return notification

    def email(self, func: Callable, *args, **kwargs):
        self.outbox.append((func, args, kwargs))

    def email_owner(self, account: BusinessAccount, func: Callable, *args, **kwargs):
        """Queue an email to the owner (falls back to the account email)"""
        owner = get_owner(self.db, account.id)
        to = owner.email if owner else account.business_email
        self.email(func, to, *args, **kwargs)

    async def flush(self) -> dict:
        """Send queued emails. Failures are logged, never raised"""
        result = {"sent": 0, "failed": 0}
        queued, self.outbox = self.outbox, []
        for func, args, kwargs in queued:
            try:
                await func(*args, **kwargs)
                result["sent"] += 1
            except Exception as e:
                result["failed"] += 1
                logger.error(f"❌ Failed to send {func.__name__}: {e}")
        if queued:
            logger.info(f"📧 Notification emails: {result['sent']} sent, {result['failed']} failed")
        return result
