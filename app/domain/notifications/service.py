"""Notification service - Business portal inbox and email preferences"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import BusinessUser
from ...models_wallet import BusinessNotification, NotificationPreferences
from ...services.notification_service import get_or_create_preferences
from ...shared.utils import pagination_meta, pagination_params, to_money, utcnow
from .repository import NotificationRepository
from .schemas import PreferencesUpdate

logger = logging.getLogger(__name__)


def serialize_notification(n: BusinessNotification) -> dict:
    return {
        "id": n.id,
        "category": n.category,
        "type": n.type,
        "title": n.title,
        "message": n.message,
        "data": n.data or {},
        "link": n.link,
        "is_read": n.read_at is not None,
        "read_at": n.read_at.isoformat() if n.read_at else None,
        "created_at": n.created_at.isoformat() if n.created_at else None,
    }


def serialize_preferences(p: NotificationPreferences) -> dict:
    return {
        "email_low_balance": p.email_low_balance,
        "email_transactions": p.email_transactions,
        "email_monthly_statements": p.email_monthly_statements,
        "email_booking_updates": p.email_booking_updates,
        "low_balance_threshold": float(to_money(p.low_balance_threshold)),
    }


class NotificationService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = NotificationRepository()

    def list_notifications(
        self, business_user: BusinessUser, unread_only: bool = False, page: int = 1, limit: int = 20
    ) -> dict:
        page, limit, offset = pagination_params(page, limit)
        query = self.repo.account_query(self.db, business_user.business_account_id, unread_only)
        total = query.count()
        rows = (
            query.order_by(BusinessNotification.created_at.desc(), BusinessNotification.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return {
            "notifications": [serialize_notification(n) for n in rows],
            "unread_count": self.unread_count(business_user),
            **pagination_meta(page, limit, total),
        }

    def unread_count(self, business_user: BusinessUser) -> int:
        return self.repo.account_query(self.db, business_user.business_account_id, unread_only=True).count()

    def mark_read(self, business_user: BusinessUser, notification_id: int) -> dict:
        notification = self.repo.get(self.db, business_user.business_account_id, notification_id)
        if not notification:
            raise HTTPException(status_code=404, detail="Notification not found")
        if notification.read_at is None:
            notification.read_at = utcnow()
            self.db.commit()
            self.db.refresh(notification)
        return serialize_notification(notification)

    def mark_all_read(self, business_user: BusinessUser) -> dict:
        updated = self.repo.account_query(
            self.db, business_user.business_account_id, unread_only=True
        ).update({BusinessNotification.read_at: utcnow()}, synchronize_session=False)
        self.db.commit()
        logger.info(f"🔔 Marked {updated} notifications read for business {business_user.business_account_id}")
        return {"updated": updated}

    def get_preferences(self, business_user: BusinessUser) -> dict:
        prefs = get_or_create_preferences(self.db, business_user.business_account_id)
        self.db.commit()
        return serialize_preferences(prefs)

    def update_preferences(self, owner: BusinessUser, data: PreferencesUpdate) -> dict:
        prefs = get_or_create_preferences(self.db, owner.business_account_id)
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(prefs, field, value)
        self.db.commit()
        self.db.refresh(prefs)
        return {
            "message": "Notification preferences updated successfully",
            "preferences": serialize_preferences(prefs),
        }
