"""In-app notification queries"""

from typing import Optional

from sqlalchemy.orm import Query, Session

from ...models_wallet import BusinessNotification


class NotificationRepository:
    @staticmethod
    def account_query(db: Session, account_id: int, unread_only: bool = False) -> Query:
        query = db.query(BusinessNotification).filter(
            BusinessNotification.business_account_id == account_id
        )
        if unread_only:
            query = query.filter(BusinessNotification.read_at.is_(None))
        return query

    @staticmethod
    def get(db: Session, account_id: int, notification_id: int) -> Optional[BusinessNotification]:
        return (
            db.query(BusinessNotification)
            .filter(
                BusinessNotification.id == notification_id,
                BusinessNotification.business_account_id == account_id,
            )
            .first()
        )
