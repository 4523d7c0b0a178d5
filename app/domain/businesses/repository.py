"""Business account queries"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session

from ...models import BusinessAccount, BusinessUser


class BusinessRepository:
    @staticmethod
    def get_account(db: Session, account_id: int) -> Optional[BusinessAccount]:
        return db.query(BusinessAccount).filter(BusinessAccount.id == account_id).first()

    @staticmethod
    def get_user_by_auth_id(db: Session, auth_user_id: str) -> Optional[BusinessUser]:
        return db.query(BusinessUser).filter(BusinessUser.auth_user_id == auth_user_id).first()

    @staticmethod
    def subdomain_taken(db: Session, subdomain: str) -> bool:
        return (
            db.query(BusinessAccount.id).filter(BusinessAccount.subdomain == subdomain).first()
            is not None
        )

    @staticmethod
    def accounts_query(db: Session, status: Optional[str] = None, search: Optional[str] = None) -> Query:
        query = db.query(BusinessAccount)
        if status:
            query = query.filter(BusinessAccount.status == status)
        if search:
            term = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    BusinessAccount.business_name.ilike(term),
                    BusinessAccount.business_email.ilike(term),
                    BusinessAccount.subdomain.ilike(term),
                )
            )
        return query

    @staticmethod
    def account_users(db: Session, account_id: int) -> list[BusinessUser]:
        return (
            db.query(BusinessUser)
            .filter(BusinessUser.business_account_id == account_id)
            .order_by(BusinessUser.id)
            .all()
        )
