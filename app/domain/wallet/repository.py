"""Wallet repository - Database operations for balances and transactions"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from ...models import BusinessAccount
from ...models_wallet import AdminWalletAuditLog, WalletTransaction


class WalletRepository:
    """Repository for wallet database operations"""

    @staticmethod
    def get_account(db: Session, account_id: int) -> Optional[BusinessAccount]:
        return db.query(BusinessAccount).filter(BusinessAccount.id == account_id).first()

    @staticmethod
    def lock_account(db: Session, account_id: int) -> Optional[BusinessAccount]:
        """SELECT ... FOR UPDATE on the account row (no-op on SQLite)"""
        return (
            db.query(BusinessAccount)
            .filter(BusinessAccount.id == account_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    @staticmethod
    def get_transaction(db: Session, account_id: int, transaction_id: int) -> Optional[WalletTransaction]:
        return (
            db.query(WalletTransaction)
            .filter(
                WalletTransaction.id == transaction_id,
                WalletTransaction.business_account_id == account_id,
            )
            .first()
        )

    @staticmethod
    def get_by_payment_id(db: Session, payment_id: str) -> Optional[WalletTransaction]:
        return db.query(WalletTransaction).filter(WalletTransaction.payment_id == payment_id).first()

    @staticmethod
    def spend_since(db: Session, account_id: int, since: datetime) -> Decimal:
        """Sum of |negative amounts| since the given instant"""
        total = (
            db.query(func.coalesce(func.sum(WalletTransaction.amount), 0))
            .filter(
                WalletTransaction.business_account_id == account_id,
                WalletTransaction.amount < 0,
                WalletTransaction.created_at >= since,
            )
            .scalar()
        )
        return -Decimal(str(total or 0))

    @staticmethod
    def filtered_query(
        db: Session,
        account_id: int,
        transaction_type: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> Query:
        query = db.query(WalletTransaction).filter(WalletTransaction.business_account_id == account_id)
        if transaction_type:
            query = query.filter(WalletTransaction.transaction_type == transaction_type)
        if date_from:
            query = query.filter(WalletTransaction.created_at >= date_from)
        if date_to:
            query = query.filter(WalletTransaction.created_at <= date_to)
        return query

    @staticmethod
    def recent_transactions(db: Session, account_id: int, limit: int = 10) -> list[WalletTransaction]:
        return (
            db.query(WalletTransaction)
            .filter(WalletTransaction.business_account_id == account_id)
            .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def transactions_between(db: Session, account_id: int, start: datetime, end: datetime) -> list[WalletTransaction]:
        return (
            db.query(WalletTransaction)
            .filter(
                WalletTransaction.business_account_id == account_id,
                WalletTransaction.created_at >= start,
                WalletTransaction.created_at < end,
            )
            .order_by(WalletTransaction.created_at, WalletTransaction.id)
            .all()
        )

    @staticmethod
    def last_transaction_before(db: Session, account_id: int, before: datetime) -> Optional[WalletTransaction]:
        return (
            db.query(WalletTransaction)
            .filter(
                WalletTransaction.business_account_id == account_id,
                WalletTransaction.created_at < before,
            )
            .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
            .first()
        )

    @staticmethod
    def totals_by_type(db: Session, account_id: int, since: datetime) -> list[tuple[str, Decimal, int]]:
        return (
            db.query(
                WalletTransaction.transaction_type,
                func.sum(WalletTransaction.amount),
                func.count(WalletTransaction.id),
            )
            .filter(
                WalletTransaction.business_account_id == account_id,
                WalletTransaction.created_at >= since,
            )
            .group_by(WalletTransaction.transaction_type)
            .all()
        )

    @staticmethod
    def add_audit(db: Session, **fields) -> AdminWalletAuditLog:
        entry = AdminWalletAuditLog(**fields)
        db.add(entry)
        return entry

    @staticmethod
    def last_audit(db: Session, account_id: int, action: str) -> Optional[AdminWalletAuditLog]:
        return (
            db.query(AdminWalletAuditLog)
            .filter(
                AdminWalletAuditLog.business_account_id == account_id,
                AdminWalletAuditLog.action == action,
            )
            .order_by(AdminWalletAuditLog.created_at.desc(), AdminWalletAuditLog.id.desc())
            .first()
        )
