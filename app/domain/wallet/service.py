"""Wallet service - Business logic for the prepaid business wallet"""

import csv
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from io import StringIO
from typing import Optional

from fastapi import HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ...config import FRONTEND_URL
from ...email_service import (
    send_low_balance_email,
    send_spending_limit_reached_email,
    send_transaction_completed_email,
    send_wallet_frozen_email,
    send_wallet_unfrozen_email,
)
from ...models import BusinessAccount, BusinessUser, Profile
from ...models_wallet import WalletTransaction
from ...services.currency import convert, format_with_symbol, load_rates
from ...services.notification_service import Notifier, get_or_create_preferences
from ...services.wallet_pdf import TRANSACTION_LABELS, WalletPDFGenerator
from ...shared.utils import (
    money_or_none,
    pagination_meta,
    pagination_params,
    start_of_day,
    start_of_month,
    to_money,
    utcnow,
)
from ..billing.dodo_service import PaymentGatewayError, dodo_service
from .exceptions import (
    InsufficientBalanceError,
    SpendingLimitExceededError,
    WalletError,
    WalletFrozenError,
    WalletStateError,
)
from .repository import WalletRepository
from .schemas import BalanceAdjustment, SpendingLimitsUpdate

logger = logging.getLogger(__name__)

CREDIT_TYPES = {"credit_added", "refund", "admin_adjustment"}
RECHARGE_DESCRIPTION = "Wallet recharge via Dodo Payments"


def serialize_transaction(t: WalletTransaction) -> dict:
    return {
        "id": t.id,
        "amount": float(t.amount),
        "balance_after": float(t.balance_after),
        "transaction_type": t.transaction_type,
        "label": TRANSACTION_LABELS.get(t.transaction_type, t.transaction_type),
        "description": t.description,
        "reference_id": t.reference_id,
        "payment_id": t.payment_id,
        "currency": t.currency,
        "created_by": t.created_by,
        "created_at": t.created_at.isoformat() if t.created_at else None,
    }


class WalletService:
    """
    Service layer for wallet business logic.

    `apply_*` methods change the ledger inside the caller's transaction and
    never commit; the public methods wrap them in a single commit.
    """

    def __init__(self, db: Session, notifier: Optional[Notifier] = None):
        self.db = db
        self.repo = WalletRepository()
        self.notifier = notifier or Notifier(db)

    # ========================================================================
    # LEDGER
    # ========================================================================

    def _lock(self, account_id: int) -> BusinessAccount:
        account = self.repo.lock_account(self.db, account_id)
        if not account:
            raise HTTPException(status_code=404, detail="Business account not found")
        return account

    def _record(
        self,
        account: BusinessAccount,
        amount: Decimal,
        transaction_type: str,
        description: str,
        created_by: Optional[str],
        reference_id: Optional[int] = None,
        payment_id: Optional[str] = None,
    ) -> WalletTransaction:
        account.wallet_balance = to_money(to_money(account.wallet_balance) + amount)
        transaction = WalletTransaction(
            business_account_id=account.id,
            amount=amount,
            balance_after=account.wallet_balance,
            transaction_type=transaction_type,
            description=description,
            reference_id=reference_id,
            payment_id=payment_id,
            currency=account.preferred_currency,
            created_by=created_by,
            created_at=utcnow(),
        )
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def apply_credit(
        self,
        account_id: int,
        amount,
        transaction_type: str,
        description: str,
        created_by: Optional[str] = None,
        reference_id: Optional[int] = None,
        payment_id: Optional[str] = None,
    ) -> tuple[WalletTransaction, bool]:
        """Returns (transaction, created). Frozen wallets still accept credits"""
        amount = to_money(amount)
        if amount <= 0:
            raise WalletStateError("Credit amount must be positive", code="invalid_amount", status_code=422)
        if transaction_type not in CREDIT_TYPES:
            raise WalletStateError(f"Invalid credit type: {transaction_type}", code="invalid_type", status_code=422)

        account = self._lock(account_id)
        # Checked under the row lock so concurrent webhook retries serialize
        if payment_id:
            existing = self.repo.get_by_payment_id(self.db, payment_id)
            if existing:
                logger.info(f"🔁 Payment {payment_id} already credited as transaction {existing.id}")
                return existing, False

        transaction = self._record(
            account, amount, transaction_type, description, created_by, reference_id, payment_id
        )
        logger.info(
            f"💰 Credited {amount} {account.preferred_currency} to business {account_id} "
            f"({transaction_type}), balance {account.wallet_balance}"
        )
        return transaction, True

    def apply_debit(
        self,
        account_id: int,
        amount,
        description: str,
        created_by: Optional[str] = None,
        reference_id: Optional[int] = None,
    ) -> WalletTransaction:
        """Booking payment. Checks account state, frozen flag, limits, then balance"""
        amount = to_money(amount)
        if amount <= 0:
            raise WalletStateError("Debit amount must be positive", code="invalid_amount", status_code=422)

        account = self._lock(account_id)
        if account.status != "active":
            raise WalletStateError(
                f"Business account is {account.status}", code=f"business_{account.status}", status_code=403
            )
        if account.wallet_frozen:
            raise WalletFrozenError(account.wallet_frozen_reason)
        if account.spending_limits_enabled:
            self._check_limits(account, amount)

        balance_before = to_money(account.wallet_balance)
        if balance_before < amount:
            raise InsufficientBalanceError(required=amount, available=balance_before)

        transaction = self._record(
            account, -amount, "booking_deduction", description, created_by, reference_id
        )
        logger.info(f"💸 Debited {amount} from business {account_id}, balance {account.wallet_balance}")
        self._after_debit(account, balance_before)
        return transaction

    def _check_limits(self, account: BusinessAccount, amount: Decimal):
        if account.max_transaction_amount is not None and amount > account.max_transaction_amount:
            limit = to_money(account.max_transaction_amount)
            raise SpendingLimitExceededError("transaction", limit, amount, limit)

        now = utcnow()
        windows = (
            ("daily", account.max_daily_spend, start_of_day(now)),
            ("monthly", account.max_monthly_spend, start_of_month(now)),
        )
        for limit_type, limit, since in windows:
            if limit is None:
                continue
            spent = self.repo.spend_since(self.db, account.id, since)
            limit = to_money(limit)
            if spent + amount > limit:
                remaining = max(Decimal("0.00"), limit - spent)
                raise SpendingLimitExceededError(limit_type, limit, amount, to_money(remaining))

    def _after_debit(self, account: BusinessAccount, balance_before: Decimal):
        """Low-balance alert on threshold crossing, then auto-recharge evaluation.

        Runs before the caller commits: a queued recharge attempt is committed
        together with the debit and rolled back with it.
        """
        from .auto_recharge import AutoRechargeService

        prefs = get_or_create_preferences(self.db, account.id)
        threshold = to_money(prefs.low_balance_threshold)
        balance = to_money(account.wallet_balance)
        if balance < threshold <= balance_before:
            currency = account.preferred_currency
            self.notifier.in_app(
                account,
                "payment",
                "low_balance",
                "Low wallet balance",
                f"Your wallet balance is {format_with_symbol(balance, currency)}, "
                f"below your alert threshold of {format_with_symbol(threshold, currency)}.",
                data={"balance": float(balance), "threshold": float(threshold)},
                link="/business/wallet",
            )
            if prefs.email_low_balance:
                self.notifier.email_owner(
                    account,
                    send_low_balance_email,
                    account.business_name,
                    format_with_symbol(balance, currency),
                    format_with_symbol(threshold, currency),
                )

        AutoRechargeService(self.db, self.notifier).maybe_trigger(account)

    def credit(self, account_id: int, amount, transaction_type: str, description: str, **kwargs) -> WalletTransaction:
        try:
            transaction, _ = self.apply_credit(account_id, amount, transaction_type, description, **kwargs)
            self.db.commit()
        except WalletError as e:
            self.db.rollback()
            raise e.to_http() from e
        self.db.refresh(transaction)
        return transaction

    def debit(self, account_id: int, amount, description: str, **kwargs) -> WalletTransaction:
        try:
            transaction = self.apply_debit(account_id, amount, description, **kwargs)
            self.db.commit()
        except WalletError as e:
            self.handle_debit_failure(account_id, e)
            raise e.to_http() from e
        self.db.refresh(transaction)
        return transaction

    def handle_debit_failure(self, account_id: int, error: WalletError):
        """Roll back the failed unit of work; a limit refusal still notifies the owner"""
        self.db.rollback()
        logger.warning(f"⚠️ Debit refused for business {account_id}: {error.code}")
        if not isinstance(error, SpendingLimitExceededError):
            return

        account = self.repo.get_account(self.db, account_id)
        if not account:
            return
        currency = account.preferred_currency
        try:
            self.notifier.in_app(
                account,
                "payment",
                "spending_limit_reached",
                "Spending limit reached",
                f"A payment of {format_with_symbol(error.attempted, currency)} was blocked by your "
                f"{error.limit_type} spending limit of {format_with_symbol(error.limit, currency)}.",
                data={"limit_type": error.limit_type, "limit": float(error.limit), "attempted": float(error.attempted)},
                link="/business/wallet",
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.warning(f"⚠️ Could not store spending limit notification: {e}")
        self.notifier.email_owner(
            account,
            send_spending_limit_reached_email,
            account.business_name,
            error.limit_type,
            format_with_symbol(error.limit, currency),
            format_with_symbol(error.attempted, currency),
        )

    # ========================================================================
    # READ MODELS
    # ========================================================================

    def current_spending(self, account: BusinessAccount) -> dict:
        now = utcnow()
        daily = self.repo.spend_since(self.db, account.id, start_of_day(now))
        monthly = self.repo.spend_since(self.db, account.id, start_of_month(now))

        def remaining(limit, spent):
            if limit is None:
                return None
            return float(max(Decimal("0.00"), to_money(limit) - spent))

        max_txn = account.max_transaction_amount
        return {
            "daily_spent": float(daily),
            "monthly_spent": float(monthly),
            "daily_remaining": remaining(account.max_daily_spend, daily),
            "monthly_remaining": remaining(account.max_monthly_spend, monthly),
            "transaction_limit": money_or_none(max_txn),
        }

    def transaction_statistics(self, account_id: int, days: int = 30) -> dict:
        since = utcnow() - timedelta(days=days)
        rows = self.repo.totals_by_type(self.db, account_id, since)

        credits = debits = Decimal("0.00")
        count = 0
        by_type = {}
        for transaction_type, total, type_count in rows:
            total = to_money(total)
            if total >= 0:
                credits += total
            else:
                debits += -total
            count += type_count
            by_type[transaction_type] = {"total": float(total), "count": type_count}

        return {
            "period_days": days,
            "total_credits": float(credits),
            "total_debits": float(debits),
            "net_change": float(credits - debits),
            "transaction_count": count,
            "by_type": by_type,
        }

    def spending_limits(self, account: BusinessAccount) -> dict:
        return {
            "enabled": account.spending_limits_enabled,
            "max_transaction_amount": money_or_none(account.max_transaction_amount),
            "max_daily_spend": money_or_none(account.max_daily_spend),
            "max_monthly_spend": money_or_none(account.max_monthly_spend),
        }

    def get_wallet_summary(self, account: BusinessAccount) -> dict:
        recent = self.repo.recent_transactions(self.db, account.id, 10)
        return {
            "business_account_id": account.id,
            "balance": float(to_money(account.wallet_balance)),
            "currency": account.preferred_currency,
            "formatted_balance": format_with_symbol(to_money(account.wallet_balance), account.preferred_currency),
            "is_frozen": account.wallet_frozen,
            "frozen_at": account.wallet_frozen_at.isoformat() if account.wallet_frozen_at else None,
            "frozen_reason": account.wallet_frozen_reason,
            "spending_limits": self.spending_limits(account),
            "current_spending": self.current_spending(account),
            "recent_transactions": [serialize_transaction(t) for t in recent],
            "statistics": self.transaction_statistics(account.id, 30),
        }

    def list_transactions(
        self,
        account_id: int,
        transaction_type: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        page, limit, offset = pagination_params(page, limit)
        query = self.repo.filtered_query(self.db, account_id, transaction_type, date_from, date_to)
        total = query.count()
        rows = (
            query.order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return {
            "transactions": [serialize_transaction(t) for t in rows],
            **pagination_meta(page, limit, total),
        }

    def export_transactions_csv(
        self,
        account: BusinessAccount,
        transaction_type: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> StreamingResponse:
        logger.info(f"📊 Wallet CSV export requested for business {account.id}")
        rows = (
            self.repo.filtered_query(self.db, account.id, transaction_type, date_from, date_to)
            .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
            .all()
        )

        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(["ID", "Date", "Type", "Description", "Amount", "Balance After", "Currency", "Reference"])
        for t in rows:
            writer.writerow(
                [
                    t.id,
                    t.created_at.strftime("%Y-%m-%d %H:%M:%S") if t.created_at else "",
                    TRANSACTION_LABELS.get(t.transaction_type, t.transaction_type),
                    t.description or "",
                    f"{t.amount:.2f}",
                    f"{t.balance_after:.2f}",
                    t.currency,
                    t.reference_id or "",
                ]
            )

        output.seek(0)
        filename = f"wallet_transactions_{utcnow().strftime('%Y%m%d_%H%M%S')}.csv"
        logger.info(f"✅ Wallet CSV export: {filename} ({len(rows)} transactions)")
        return StreamingResponse(
            iter([output.getvalue()]),
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    def transaction_invoice_pdf(self, account: BusinessAccount, transaction_id: int) -> tuple[bytes, str]:
        transaction = self.repo.get_transaction(self.db, account.id, transaction_id)
        if not transaction:
            raise HTTPException(status_code=404, detail="Transaction not found")

        reference = None
        if transaction.reference_id:
            from ...models import BusinessBooking

            booking = self.db.query(BusinessBooking).filter(BusinessBooking.id == transaction.reference_id).first()
            reference = booking.booking_number if booking else None

        pdf = WalletPDFGenerator(account).invoice(transaction, reference)
        return pdf, f"invoice_{transaction.id}.pdf"

    def statement_period(self, year: int, month: int) -> tuple[datetime, datetime]:
        if not 1 <= month <= 12 or not 2000 <= year <= 2100:
            raise HTTPException(status_code=400, detail="Invalid statement period")
        start = datetime(year, month, 1)
        end = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
        if start > utcnow():
            raise HTTPException(status_code=400, detail="Statement period has not started yet")
        return start, end

    def monthly_statement(self, account: BusinessAccount, year: int, month: int) -> dict:
        """Opening balance, period transactions and closing balance"""
        start, end = self.statement_period(year, month)
        previous = self.repo.last_transaction_before(self.db, account.id, start)
        opening = to_money(previous.balance_after) if previous else Decimal("0.00")
        transactions = self.repo.transactions_between(self.db, account.id, start, end)
        closing = to_money(transactions[-1].balance_after) if transactions else opening
        return {
            "period_start": start,
            "period_end": end,
            "opening_balance": opening,
            "closing_balance": closing,
            "transactions": transactions,
        }

    def monthly_statement_pdf(self, account: BusinessAccount, year: int, month: int) -> tuple[bytes, str]:
        statement = self.monthly_statement(account, year, month)
        pdf = WalletPDFGenerator(account).statement(
            statement["period_start"],
            statement["period_end"],
            statement["opening_balance"],
            statement["transactions"],
        )
        return pdf, f"wallet_statement_{year}_{month:02d}.pdf"

    # ========================================================================
    # RECHARGE
    # ========================================================================

    async def create_recharge_checkout(self, owner: BusinessUser, amount: Decimal, currency: Optional[str]) -> dict:
        account = owner.business_account
        if account.wallet_frozen:
            raise WalletFrozenError(account.wallet_frozen_reason).to_http()
        if not dodo_service.is_available():
            raise HTTPException(status_code=503, detail="Payments are not configured")

        wallet_currency = account.preferred_currency
        charge_currency = (currency or wallet_currency).upper()
        amount = to_money(amount)
        if charge_currency == wallet_currency:
            credit_amount = amount
        else:
            credit_amount = to_money(
                convert(amount, charge_currency, wallet_currency, load_rates(self.db))["amount"]
            )

        metadata = {
            "type": "wallet_recharge",
            "business_account_id": account.id,
            "amount": credit_amount,
            "currency": wallet_currency,
            "charge_amount": amount,
            "charge_currency": charge_currency,
            "business_user_id": owner.id,
        }
        logger.info(f"💳 Creating recharge checkout for business {account.id}: {amount} {charge_currency}")
        try:
            session = await dodo_service.create_checkout_session(
                amount=amount,
                currency=charge_currency,
                customer_email=owner.email,
                customer_name=owner.full_name or account.business_name,
                return_url=f"{FRONTEND_URL}/business/wallet?recharge=success",
                metadata=metadata,
            )
        except PaymentGatewayError as e:
            raise HTTPException(status_code=502, detail="Could not start checkout with the payment provider") from e

        return {
            "checkout_url": session["checkout_url"],
            "session_id": session["session_id"],
            "amount": float(amount),
            "currency": charge_currency,
            "credit_amount": float(credit_amount),
            "wallet_currency": wallet_currency,
        }

    def record_recharge_payment(self, payment_id: str, metadata: dict) -> Optional[WalletTransaction]:
        """Credit a paid recharge from a provider webhook. Safe to call repeatedly"""
        try:
            account_id = int(metadata["business_account_id"])
            amount = to_money(metadata["amount"])
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            logger.error(f"❌ Recharge payment {payment_id} has invalid metadata: {metadata}")
            raise HTTPException(status_code=400, detail="Invalid recharge metadata") from e

        account = self.repo.get_account(self.db, account_id)
        if not account:
            logger.error(f"❌ Recharge payment {payment_id} for unknown business {account_id}")
            raise HTTPException(status_code=404, detail="Business account not found")

        try:
            transaction, created = self.apply_credit(
                account_id,
                amount,
                "credit_added",
                RECHARGE_DESCRIPTION,
                created_by="webhook",
                payment_id=payment_id,
            )
            if not created:
                return transaction

            self._notify_credit(account, transaction)
            self.db.commit()
        except WalletError as e:
            self.db.rollback()
            raise e.to_http() from e
        return transaction

    def _notify_credit(self, account: BusinessAccount, transaction: WalletTransaction):
        currency = account.preferred_currency
        amount = format_with_symbol(transaction.amount, currency)
        balance = format_with_symbol(transaction.balance_after, currency)
        self.notifier.in_app(
            account,
            "payment",
            "transaction_completed",
            "Wallet recharged",
            f"{amount} was added to your wallet. New balance: {balance}.",
            data={"transaction_id": transaction.id, "amount": float(transaction.amount)},
            link="/business/wallet",
        )
        prefs = get_or_create_preferences(self.db, account.id)
        if prefs.email_transactions:
            self.notifier.email_owner(
                account, send_transaction_completed_email, account.business_name, amount, balance, transaction.description
            )

    # ========================================================================
    # ADMIN CONTROLS
    # ========================================================================

    def _admin_account(self, account_id: int) -> BusinessAccount:
        return self._lock(account_id)

    def freeze(self, account_id: int, admin: Profile, reason: str) -> dict:
        account = self._admin_account(account_id)
        if account.wallet_frozen:
            raise HTTPException(status_code=409, detail="Wallet is already frozen")

        account.wallet_frozen = True
        account.wallet_frozen_at = utcnow()
        account.wallet_frozen_reason = reason
        account.wallet_frozen_by = admin.id
        self.repo.add_audit(
            self.db,
            business_account_id=account.id,
            admin_profile_id=admin.id,
            action="freeze_wallet",
            reason=reason,
            old_values={"wallet_frozen": False},
            new_values={"wallet_frozen": True},
        )
        self.notifier.in_app(
            account,
            "payment",
            "wallet_frozen",
            "Wallet frozen",
            f"Your wallet has been frozen by an administrator. Reason: {reason}",
            data={"reason": reason},
            link="/business/wallet",
        )
        self.notifier.email_owner(account, send_wallet_frozen_email, account.business_name, reason)
        self.db.commit()
        logger.info(f"🧊 Admin {admin.id} froze wallet of business {account.id}")
        return {"message": "Wallet frozen", "is_frozen": True}

    def unfreeze(self, account_id: int, admin: Profile, reason: Optional[str] = None) -> dict:
        account = self._admin_account(account_id)
        if not account.wallet_frozen:
            raise HTTPException(status_code=409, detail="Wallet is not frozen")

        old_reason = account.wallet_frozen_reason
        account.wallet_frozen = False
        account.wallet_frozen_at = None
        account.wallet_frozen_reason = None
        account.wallet_frozen_by = None
        self.repo.add_audit(
            self.db,
            business_account_id=account.id,
            admin_profile_id=admin.id,
            action="unfreeze_wallet",
            reason=reason or "Wallet unfrozen",
            old_values={"wallet_frozen": True, "reason": old_reason},
            new_values={"wallet_frozen": False},
        )
        self.notifier.in_app(
            account,
            "payment",
            "wallet_unfrozen",
            "Wallet active again",
            "Your wallet has been unfrozen. You can make bookings again.",
            link="/business/wallet",
        )
        self.notifier.email_owner(account, send_wallet_unfrozen_email, account.business_name)
        self.db.commit()
        logger.info(f"✅ Admin {admin.id} unfroze wallet of business {account.id}")
        return {"message": "Wallet unfrozen", "is_frozen": False}

    def set_spending_limits(self, account_id: int, admin: Profile, data: SpendingLimitsUpdate) -> dict:
        account = self._admin_account(account_id)
        old_values = self.spending_limits(account)

        account.spending_limits_enabled = data.enabled
        account.max_transaction_amount = data.max_transaction_amount
        account.max_daily_spend = data.max_daily_spend
        account.max_monthly_spend = data.max_monthly_spend
        new_values = self.spending_limits(account)

        self.repo.add_audit(
            self.db,
            business_account_id=account.id,
            admin_profile_id=admin.id,
            action="set_spending_limits",
            reason=data.reason,
            old_values=old_values,
            new_values=new_values,
        )
        self.db.commit()
        logger.info(f"📏 Admin {admin.id} updated spending limits of business {account.id}")
        return {"message": "Spending limits updated", "spending_limits": new_values}

    def remove_spending_limits(self, account_id: int, admin: Profile) -> dict:
        return self.set_spending_limits(
            account_id, admin, SpendingLimitsUpdate(enabled=False, reason="Spending limits removed by admin")
        )

    def adjust_balance(self, account_id: int, admin: Profile, data: BalanceAdjustment) -> dict:
        amount = to_money(data.amount)
        description = f"Admin adjustment: {data.reason}"
        created_by = f"admin:{admin.id}"
        try:
            if amount > 0:
                transaction, _ = self.apply_credit(
                    account_id, amount, "admin_adjustment", description, created_by=created_by
                )
            else:
                account = self._lock(account_id)
                if to_money(account.wallet_balance) + amount < 0:
                    raise WalletStateError(
                        "Adjustment would make the balance negative",
                        code="negative_balance",
                        available=to_money(account.wallet_balance),
                    )
                transaction = self._record(account, amount, "admin_adjustment", description, created_by)
        except WalletError as e:
            self.db.rollback()
            raise e.to_http() from e

        balance_before = to_money(transaction.balance_after) - amount
        self.repo.add_audit(
            self.db,
            business_account_id=account_id,
            admin_profile_id=admin.id,
            action="adjust_balance",
            reason=data.reason,
            old_values={"balance": float(balance_before)},
            new_values={"balance": float(transaction.balance_after), "amount": float(amount)},
        )
        self.db.commit()
        logger.info(f"🛠️ Admin {admin.id} adjusted business {account_id} wallet by {amount}")
        return {"message": "Balance adjusted", "transaction": serialize_transaction(transaction)}

    def get_admin_wallet_view(self, account_id: int) -> dict:
        account = self.repo.get_account(self.db, account_id)
        if not account:
            raise HTTPException(status_code=404, detail="Business account not found")

        view = self.get_wallet_summary(account)
        view["business_name"] = account.business_name
        view["frozen_by"] = None
        if account.wallet_frozen:
            admin_id = account.wallet_frozen_by
            if admin_id is None:
                audit = self.repo.last_audit(self.db, account.id, "freeze_wallet")
                admin_id = audit.admin_profile_id if audit else None
            admin = self.db.query(Profile).filter(Profile.id == admin_id).first() if admin_id else None
            if admin:
                view["frozen_by"] = {"id": admin.id, "email": admin.email, "full_name": admin.full_name}
        return view
