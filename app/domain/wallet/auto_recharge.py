"""Auto-recharge service - Tops up wallets that fall below their threshold"""

import logging
import uuid
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ...email_service import send_auto_recharge_failed_email
from ...models import BusinessAccount
from ...models_wallet import AutoRechargeAttempt, AutoRechargeSettings
from ...services.currency import format_with_symbol
from ...services.notification_service import Notifier
from ...shared.utils import money_or_none, to_money, utcnow
from ..billing.dodo_service import PaymentGatewayError, dodo_service
from .exceptions import WalletError
from .schemas import AutoRechargeSettingsUpdate

logger = logging.getLogger(__name__)

OPEN_STATUSES = ("pending", "processing")


class AutoRechargeService:
    def __init__(self, db: Session, notifier: Optional[Notifier] = None, gateway=None):
        self.db = db
        self.notifier = notifier or Notifier(db)
        self.gateway = gateway or dodo_service

    def _settings(self, account_id: int) -> Optional[AutoRechargeSettings]:
        return (
            self.db.query(AutoRechargeSettings)
            .filter(AutoRechargeSettings.business_account_id == account_id)
            .first()
        )

    @staticmethod
    def _serialize(settings: Optional[AutoRechargeSettings]) -> dict:
        if not settings:
            return {
                "enabled": False,
                "threshold_amount": 100.0,
                "recharge_amount": 500.0,
                "payment_method_id": None,
                "max_retries": 3,
            }
        return {
            "enabled": settings.enabled,
            "threshold_amount": money_or_none(settings.threshold_amount),
            "recharge_amount": money_or_none(settings.recharge_amount),
            "payment_method_id": settings.payment_method_id,
            "max_retries": settings.max_retries,
        }

    def get_settings(self, account_id: int) -> dict:
        return self._serialize(self._settings(account_id))

    def update_settings(self, account_id: int, data: AutoRechargeSettingsUpdate) -> dict:
        settings = self._settings(account_id)
        if settings is None:
            settings = AutoRechargeSettings(business_account_id=account_id)
            self.db.add(settings)

        settings.enabled = data.enabled
        settings.threshold_amount = to_money(data.threshold_amount)
        settings.recharge_amount = to_money(data.recharge_amount)
        settings.payment_method_id = data.payment_method_id
        settings.max_retries = data.max_retries
        self.db.commit()
        self.db.refresh(settings)
        logger.info(f"⚙️ Auto-recharge settings updated for business {account_id} (enabled={settings.enabled})")
        return self._serialize(settings)

    def maybe_trigger(self, account: BusinessAccount) -> Optional[AutoRechargeAttempt]:
        """Queue a pending attempt when the balance dropped below threshold. Does not commit"""
        settings = self._settings(account.id)
        if not settings or not settings.enabled or not settings.payment_method_id:
            return None

        balance = to_money(account.wallet_balance)
        if balance >= to_money(settings.threshold_amount):
            return None

        open_attempt = (
            self.db.query(AutoRechargeAttempt)
            .filter(
                AutoRechargeAttempt.business_account_id == account.id,
                AutoRechargeAttempt.status.in_(OPEN_STATUSES),
            )
            .first()
        )
        if open_attempt:
            logger.debug(f"Auto-recharge already queued for business {account.id} (attempt {open_attempt.id})")
            return None

        attempt = AutoRechargeAttempt(
            business_account_id=account.id,
            trigger_balance=balance,
            requested_amount=to_money(settings.recharge_amount),
            currency=account.preferred_currency,
            payment_method_id=settings.payment_method_id,
            idempotency_key=f"ar-{account.id}-{uuid.uuid4().hex}",
            status="pending",
            max_retries=settings.max_retries,
        )
        self.db.add(attempt)
        self.db.flush()
        logger.info(
            f"🔋 Auto-recharge queued for business {account.id}: balance {balance} "
            f"< threshold {settings.threshold_amount}"
        )
        return attempt

    def _due_attempts(self, limit: int) -> list[AutoRechargeAttempt]:
        return (
            self.db.query(AutoRechargeAttempt)
            .filter(
                or_(
                    AutoRechargeAttempt.status == "pending",
                    and_(
                        AutoRechargeAttempt.status == "failed",
                        AutoRechargeAttempt.retry_count < AutoRechargeAttempt.max_retries,
                    ),
                )
            )
            .order_by(AutoRechargeAttempt.created_at)
            .limit(limit)
            .all()
        )

    async def process_pending(self, limit: int = 50) -> dict:
        """Charge every due attempt. Returns {processed, succeeded, failed}"""
        result = {"processed": 0, "succeeded": 0, "failed": 0}
        for attempt in self._due_attempts(limit):
            result["processed"] += 1
            if await self._process(attempt):
                result["succeeded"] += 1
            elif attempt.status == "failed":
                result["failed"] += 1

        if result["processed"]:
            logger.info(
                f"🔋 Auto-recharge run: {result['processed']} processed, "
                f"{result['succeeded']} succeeded, {result['failed']} failed"
            )
        await self.notifier.flush()
        return result

    async def _process(self, attempt: AutoRechargeAttempt) -> bool:
        attempt.status = "processing"
        self.db.commit()

        account = self.db.query(BusinessAccount).filter(BusinessAccount.id == attempt.business_account_id).first()
        settings = self._settings(attempt.business_account_id)
        if not account or not settings or not settings.enabled or account.status != "active" or account.wallet_frozen:
            attempt.status = "cancelled"
            attempt.error_message = "Auto-recharge no longer applicable"
            attempt.processed_at = utcnow()
            self.db.commit()
            logger.info(f"🚫 Auto-recharge attempt {attempt.id} cancelled")
            return False

        if not account.dodo_customer_id:
            self._fail(attempt, account, "No saved payment customer for this business")
            return False

        try:
            charge = await self.gateway.charge_saved_method(
                customer_id=account.dodo_customer_id,
                payment_method_id=attempt.payment_method_id or settings.payment_method_id,
                amount=to_money(attempt.requested_amount),
                currency=attempt.currency,
                idempotency_key=f"{attempt.idempotency_key}-{attempt.retry_count}",
                metadata={
                    "type": "auto_recharge",
                    "business_account_id": account.id,
                    "attempt_id": attempt.id,
                    "amount": to_money(attempt.requested_amount),
                },
            )
        except PaymentGatewayError as e:
            self._fail(attempt, account, str(e))
            return False

        attempt.payment_id = charge["payment_id"]
        if charge["status"] == "succeeded":
            return self.complete(attempt, charge["payment_id"], charge["amount"])
        if charge["status"] in ("processing", "requires_customer_action"):
            # Settled later by the payment.succeeded webhook
            self.db.commit()
            return False

        self._fail(attempt, account, f"Payment {charge['status']}")
        return False

    def complete(self, attempt: AutoRechargeAttempt, payment_id: str, amount) -> bool:
        """Credit the wallet for a settled charge and close the attempt"""
        from .service import WalletService

        if attempt.status == "succeeded":
            return True

        amount = to_money(amount)
        wallet = WalletService(self.db, self.notifier)
        try:
            transaction, _ = wallet.apply_credit(
                attempt.business_account_id,
                amount,
                "credit_added",
                f"Auto-recharge: {amount} {attempt.currency}",
                created_by="auto_recharge",
                payment_id=payment_id,
            )
        except WalletError as e:
            self.db.rollback()
            logger.error(f"❌ Auto-recharge credit failed for attempt {attempt.id}: {e.message}")
            return False

        attempt.status = "succeeded"
        attempt.payment_id = payment_id
        attempt.actual_recharged_amount = amount
        attempt.wallet_transaction_id = transaction.id
        attempt.processed_at = utcnow()
        attempt.error_message = None

        account = transaction.business_account
        self.notifier.in_app(
            account,
            "payment",
            "auto_recharge_success",
            "Wallet auto-recharged",
            f"{format_with_symbol(amount, attempt.currency)} was added to your wallet automatically.",
            data={"attempt_id": attempt.id, "amount": float(amount)},
            link="/business/wallet",
        )
        self.db.commit()
        logger.info(f"✅ Auto-recharge attempt {attempt.id} credited {amount} to business {account.id}")
        return True

    def _fail(self, attempt: AutoRechargeAttempt, account: BusinessAccount, error: str):
        attempt.retry_count += 1
        attempt.error_message = error
        attempt.status = "failed"
        attempt.processed_at = utcnow()
        logger.warning(
            f"⚠️ Auto-recharge attempt {attempt.id} failed ({attempt.retry_count}/{attempt.max_retries}): {error}"
        )

        if attempt.retry_count >= attempt.max_retries:
            amount = format_with_symbol(Decimal(str(attempt.requested_amount)), attempt.currency)
            self.notifier.in_app(
                account,
                "payment",
                "auto_recharge_failed",
                "Auto-recharge failed",
                f"We could not recharge your wallet with {amount} after {attempt.retry_count} attempts.",
                data={"attempt_id": attempt.id, "error": error},
                link="/business/wallet",
            )
            self.notifier.email_owner(
                account, send_auto_recharge_failed_email, account.business_name, amount, error, attempt.retry_count
            )
        self.db.commit()

    def _get_attempt(self, attempt_id: int) -> AutoRechargeAttempt:
        attempt = self.db.query(AutoRechargeAttempt).filter(AutoRechargeAttempt.id == attempt_id).first()
        if not attempt:
            raise HTTPException(status_code=404, detail="Auto-recharge attempt not found")
        return attempt

    def complete_by_id(self, attempt_id: int, payment_id: str, amount) -> bool:
        return self.complete(self._get_attempt(attempt_id), payment_id, amount)

    def fail_by_id(self, attempt_id: int, error: str):
        attempt = self._get_attempt(attempt_id)
        if attempt.status in ("succeeded", "cancelled"):
            return
        account = self.db.query(BusinessAccount).filter(BusinessAccount.id == attempt.business_account_id).first()
        self._fail(attempt, account, error)
