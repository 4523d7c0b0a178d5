"""Dodo Payments service - Wallet top-ups through the Dodo Payments API"""

import logging
from decimal import Decimal
from typing import Optional

from dodopayments import AsyncDodoPayments  # type: ignore

from ...config import DODO_ADHOC_PRODUCT_ID, DODO_PAYMENTS_API_KEY, DODO_PAYMENTS_ENVIRONMENT
from ...services.currency import to_smallest_unit

logger = logging.getLogger(__name__)


class PaymentGatewayError(Exception):
    """Raised when the payment provider refuses or fails a request"""


def normalize_dodo_environment(env: Optional[str]) -> str:
    """Normalize Dodo environment value to expected format"""
    value = (env or "test_mode").strip().lower()
    if value in {"live", "production", "prod", "live_mode"}:
        return "live_mode"
    if value not in {"test", "sandbox", "staging", "dev", "development", "test_mode"}:
        logger.warning(f"Unknown DODO environment '{env}', defaulting to test_mode")
    return "test_mode"


class DodoPaymentsService:
    """
    Wallet recharges are sold as the adhoc pay-what-you-want product with the
    amount set per cart line, so no product is created per top-up.
    """

    def __init__(self):
        self.environment = normalize_dodo_environment(DODO_PAYMENTS_ENVIRONMENT)
        self.product_id = DODO_ADHOC_PRODUCT_ID
        self.client = None

        if not DODO_PAYMENTS_API_KEY:
            logger.warning("DODO_PAYMENTS_API_KEY not set; wallet recharge will fail until configured")
            return
        try:
            self.client = AsyncDodoPayments(bearer_token=DODO_PAYMENTS_API_KEY, environment=self.environment)
            logger.info(f"Dodo Payments client initialized (env={self.environment})")
        except Exception as e:
            logger.error(f"Failed to initialize Dodo client (env={self.environment}): {e}")

    def is_available(self) -> bool:
        return self.client is not None and bool(self.product_id)

    def _cart(self, amount: Decimal, currency: str) -> list[dict]:
        return [{"product_id": self.product_id, "quantity": 1, "amount": to_smallest_unit(amount, currency)}]

    async def create_checkout_session(
        self,
        amount: Decimal,
        currency: str,
        customer_email: str,
        customer_name: str,
        return_url: str,
        metadata: dict,
    ) -> dict:
        """Hosted checkout for a one-off wallet recharge. Returns {session_id, checkout_url}"""
        if not self.is_available():
            raise PaymentGatewayError("Dodo Payments client not initialized")

        try:
            response = await self.client.checkout_sessions.create(
                product_cart=self._cart(amount, currency),
                customer={"email": customer_email, "name": customer_name},
                return_url=return_url,
                extra_body={"billing_currency": currency},
                metadata={k: str(v) for k, v in metadata.items()},
            )
        except Exception as e:
            logger.error(f"Failed to create checkout session: {e}")
            raise PaymentGatewayError(str(e)) from e

        return {"session_id": response.session_id, "checkout_url": response.checkout_url}

    async def charge_saved_method(
        self,
        customer_id: str,
        payment_method_id: str,
        amount: Decimal,
        currency: str,
        idempotency_key: str,
        metadata: dict,
    ) -> dict:
        """
        Off-session charge used by auto-recharge.
        Returns {payment_id, status, amount} where amount is in major units.
        """
        if not self.is_available():
            raise PaymentGatewayError("Dodo Payments client not initialized")

        try:
            created = await self.client.payments.create(
                customer={"customer_id": customer_id},
                product_cart=self._cart(amount, currency),
                extra_body={"payment_method_id": payment_method_id, "billing_currency": currency},
                metadata={**{k: str(v) for k, v in metadata.items()}, "idempotency_key": idempotency_key},
                extra_headers={"Idempotency-Key": idempotency_key},
            )
            payment = await self.client.payments.retrieve(created.payment_id)
        except Exception as e:
            logger.error(f"Auto-recharge charge failed for customer {customer_id}: {e}")
            raise PaymentGatewayError(str(e)) from e

        return {
            "payment_id": payment.payment_id,
            "status": payment.status,
            "amount": amount,
        }


dodo_service = DodoPaymentsService()
