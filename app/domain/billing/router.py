"""Billing router - Dodo Payments webhooks for wallet recharges"""

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ...cache import cache
from ...config import DODO_PAYMENTS_WEBHOOK_SECRET
from ...database import get_db
from ...rate_limiter import create_rate_limiter
from ...webhook_security import verify_dodo_webhook
from ..wallet.auto_recharge import AutoRechargeService
from ..wallet.service import WalletService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])

rate_limit_billing_webhook = create_rate_limiter(limit=100, window_seconds=60, key_prefix="dodo_webhook")

PAID_EVENTS = ("payment.succeeded", "checkout.session.completed")
PROCESSED_TTL = 86400


@router.post("/dodopayments")
async def handle_dodopayments_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_billing_webhook),
):
    """
    Verify the Standard Webhooks signature and apply payment events.

    Headers:
      - 'webhook-id': unique delivery id
      - 'webhook-timestamp': unix seconds
      - 'webhook-signature': 'v1,{base64(hmac_sha256(id.timestamp.payload))}'
    """
    raw_body = await verify_dodo_webhook(request, DODO_PAYMENTS_WEBHOOK_SECRET)
    webhook_id = request.headers.get("webhook-id", "unknown")

    processed_key = f"webhook_processed:{webhook_id}"
    if cache.get(processed_key):
        logger.info(f"🔄 Webhook {webhook_id} already processed, skipping")
        return {"status": "already_processed", "webhook_id": webhook_id}

    try:
        event = json.loads(raw_body.decode("utf-8"))
    except ValueError as e:
        logger.error(f"Failed to parse webhook JSON: {e}")
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from e

    event_type = event.get("type")
    data = event.get("data") or {}
    meta = data.get("metadata") or {}
    payment_id = data.get("payment_id")
    logger.info(f"🔔 Webhook received id={webhook_id} type={event_type} payment={payment_id}")

    result = {"status": "ignored", "event_type": event_type}

    if event_type in PAID_EVENTS and meta.get("type") == "wallet_recharge":
        if not payment_id:
            # Session events without a payment id are settled by payment.succeeded
            logger.info(f"⏭️ {event_type} without payment_id, waiting for payment event")
        else:
            wallet = WalletService(db)
            transaction = wallet.record_recharge_payment(payment_id, meta)
            background_tasks.add_task(wallet.notifier.flush)
            result = {"status": "credited", "transaction_id": transaction.id if transaction else None}

    elif event_type == "payment.succeeded" and meta.get("type") == "auto_recharge":
        service = AutoRechargeService(db)
        credited = service.complete_by_id(int(meta["attempt_id"]), payment_id, meta.get("amount"))
        background_tasks.add_task(service.notifier.flush)
        result = {"status": "credited" if credited else "not_credited"}

    elif event_type == "payment.failed" and meta.get("type") == "auto_recharge":
        service = AutoRechargeService(db)
        service.fail_by_id(int(meta["attempt_id"]), data.get("error_message") or "Payment failed")
        background_tasks.add_task(service.notifier.flush)
        result = {"status": "recorded_failure"}

    else:
        logger.info(f"ℹ️ Unhandled webhook event {event_type}")

    cache.set(processed_key, True, ttl=PROCESSED_TTL)
    return result
