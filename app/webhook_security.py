"""
Webhook Security Module

Standard Webhooks signature verification for Dodo Payments callbacks:
- signed message is "<webhook-id>.<webhook-timestamp>.<raw body>"
- HMAC-SHA256 keyed with the base64 part of the "whsec_" secret
- header "webhook-signature" holds one or more space separated "v1,<base64>" entries
- timestamps older than 5 minutes are rejected (replay protection)
"""

import base64
import hashlib
import hmac
import logging
import time
from typing import Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

# Maximum age of webhook in seconds (5 minutes)
MAX_WEBHOOK_AGE_SECONDS = 300


def constant_time_compare(a: str, b: str) -> bool:
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def extract_signing_key(secret: str) -> bytes:
    """
    Signing key bytes from a "whsec_BASE64" secret.
    Unprefixed secrets are base64 decoded when possible, otherwise used as UTF-8.
    """
    try:
        if secret.startswith("whsec_"):
            return base64.b64decode(secret[6:])
        return base64.b64decode(secret, validate=True)
    except (ValueError, TypeError):
        return secret.encode("utf-8")


def verify_timestamp(timestamp: Optional[str], max_age: int = MAX_WEBHOOK_AGE_SECONDS) -> bool:
    try:
        age = abs(int(time.time()) - int(timestamp))
    except (ValueError, TypeError):
        logger.warning(f"🚫 Invalid webhook timestamp format: {timestamp}")
        return False

    if age > max_age:
        logger.warning(f"🚫 Webhook timestamp too old: {age}s (max: {max_age}s)")
        return False
    return True


def create_webhook_signature(secret: str, webhook_id: str, timestamp: str, payload: bytes) -> str:
    """Compute the base64 signature for a payload (used when verifying and in tests)"""
    signed_message = b".".join([webhook_id.encode("utf-8"), timestamp.encode("utf-8"), payload])
    digest = hmac.new(extract_signing_key(secret), signed_message, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_standard_webhook(
    secret: str, webhook_id: str, timestamp: str, signature_header: str, payload: bytes
) -> bool:
    if not (webhook_id and timestamp and signature_header):
        return False
    if not verify_timestamp(timestamp):
        return False

    expected = create_webhook_signature(secret, webhook_id, timestamp, payload)
    for candidate in signature_header.split():
        version, _, signature = candidate.partition(",")
        if version == "v1" and constant_time_compare(expected, signature):
            return True
    return False


async def verify_dodo_webhook(request: Request, secret: Optional[str]) -> bytes:
    """
    Verify a Dodo Payments webhook request and return its raw body.
    Raises 401 on any verification failure and 500 when no secret is configured.
    """
    if not secret:
        logger.error("❌ DODO_PAYMENTS_WEBHOOK_SECRET not configured")
        raise HTTPException(status_code=500, detail="Webhook secret not configured")

    # Raw body BEFORE any parsing
    raw_body = await request.body()
    webhook_id = request.headers.get("webhook-id", "")
    timestamp = request.headers.get("webhook-timestamp", "")
    signature_header = request.headers.get("webhook-signature", "")

    logger.info(f"📥 Dodo webhook received: id={webhook_id or 'unknown'}")

    if not signature_header or not timestamp or not webhook_id:
        logger.error("❌ Missing webhook signature headers")
        raise HTTPException(status_code=401, detail="Missing webhook signature")

    if not verify_standard_webhook(secret, webhook_id, timestamp, signature_header, raw_body):
        logger.error(f"❌ Dodo webhook signature mismatch for {webhook_id}")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    logger.info(f"✅ Dodo webhook signature verified: {webhook_id}")
    return raw_body
