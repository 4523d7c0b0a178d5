"""
Email Service using Resend
MJML templates are compiled to HTML before sending
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import (
    auto_recharge_failed_template,
    booking_datetime_modified_template,
    business_status_template,
    low_balance_template,
    monthly_statement_template,
    spending_limit_reached_template,
    transaction_completed_template,
    wallet_frozen_template,
    wallet_unfrozen_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise RuntimeError(f"Failed to compile MJML template: {e}") from e

    errors = getattr(result, "errors", None)
    if errors:
        logger.warning(f"MJML compilation warnings: {errors}")
    return getattr(result, "html", None) or (result.get("html", "") if isinstance(result, dict) else str(result))


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
    attachments: Optional[list[dict]] = None,
) -> dict:
    """
    Send an email through Resend.

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (compiled to HTML here)
        from_address: Optional custom from address
        attachments: Optional list of {"filename", "content": bytes}

    Returns:
        Resend response, or {"skipped": True} when email is not configured
    """
    recipients = [to] if isinstance(to, str) else to
    if not RESEND_API_KEY:
        logger.warning(f"⚠️ RESEND_API_KEY missing - skipping email '{subject}' to {recipients}")
        return {"skipped": True}

    html_content = compile_mjml_to_html(mjml_content)
    email_data = {
        "from": from_address or EMAIL_FROM_ADDRESS,
        "to": recipients,
        "subject": subject,
        "html": html_content,
    }
    if attachments:
        email_data["attachments"] = [
            {"filename": a["filename"], "content": list(a["content"])} for a in attachments
        ]

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(email_data)
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise RuntimeError(f"Failed to send email: {e}") from e


# ============================================
# Business portal emails
# ============================================


async def send_wallet_frozen_email(to: str, business_name: str, reason: str) -> dict:
    return await send_email(to, "Your wallet has been frozen", wallet_frozen_template(business_name, reason))


async def send_wallet_unfrozen_email(to: str, business_name: str) -> dict:
    return await send_email(to, "Your wallet is active again", wallet_unfrozen_template(business_name))


async def send_spending_limit_reached_email(
    to: str, business_name: str, limit_type: str, limit_amount: str, attempted_amount: str
) -> dict:
    return await send_email(
        to,
        "Spending limit reached",
        spending_limit_reached_template(business_name, limit_type, limit_amount, attempted_amount),
    )


async def send_low_balance_email(to: str, business_name: str, balance: str, threshold: str) -> dict:
    return await send_email(to, "Low wallet balance", low_balance_template(business_name, balance, threshold))


async def send_transaction_completed_email(
    to: str, business_name: str, amount: str, new_balance: str, description: str
) -> dict:
    return await send_email(
        to,
        "Wallet recharge successful",
        transaction_completed_template(business_name, amount, new_balance, description),
    )


async def send_auto_recharge_failed_email(
    to: str, business_name: str, amount: str, error: str, attempts: int
) -> dict:
    return await send_email(
        to,
        "Auto-recharge failed",
        auto_recharge_failed_template(business_name, amount, error, attempts),
    )


async def send_business_status_email(
    to: str, business_name: str, status: str, reason: Optional[str] = None
) -> dict:
    return await send_email(
        to,
        f"Your business account is {status}",
        business_status_template(business_name, status, reason),
    )


async def send_booking_datetime_modified_email(
    to: str,
    vendor_name: str,
    booking_number: str,
    old_pickup: str,
    new_pickup: str,
    reason: Optional[str] = None,
) -> dict:
    return await send_email(
        to,
        f"Pickup time changed for {booking_number}",
        booking_datetime_modified_template(vendor_name, booking_number, old_pickup, new_pickup, reason),
    )


async def send_monthly_statement_email(
    to: str, business_name: str, period_label: str, opening: str, closing: str, pdf_bytes: bytes, filename: str
) -> dict:
    return await send_email(
        to,
        f"Wallet statement - {period_label}",
        monthly_statement_template(business_name, period_label, opening, closing),
        attachments=[{"filename": filename, "content": pdf_bytes}],
    )
