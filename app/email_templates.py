"""
MJML Email Templates
Business portal emails (wallet, bookings, account status) in one responsive layout
"""

from html import escape
from typing import Optional

from .config import FRONTEND_URL

THEME = {
    "primary": "#C6AA88",
    "primary_dark": "#A88B68",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#14B8A6",
    "warning": "#f59e0b",
    "danger": "#ef4444",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
    brand_name: str = "Infinia Transfers",
    accent_color: Optional[str] = None,
) -> str:
    """Base MJML wrapper; tenant emails pass their own brand name and accent color"""
    accent = accent_color or THEME["primary"]

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="0 0 32px 0" background-color="#ffffff">
          <mj-column>
            <mj-button href="{cta_url}" background-color="{accent}" color="#ffffff"
              font-weight="600" border-radius="8px" padding="0 40px" font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 40px 0 40px">
          <mj-column>
            <mj-text font-size="20px" font-weight="700" color="{accent}" padding="0">
              {escape(brand_name)}
            </mj-text>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="24px 0" />
          </mj-column>
        </mj-section>
        <mj-section background-color="#ffffff" padding="0 40px 32px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" padding="0 0 16px 0">
              {title}
            </mj-text>
            {content_sections}
          </mj-column>
        </mj-section>
        {cta_section}
        <mj-section padding="24px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              You're receiving this because you manage a business account on {escape(brand_name)}.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _paragraph(text: str, color: Optional[str] = None) -> str:
    color_attr = f' color="{color}"' if color else ""
    return f"<mj-text{color_attr}>{text}</mj-text>"


def _detail_table(rows: list[tuple[str, str]]) -> str:
    cells = "".join(
        f"""<tr>
              <td style="padding:8px 0;color:{THEME['text_muted']};">{escape(label)}</td>
              <td style="padding:8px 0;text-align:right;font-weight:600;color:{THEME['text_primary']};">{escape(value)}</td>
            </tr>"""
        for label, value in rows
    )
    return f"""
    <mj-table padding="8px 0 16px 0" font-size="15px">
      {cells}
    </mj-table>
    """


def wallet_link() -> str:
    return f"{FRONTEND_URL}/business/wallet"


def wallet_frozen_template(business_name: str, reason: str) -> str:
    content = (
        _paragraph(f"Hi {escape(business_name)},")
        + _paragraph(
            "Your business wallet has been frozen by our team. New bookings cannot be paid "
            "from the wallet until it is unfrozen. Refunds and recharges still reach your balance."
        )
        + _detail_table([("Reason", reason)])
        + _paragraph("Reply to this email if you believe this is a mistake.", THEME["text_muted"])
    )
    return get_base_template("Wallet frozen", "Your business wallet has been frozen", content, wallet_link(), "View wallet")


def wallet_unfrozen_template(business_name: str) -> str:
    content = _paragraph(f"Hi {escape(business_name)},") + _paragraph(
        "Your business wallet is active again. You can pay for new bookings from your balance."
    )
    return get_base_template("Wallet unfrozen", "Your business wallet is active again", content, wallet_link(), "View wallet")


def spending_limit_reached_template(
    business_name: str, limit_type: str, limit_amount: str, attempted_amount: str
) -> str:
    content = (
        _paragraph(f"Hi {escape(business_name)},")
        + _paragraph(f"A booking payment was declined because it would exceed your {limit_type} spending limit.")
        + _detail_table([("Limit", limit_amount), ("Attempted amount", attempted_amount)])
        + _paragraph("Contact support if you need the limit raised.", THEME["text_muted"])
    )
    return get_base_template("Spending limit reached", "A payment exceeded your spending limit", content, wallet_link(), "View wallet")


def low_balance_template(business_name: str, balance: str, threshold: str) -> str:
    content = (
        _paragraph(f"Hi {escape(business_name)},")
        + _paragraph("Your wallet balance has dropped below your alert threshold.")
        + _detail_table([("Current balance", balance), ("Alert threshold", threshold)])
    )
    return get_base_template("Low wallet balance", "Top up to keep booking", content, wallet_link(), "Recharge wallet")


def transaction_completed_template(business_name: str, amount: str, new_balance: str, description: str) -> str:
    content = (
        _paragraph(f"Hi {escape(business_name)},")
        + _paragraph("Your wallet recharge was successful.")
        + _detail_table([("Amount", amount), ("New balance", new_balance), ("Description", description)])
    )
    return get_base_template("Wallet recharged", "Your wallet recharge was successful", content, wallet_link(), "View wallet")


def auto_recharge_failed_template(business_name: str, amount: str, error: str, attempts: int) -> str:
    content = (
        _paragraph(f"Hi {escape(business_name)},")
        + _paragraph(
            "We could not automatically recharge your wallet. Please check your payment method "
            "or recharge manually to avoid failed bookings."
        )
        + _detail_table([("Amount", amount), ("Attempts", str(attempts)), ("Error", error)])
    )
    return get_base_template("Auto-recharge failed", "Your wallet could not be recharged", content, wallet_link(), "Recharge wallet")


def business_status_template(business_name: str, status: str, reason: Optional[str] = None) -> str:
    messages = {
        "active": "Your business account has been approved. You can now sign in to your portal and start booking transfers.",
        "rejected": "Unfortunately your business account application was not approved.",
        "suspended": "Your business account has been suspended. Portal access is paused until it is reactivated.",
    }
    rows = [("Status", status.capitalize())]
    if reason:
        rows.append(("Reason", reason))
    content = (
        _paragraph(f"Hi {escape(business_name)},")
        + _paragraph(messages.get(status, f"Your business account status changed to {status}."))
        + _detail_table(rows)
    )
    cta_url = f"{FRONTEND_URL}/business/login" if status == "active" else None
    return get_base_template(
        f"Account {status}", f"Your business account is now {status}", content, cta_url, "Sign in" if cta_url else None
    )


def booking_datetime_modified_template(
    vendor_name: str, booking_number: str, old_pickup: str, new_pickup: str, reason: Optional[str]
) -> str:
    rows = [("Booking", booking_number), ("Previous pickup", old_pickup), ("New pickup", new_pickup)]
    if reason:
        rows.append(("Reason", reason))
    content = (
        _paragraph(f"Hi {escape(vendor_name)},")
        + _paragraph("The pickup time of a booking assigned to you has changed. Your driver and vehicle schedule has been moved.")
        + _detail_table(rows)
    )
    return get_base_template(
        "Pickup time changed", f"Booking {booking_number} has a new pickup time", content,
        f"{FRONTEND_URL}/vendor/bookings", "View booking",
    )


def monthly_statement_template(business_name: str, period_label: str, opening: str, closing: str) -> str:
    content = (
        _paragraph(f"Hi {escape(business_name)},")
        + _paragraph(f"Your wallet statement for {escape(period_label)} is attached.")
        + _detail_table([("Opening balance", opening), ("Closing balance", closing)])
    )
    return get_base_template(
        f"Wallet statement - {period_label}", "Your monthly wallet statement", content, wallet_link(), "View wallet"
    )
