"""
Wallet PDF Generator
Monthly wallet statements and per-transaction invoices for business accounts
"""

import io
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..models import BusinessAccount
from ..models_wallet import WalletTransaction
from .currency import format_with_symbol, is_supported

logger = logging.getLogger(__name__)

DEFAULT_BRAND_COLOR = "#C6AA88"

TRANSACTION_LABELS = {
    "credit_added": "Wallet recharge",
    "booking_deduction": "Booking payment",
    "refund": "Refund",
    "admin_adjustment": "Adjustment",
}


class WalletPDFGenerator:
    """Render wallet documents for one business account"""

    def __init__(self, account: BusinessAccount):
        self.account = account
        self.currency = account.preferred_currency if is_supported(account.preferred_currency) else "USD"

        theme = account.theme_config or {}
        self.brand_color = colors.HexColor(theme.get("accent") or DEFAULT_BRAND_COLOR)
        self.dark_gray = colors.HexColor("#1e293b")
        self.light_gray = colors.HexColor("#f1f5f9")

        styles = getSampleStyleSheet()
        self.title_style = ParagraphStyle(
            "WalletTitle", parent=styles["Heading1"], fontSize=20, textColor=self.brand_color, spaceAfter=6
        )
        self.heading_style = ParagraphStyle(
            "WalletHeading", parent=styles["Heading2"], fontSize=13, textColor=self.dark_gray, spaceBefore=16, spaceAfter=8
        )
        self.body_style = ParagraphStyle(
            "WalletBody", parent=styles["Normal"], fontSize=9, textColor=self.dark_gray, spaceAfter=4
        )

    @property
    def display_name(self) -> str:
        return self.account.brand_name or self.account.business_name

    def money(self, value) -> str:
        return format_with_symbol(Decimal(str(value or 0)), self.currency)

    def _build(self, title: str, story: list) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=0.75 * inch,
            leftMargin=0.75 * inch,
            topMargin=0.75 * inch,
            bottomMargin=0.75 * inch,
            title=title,
        )
        doc.build(story)
        return buffer.getvalue()

    def _info_table(self, rows: list[list[str]]) -> Table:
        table = Table(rows, colWidths=[1.8 * inch, 4.6 * inch])
        table.setStyle(
            TableStyle(
                [
                    ("FONT", (0, 0), (0, -1), "Helvetica-Bold", 9),
                    ("FONT", (1, 0), (1, -1), "Helvetica", 9),
                    ("TEXTCOLOR", (0, 0), (-1, -1), self.dark_gray),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
                ]
            )
        )
        return table

    def _grid_style(self) -> TableStyle:
        return TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), self.brand_color),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("FONT", (0, 0), (-1, 0), "Helvetica-Bold", 9),
                ("FONT", (0, 1), (-1, -1), "Helvetica", 8),
                ("ALIGN", (-2, 0), (-1, -1), "RIGHT"),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, self.light_gray]),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
                ("TOPPADDING", (0, 0), (-1, -1), 5),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
            ]
        )

    def statement(
        self,
        period_start: datetime,
        period_end: datetime,
        opening_balance: Decimal,
        transactions: list[WalletTransaction],
    ) -> bytes:
        """Statement for [period_start, period_end) with running balances"""
        logger.info(f"📄 Generating wallet statement for business {self.account.id} ({period_start:%Y-%m})")

        credits = sum((t.amount for t in transactions if t.amount > 0), Decimal("0"))
        debits = sum((-t.amount for t in transactions if t.amount < 0), Decimal("0"))
        closing_balance = transactions[-1].balance_after if transactions else opening_balance

        story = [
            Paragraph("WALLET STATEMENT", self.title_style),
            Paragraph(escape(self.display_name), self.body_style),
            Spacer(1, 0.2 * inch),
            self._info_table(
                [
                    ["Account:", escape(self.account.business_name)],
                    ["Period:", f"{period_start:%d %b %Y} - {period_end:%d %b %Y}"],
                    ["Opening balance:", self.money(opening_balance)],
                    ["Total credits:", self.money(credits)],
                    ["Total debits:", self.money(debits)],
                    ["Closing balance:", self.money(closing_balance)],
                ]
            ),
            Paragraph("TRANSACTIONS", self.heading_style),
        ]

        if not transactions:
            story.append(Paragraph("No transactions in this period.", self.body_style))
        else:
            rows = [["Date", "Type", "Description", "Amount", "Balance"]]
            for t in transactions:
                rows.append(
                    [
                        t.created_at.strftime("%d %b %Y %H:%M") if t.created_at else "",
                        TRANSACTION_LABELS.get(t.transaction_type, t.transaction_type),
                        Paragraph(escape(t.description or "-"), self.body_style),
                        self.money(t.amount),
                        self.money(t.balance_after),
                    ]
                )
            table = Table(
                rows,
                colWidths=[1.2 * inch, 1.1 * inch, 2.3 * inch, 0.9 * inch, 0.9 * inch],
                repeatRows=1,
            )
            table.setStyle(self._grid_style())
            story.append(table)

        return self._build(f"Wallet statement {period_start:%Y-%m}", story)

    def invoice(self, transaction: WalletTransaction, reference: Optional[str] = None) -> bytes:
        """Single transaction receipt"""
        logger.info(f"📄 Generating invoice for wallet transaction {transaction.id}")
        number = f"INV-{transaction.created_at:%Y%m%d}-{transaction.id:06d}"
        rows = [
            ["Invoice:", number],
            ["Date:", transaction.created_at.strftime("%d %b %Y %H:%M")],
            ["Billed to:", escape(self.account.business_name)],
            ["Email:", escape(self.account.business_email)],
            ["Type:", TRANSACTION_LABELS.get(transaction.transaction_type, transaction.transaction_type)],
        ]
        if reference:
            rows.append(["Reference:", escape(reference)])

        line_items = Table(
            [
                ["Description", "Amount"],
                [Paragraph(escape(transaction.description or "-"), self.body_style), self.money(abs(transaction.amount))],
                ["Balance after transaction", self.money(transaction.balance_after)],
            ],
            colWidths=[5.0 * inch, 1.4 * inch],
        )
        line_items.setStyle(self._grid_style())

        story = [
            Paragraph("INVOICE", self.title_style),
            Paragraph(escape(self.display_name), self.body_style),
            Spacer(1, 0.2 * inch),
            self._info_table(rows),
            Spacer(1, 0.2 * inch),
            line_items,
        ]
        return self._build(number, story)
