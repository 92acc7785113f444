"""Invoice PDF rendering with ReportLab.

Produces a single-document PDF in memory: company header, bill-to block,
line items, subtotal/contingency/HST/total, payment history and balance due.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from renoledger.core.config import Config, get_config
from renoledger.core.exceptions import DependencyError
from renoledger.database.models import Invoice, Payment
from renoledger.utils.money import ZERO, format_currency, format_percent, to_money

logger = logging.getLogger(__name__)

PRIMARY_COLOR = colors.HexColor("#2C3E50")
ACCENT_COLOR = colors.HexColor("#1565C0")
PAYMENT_METHOD_LABELS = {
    "cash": "Cash",
    "cheque": "Cheque",
    "etransfer": "E-Transfer",
    "credit_card": "Credit Card",
}


def _format_date(value: date | None) -> str:
    return value.strftime("%B %d, %Y") if value else "N/A"


def _text(value: object) -> str:
    return escape(str(value or ""))


def _build_totals_rows(invoice: Invoice) -> list[list[str]]:
    rows = [["", "Subtotal:", format_currency(invoice.subtotal)]]
    contingency = to_money(invoice.contingency_amount or ZERO)
    if contingency > ZERO:
        rows.append(
            ["", f"Contingency ({format_percent(invoice.contingency_percent)}%):", format_currency(contingency)]
        )
    rows.append(["", "H - HST 13%:", format_currency(invoice.hst_amount)])
    rows.append(["", "TOTAL:", format_currency(invoice.total)])
    if to_money(invoice.amount_paid or ZERO) > ZERO:
        rows.append(["", "Paid:", f"-{format_currency(invoice.amount_paid)}"])
    rows.append(["", "BALANCE DUE:", format_currency(invoice.balance_due)])
    return rows


def render_invoice_pdf(
    invoice: Invoice,
    payments: Sequence[Payment] = (),
    config: Config | None = None,
) -> bytes:
    """Render an invoice and its payment history to PDF bytes.

    Raises DependencyError when ReportLab fails to lay out the document.
    """
    cfg = config or get_config()
    buffer = BytesIO()
    try:
        doc = SimpleDocTemplate(
            buffer,
            pagesize=letter,
            rightMargin=0.75 * inch,
            leftMargin=0.75 * inch,
            topMargin=0.75 * inch,
            bottomMargin=0.75 * inch,
            title=f"Invoice {invoice.invoice_number}",
        )
        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            "CompanyTitle",
            parent=styles["Heading1"],
            fontSize=20,
            textColor=PRIMARY_COLOR,
            spaceAfter=6,
        )
        footer_style = ParagraphStyle(
            "Footer",
            parent=styles["Normal"],
            fontSize=9,
            textColor=colors.grey,
            alignment=TA_CENTER,
        )
        elements = [
            Paragraph(_text(cfg.COMPANY_NAME), title_style),
            Paragraph(f"{_text(cfg.COMPANY_ADDRESS)}<br/>Tel: {_text(cfg.COMPANY_PHONE)}", styles["Normal"]),
            Spacer(1, 0.3 * inch),
            Paragraph(f"INVOICE #{_text(invoice.invoice_number)}", styles["Heading1"]),
            Spacer(1, 0.15 * inch),
        ]

        city_line = " ".join(
            part for part in (invoice.customer_city, invoice.customer_province, invoice.customer_postal_code) if part
        )
        bill_to = Table(
            [
                ["Bill To:", "", "Invoice Date:", _format_date(invoice.issue_date)],
                [invoice.customer_name or "", "", "Due Date:", _format_date(invoice.due_date)],
                [invoice.customer_address or "", "", "Status:", invoice.status.replace("_", " ").title()],
                [city_line, "", "", ""],
                [invoice.customer_email or "", "", "", ""],
            ],
            colWidths=[2.8 * inch, 0.4 * inch, 1.4 * inch, 2.2 * inch],
        )
        bill_to.setStyle(
            TableStyle(
                [
                    ("FONTNAME", (0, 0), (0, 0), "Helvetica-Bold"),
                    ("FONTNAME", (2, 0), (2, -1), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, -1), 10),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ]
            )
        )
        elements.extend([bill_to, Spacer(1, 0.3 * inch)])

        item_rows: list[list[object]] = [["Description", "Amount"]]
        for item in invoice.line_items or []:
            item_rows.append(
                [
                    Paragraph(_text(item.get("description")), styles["Normal"]),
                    format_currency(Decimal(str(item.get("amount", 0)))),
                ]
            )
        items_table = Table(item_rows, colWidths=[5.3 * inch, 1.5 * inch], repeatRows=1)
        items_table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), ACCENT_COLOR),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#F8F9FA")]),
                    ("ALIGN", (1, 0), (1, -1), "RIGHT"),
                    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ]
            )
        )
        elements.extend([items_table, Spacer(1, 0.2 * inch)])

        totals_table = Table(_build_totals_rows(invoice), colWidths=[3.3 * inch, 2.0 * inch, 1.5 * inch])
        totals_table.setStyle(
            TableStyle(
                [
                    ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
                    ("FONTNAME", (1, -1), (-1, -1), "Helvetica-Bold"),
                    ("LINEABOVE", (1, -1), (-1, -1), 1.5, PRIMARY_COLOR),
                ]
            )
        )
        elements.extend([totals_table, Spacer(1, 0.3 * inch)])

        elements.append(Paragraph("<b>Terms:</b> 50% deposit required to schedule work.", styles["Normal"]))
        elements.append(
            Paragraph(f"Payment by E-Transfer to {_text(cfg.PAYMENT_EMAIL)}", styles["Normal"])
        )

        if payments:
            elements.append(Spacer(1, 0.2 * inch))
            elements.append(Paragraph("<b>Payment History:</b>", styles["Normal"]))
            for payment in payments:
                method = PAYMENT_METHOD_LABELS.get(payment.payment_method, payment.payment_method)
                reference = f" (Ref: {_text(payment.reference_number)})" if payment.reference_number else ""
                elements.append(
                    Paragraph(
                        f"{_format_date(payment.payment_date)} - {method}: {format_currency(payment.amount)}{reference}",
                        styles["Normal"],
                    )
                )

        if invoice.notes:
            elements.append(Spacer(1, 0.2 * inch))
            elements.append(Paragraph("<b>Notes:</b>", styles["Normal"]))
            elements.append(Paragraph(_text(invoice.notes), styles["Normal"]))

        elements.append(Spacer(1, 0.4 * inch))
        elements.append(Paragraph(f"Thank you for choosing {_text(cfg.COMPANY_NAME)}!", footer_style))

        doc.build(elements)
    except Exception as exc:
        logger.exception(
            "invoice.pdf.failed",
            extra={"event": "invoice.pdf.failed", "invoice_id": getattr(invoice, "id", None)},
        )
        raise DependencyError("Failed to generate PDF") from exc
    return buffer.getvalue()
