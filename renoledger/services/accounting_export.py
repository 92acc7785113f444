"""Sage 50 (Canada) compatible CSV export of issued invoices."""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError

from renoledger.core.enums import ExportStatusFilter, InvoiceStatus
from renoledger.core.exceptions import NotFoundError, ValidationError
from renoledger.database.models import Invoice
from renoledger.schemas.invoices import SageExportQuery
from renoledger.services.base_service import BaseService
from renoledger.utils.money import ZERO, format_amount, format_percent, to_money
from renoledger.utils.validators import parse_model

logger = logging.getLogger(__name__)

SAGE_HEADERS = [
    "Invoice Date",
    "Invoice Number",
    "Customer Name",
    "Description",
    "Net Amount",
    "Tax Rate",
    "Tax Code",
    "Tax Amount",
    "Total Amount",
    "Nominal Code",
    "Due Date",
]
NOMINAL_CODE = "4000"
HST_LABEL = "HST 13%"
HST_RATE = "13.00"
HST_TAX_CODE = "H"
BOM = "\ufeff"


def format_date(value: date | datetime | str | None) -> str:
    """Render as YYYY-MM-DD; timestamps are truncated to their date."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value)
    return text.split("T", 1)[0] or text


def _money(invoice: Invoice, label: str, value: object) -> Decimal:
    try:
        return to_money(value)
    except ValueError as exc:
        raise ValidationError(
            f"Invoice {invoice.invoice_number or invoice.id} has an invalid {label}",
            details={"invoice_id": invoice.id, "field": label},
        ) from exc


def _rows_for_invoice(invoice: Invoice) -> list[list[str]]:
    if not invoice.invoice_number:
        raise ValidationError("Invoice is missing its invoice number", details={"invoice_id": invoice.id})
    if not invoice.issue_date:
        raise ValidationError(
            f"Invoice {invoice.invoice_number} is missing its issue date",
            details={"invoice_id": invoice.id, "field": "issue_date"},
        )
    if invoice.hst_amount is None:
        raise ValidationError(
            f"Invoice {invoice.invoice_number} is missing its HST amount",
            details={"invoice_id": invoice.id, "field": "hst_amount"},
        )

    invoice_date = format_date(invoice.issue_date)
    due_date = format_date(invoice.due_date)
    customer = invoice.customer_name or ""
    rows: list[list[str]] = []

    for index, item in enumerate(invoice.line_items or []):
        if not isinstance(item, dict) or item.get("amount") is None:
            raise ValidationError(
                f"Invoice {invoice.invoice_number} line item {index} has no amount",
                details={"invoice_id": invoice.id, "field": f"line_items.{index}.amount"},
            )
        amount = format_amount(_money(invoice, f"line_items.{index}.amount", item["amount"]))
        rows.append(
            [
                invoice_date,
                invoice.invoice_number,
                customer,
                str(item.get("description") or ""),
                amount,
                "",
                "",
                "",
                amount,
                NOMINAL_CODE,
                due_date,
            ]
        )

    contingency = _money(invoice, "contingency_amount", invoice.contingency_amount or 0)
    if contingency > ZERO:
        percent = format_percent(invoice.contingency_percent or 0)
        rows.append(
            [
                invoice_date,
                invoice.invoice_number,
                customer,
                f"Contingency ({percent}%)",
                format_amount(contingency),
                "",
                "",
                "",
                format_amount(contingency),
                NOMINAL_CODE,
                due_date,
            ]
        )

    hst = format_amount(_money(invoice, "hst_amount", invoice.hst_amount))
    rows.append(
        [
            invoice_date,
            invoice.invoice_number,
            customer,
            HST_LABEL,
            "",
            HST_RATE,
            HST_TAX_CODE,
            hst,
            hst,
            "",
            due_date,
        ]
    )
    return rows


def generate_sage_csv(invoices: Iterable[Invoice]) -> str:
    """Build the Sage import file for `invoices`, in the given order.

    Each line item becomes a revenue row, a positive contingency gets its own
    row, and every invoice ends with one HST row. The whole batch is rejected
    with ValidationError if any invoice is incomplete.
    """
    rows: list[list[str]] = []
    for invoice in invoices:
        rows.extend(_rows_for_invoice(invoice))

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(SAGE_HEADERS)
    writer.writerows(rows)
    return BOM + buffer.getvalue().rstrip("\n")


class AccountingExportService(BaseService):
    """Selects invoices for export and renders them."""

    def fetch_invoices(self, site_id: str, query: SageExportQuery | dict) -> list[Invoice]:
        """Issued invoices in the date window, oldest issue date first.

        Drafts and cancelled invoices never appear in an export.
        """
        params = parse_model(SageExportQuery, query)
        try:
            q = self.db.query(Invoice).filter(
                Invoice.site_id == site_id,
                Invoice.status.notin_([InvoiceStatus.DRAFT.value, InvoiceStatus.CANCELLED.value]),
            )
            if params.start_date:
                q = q.filter(Invoice.issue_date >= params.start_date)
            if params.end_date:
                q = q.filter(Invoice.issue_date <= params.end_date)
            if params.status != ExportStatusFilter.ALL:
                q = q.filter(Invoice.status == params.status.value)
            return q.order_by(Invoice.issue_date.asc(), Invoice.id.asc()).all()
        except SQLAlchemyError as exc:
            raise self.store_failure("export.fetch.failed", exc, site_id=site_id) from exc

    def export_sage_csv(self, site_id: str, query: SageExportQuery | dict) -> str:
        invoices = self.fetch_invoices(site_id, query)
        if not invoices:
            raise NotFoundError("No invoices found for the selected criteria")
        content = generate_sage_csv(invoices)
        logger.info(
            "export.sage.generated",
            extra={"event": "export.sage.generated", "site_id": site_id, "count": len(invoices)},
        )
        return content
