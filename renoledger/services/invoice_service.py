"""Invoice service: creation from quotes, status changes and delivery."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from renoledger.core.enums import AuditAction, InvoiceStatus, LeadStatus
from renoledger.core.exceptions import (
    ConflictError,
    InternalError,
    NotFoundError,
    ProviderNotConfiguredError,
    RenoLedgerError,
    ValidationError,
)
from renoledger.core.state_machine import invoice_state_machine
from renoledger.database.models import Invoice, InvoiceSequence, Lead, Payment, QuoteDraft
from renoledger.schemas.invoices import InvoiceSendRequest, InvoiceUpdateRequest, LineItem
from renoledger.services.audit_service import AuditLogger
from renoledger.services.base_service import BaseService
from renoledger.services.email_service import EmailAttachment, ResendEmailClient, build_invoice_email
from renoledger.services.pdf_service import render_invoice_pdf
from renoledger.utils.money import CENT, ZERO, percent_of, to_money
from renoledger.utils.validators import optional_text, parse_model

logger = logging.getLogger(__name__)

HST_PERCENT = Decimal("13")
DEPOSIT_PERCENT = Decimal("50")
NOTE_FIELDS = {"notes", "internal_notes"}


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    contingency_percent: Decimal
    contingency_amount: Decimal
    hst_amount: Decimal
    total: Decimal
    deposit_required: Decimal


def normalize_line_items(raw_items: Any) -> list[dict[str, Any]]:
    """Validate quote line items and convert them to the invoice line format.

    Quote lines carry their extended price under `total`; invoice lines use
    `amount`. Order is preserved.
    """
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("Quote has no line items")

    items: list[dict[str, Any]] = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"Quote line item {index} is malformed")
        amount = raw.get("amount", raw.get("total"))
        try:
            line = LineItem(
                description=str(raw.get("description") or "").strip(),
                amount=to_money(amount),
                category=raw.get("category"),
                quantity=raw.get("quantity"),
                unit=raw.get("unit"),
                unit_price=raw.get("unit_price"),
            )
        except (ValueError, TypeError) as exc:
            # pydantic's ValidationError subclasses ValueError
            raise ValidationError(f"Quote line item {index} is malformed") from exc
        items.append(line.model_dump(mode="json", exclude_none=True))
    return items


def _stored_money(quote: QuoteDraft, field: str) -> Decimal | None:
    value = getattr(quote, field)
    if value is None:
        return None
    try:
        amount = to_money(value)
    except ValueError as exc:
        raise ValidationError(f"Quote {field} is not a valid amount") from exc
    if amount < ZERO:
        raise ValidationError(f"Quote {field} must not be negative")
    return amount


def compute_invoice_totals(line_items: list[dict[str, Any]], quote: QuoteDraft) -> InvoiceTotals:
    """Derive invoice totals from line items and the quote's contingency.

    HST is charged at the fixed Ontario rate on subtotal plus contingency.
    Totals stored on the quote must agree with the derived ones to the cent.
    """
    subtotal = sum((to_money(item["amount"]) for item in line_items), ZERO)

    try:
        contingency_percent = to_money(quote.contingency_percent or 0)
    except ValueError as exc:
        raise ValidationError("Quote contingency_percent is not a valid percentage") from exc
    if contingency_percent < ZERO:
        raise ValidationError("Quote contingency_percent must not be negative")

    contingency_amount = _stored_money(quote, "contingency_amount")
    if contingency_amount is None:
        contingency_amount = percent_of(subtotal, contingency_percent)

    hst_amount = percent_of(subtotal + contingency_amount, HST_PERCENT)
    total = subtotal + contingency_amount + hst_amount

    for field, derived in (("subtotal", subtotal), ("hst_amount", hst_amount), ("total", total)):
        stored = _stored_money(quote, field)
        if stored is not None and abs(stored - derived) > CENT:
            raise ValidationError(
                f"Quote {field} does not match its line items",
                details={"field": field, "stored": str(stored), "computed": str(derived)},
            )

    return InvoiceTotals(
        subtotal=subtotal,
        contingency_percent=contingency_percent,
        contingency_amount=contingency_amount,
        hst_amount=hst_amount,
        total=total,
        deposit_required=percent_of(total, DEPOSIT_PERCENT),
    )


class InvoiceService(BaseService):
    """Service for invoice creation, reads and status transitions.

    Every call takes the tenant `site_id` explicitly; no query runs without it.
    """

    def __init__(self, db=None, email_client: ResendEmailClient | None = None) -> None:
        super().__init__(db)
        self.audit = AuditLogger(db=self.db)
        self._email_client = email_client

    @property
    def email_client(self) -> ResendEmailClient:
        if self._email_client is None:
            self._email_client = ResendEmailClient()
        return self._email_client

    def _utcnow(self) -> datetime:
        return datetime.now(timezone.utc)

    def _next_invoice_number(self, site_id: str, year: int) -> str:
        """Allocate the next `INV-<year>-<NNN>` number inside the current transaction."""
        sequence_filter = (InvoiceSequence.site_id == site_id, InvoiceSequence.year == year)
        for _attempt in range(2):
            result = self.db.execute(
                update(InvoiceSequence)
                .where(*sequence_filter)
                .values(last_number=InvoiceSequence.last_number + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.add(InvoiceSequence(site_id=site_id, year=year, last_number=1))
                try:
                    self.db.flush()
                except IntegrityError:
                    # Another request created this year's row first.
                    self.db.rollback()
                    continue
            number = self.db.query(InvoiceSequence.last_number).filter(*sequence_filter).scalar()
            return f"INV-{year}-{int(number):03d}"
        raise InternalError("Failed to generate invoice number")

    def create_from_quote(
        self,
        site_id: str,
        lead_id: int,
        quote_draft_id: int,
        due_date: date | None = None,
        notes: str | None = None,
    ) -> Invoice:
        try:
            lead = self.db.query(Lead).filter(Lead.id == lead_id, Lead.site_id == site_id).first()
            if lead is None:
                raise NotFoundError("Lead not found")

            quote = (
                self.db.query(QuoteDraft)
                .filter(QuoteDraft.id == quote_draft_id, QuoteDraft.site_id == site_id)
                .first()
            )
            if quote is None:
                raise ValidationError("Quote not found")
            if quote.lead_id != lead.id:
                raise ValidationError("Quote does not belong to this lead")

            line_items = normalize_line_items(quote.line_items)
            totals = compute_invoice_totals(line_items, quote)

            issue_date = date.today()
            if due_date is not None and due_date < issue_date:
                raise ValidationError("due_date must not be before the issue date")

            invoice_number = self._next_invoice_number(site_id, issue_date.year)
            invoice = Invoice(
                site_id=site_id,
                invoice_number=invoice_number,
                lead_id=lead.id,
                quote_draft_id=quote.id,
                status=InvoiceStatus.DRAFT.value,
                line_items=line_items,
                subtotal=totals.subtotal,
                contingency_percent=totals.contingency_percent,
                contingency_amount=totals.contingency_amount,
                hst_amount=totals.hst_amount,
                total=totals.total,
                amount_paid=ZERO,
                balance_due=totals.total,
                deposit_required=totals.deposit_required,
                deposit_received=False,
                customer_name=lead.name,
                customer_email=lead.email,
                customer_phone=lead.phone,
                customer_address=lead.address,
                customer_city=lead.city,
                customer_province=lead.province,
                customer_postal_code=lead.postal_code,
                issue_date=issue_date,
                notes=optional_text(notes, 2000),
            )
            if due_date is not None:
                invoice.due_date = due_date
            self.db.add(invoice)
            lead.status = LeadStatus.WON.value
            self.commit()
            self.db.refresh(invoice)
        except RenoLedgerError:
            self.rollback()
            raise
        except SQLAlchemyError as exc:
            raise self.store_failure("invoice.create.failed", exc, site_id=site_id, lead_id=lead_id) from exc

        logger.info(
            "invoice.created",
            extra={"event": "invoice.created", "site_id": site_id, "invoice_id": invoice.id, "lead_id": lead_id},
        )
        self.audit.record(
            site_id,
            invoice.lead_id,
            AuditAction.INVOICE_CREATED,
            {"invoice_id": invoice.id, "invoice_number": invoice.invoice_number, "total": float(invoice.total)},
        )
        return invoice

    def get_invoice(self, site_id: str, invoice_id: int) -> Invoice:
        try:
            invoice = (
                self.db.query(Invoice)
                .filter(Invoice.id == invoice_id, Invoice.site_id == site_id)
                .first()
            )
        except SQLAlchemyError as exc:
            raise self.store_failure("invoice.fetch.failed", exc, site_id=site_id, invoice_id=invoice_id) from exc
        if invoice is None:
            raise NotFoundError("Invoice not found")
        return invoice

    def list_payments(self, site_id: str, invoice_id: int, newest_first: bool = True) -> list[Payment]:
        order = (
            (Payment.payment_date.desc(), Payment.id.desc())
            if newest_first
            else (Payment.payment_date.asc(), Payment.id.asc())
        )
        try:
            return (
                self.db.query(Payment)
                .filter(Payment.invoice_id == invoice_id, Payment.site_id == site_id)
                .order_by(*order)
                .all()
            )
        except SQLAlchemyError as exc:
            raise self.store_failure("payment.list.failed", exc, site_id=site_id, invoice_id=invoice_id) from exc

    def get_invoice_detail(self, site_id: str, invoice_id: int) -> tuple[Invoice, list[Payment]]:
        invoice = self.get_invoice(site_id, invoice_id)
        return invoice, self.list_payments(site_id, invoice_id)

    def list_invoices(
        self,
        site_id: str,
        status: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Invoice], int]:
        page = max(1, page)
        limit = max(1, min(limit, 100))
        if status and status != "all" and status not in {item.value for item in InvoiceStatus}:
            raise ValidationError(f"Unknown invoice status: {status}", details={"field": "status"})
        try:
            query = self.db.query(Invoice).filter(Invoice.site_id == site_id)
            if status and status != "all":
                query = query.filter(Invoice.status == status)
            total = query.with_entities(func.count(Invoice.id)).scalar() or 0
            items = (
                query.order_by(Invoice.created_at.desc(), Invoice.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as exc:
            raise self.store_failure("invoice.list.failed", exc, site_id=site_id) from exc
        return items, int(total)

    def update_invoice(
        self,
        site_id: str,
        invoice_id: int,
        changes: InvoiceUpdateRequest | dict[str, Any],
    ) -> Invoice:
        request = parse_model(InvoiceUpdateRequest, changes)
        fields = request.model_dump(exclude_unset=True)
        if fields.get("status") is None:
            fields.pop("status", None)
        if "due_date" in fields and fields["due_date"] is None:
            raise ValidationError("due_date cannot be cleared")

        invoice = self.get_invoice(site_id, invoice_id)
        try:
            if invoice.status == InvoiceStatus.CANCELLED.value and set(fields) - NOTE_FIELDS:
                raise ConflictError("Cannot modify a cancelled invoice")
            if "status" in fields:
                target = InvoiceStatus(fields["status"]).value
                invoice_state_machine.assert_transition(invoice.status, target)
                invoice.status = target
            if "notes" in fields:
                invoice.notes = optional_text(fields["notes"], 2000)
            if "internal_notes" in fields:
                invoice.internal_notes = optional_text(fields["internal_notes"], 2000)
            if "due_date" in fields:
                invoice.due_date = fields["due_date"]
            self.commit()
            self.db.refresh(invoice)
        except RenoLedgerError:
            self.rollback()
            raise
        except SQLAlchemyError as exc:
            raise self.store_failure("invoice.update.failed", exc, site_id=site_id, invoice_id=invoice_id) from exc

        self.audit.record(
            site_id,
            invoice.lead_id,
            AuditAction.INVOICE_UPDATED,
            {"invoice_id": invoice.id, **request.model_dump(mode="json", exclude_unset=True)},
        )
        return invoice

    def cancel_invoice(self, site_id: str, invoice_id: int) -> Invoice:
        """Cancel an invoice. Invoices are never deleted; cancelling twice is a no-op."""
        invoice = self.get_invoice(site_id, invoice_id)
        if invoice.status == InvoiceStatus.CANCELLED.value:
            return invoice
        try:
            invoice_state_machine.assert_transition(invoice.status, InvoiceStatus.CANCELLED.value)
            invoice.status = InvoiceStatus.CANCELLED.value
            self.commit()
            self.db.refresh(invoice)
        except RenoLedgerError:
            self.rollback()
            raise
        except SQLAlchemyError as exc:
            raise self.store_failure("invoice.cancel.failed", exc, site_id=site_id, invoice_id=invoice_id) from exc

        self.audit.record(site_id, invoice.lead_id, AuditAction.INVOICE_CANCELLED, {"invoice_id": invoice.id})
        return invoice

    def mark_overdue(self, site_id: str, today: date | None = None) -> list[Invoice]:
        """Flag sent/partially paid invoices whose due date has passed."""
        today = today or date.today()
        try:
            invoices = (
                self.db.query(Invoice)
                .filter(
                    Invoice.site_id == site_id,
                    Invoice.status.in_([InvoiceStatus.SENT.value, InvoiceStatus.PARTIALLY_PAID.value]),
                    Invoice.due_date < today,
                )
                .order_by(Invoice.due_date.asc(), Invoice.id.asc())
                .all()
            )
            for invoice in invoices:
                invoice.status = InvoiceStatus.OVERDUE.value
            self.commit()
        except SQLAlchemyError as exc:
            raise self.store_failure("invoice.overdue.failed", exc, site_id=site_id) from exc

        for invoice in invoices:
            self.audit.record(
                site_id,
                invoice.lead_id,
                AuditAction.INVOICE_OVERDUE,
                {"invoice_id": invoice.id, "due_date": invoice.due_date.isoformat()},
            )
        if invoices:
            logger.info(
                "invoice.overdue.flagged",
                extra={"event": "invoice.overdue.flagged", "site_id": site_id, "count": len(invoices)},
            )
        return invoices

    def render_pdf(self, site_id: str, invoice_id: int) -> tuple[Invoice, bytes]:
        invoice = self.get_invoice(site_id, invoice_id)
        payments = self.list_payments(site_id, invoice_id, newest_first=False)
        return invoice, render_invoice_pdf(invoice, payments)

    def send_invoice(
        self,
        site_id: str,
        invoice_id: int,
        payload: InvoiceSendRequest | dict[str, Any],
    ) -> Invoice:
        """Email the invoice PDF; state changes only after the provider accepts it."""
        request = parse_model(InvoiceSendRequest, payload)
        invoice = self.get_invoice(site_id, invoice_id)
        if invoice.status == InvoiceStatus.CANCELLED.value:
            raise ConflictError("Cannot send a cancelled invoice")
        if not self.email_client.is_configured:
            raise ProviderNotConfiguredError("Email service not configured (RESEND_API_KEY missing)")

        payments = self.list_payments(site_id, invoice_id, newest_first=False)
        pdf_bytes = render_invoice_pdf(invoice, payments)
        template = build_invoice_email(invoice, request.custom_message)
        self.email_client.send(
            to_email=request.to_email,
            subject=template.subject,
            text_body=template.text_body,
            attachments=[EmailAttachment(filename=f"{invoice.invoice_number}.pdf", content=pdf_bytes)],
        )

        try:
            invoice.sent_at = self._utcnow()
            if invoice.status == InvoiceStatus.DRAFT.value:
                invoice.status = InvoiceStatus.SENT.value
            self.commit()
            self.db.refresh(invoice)
        except SQLAlchemyError as exc:
            raise self.store_failure("invoice.send.persist_failed", exc, site_id=site_id, invoice_id=invoice_id) from exc

        logger.info(
            "invoice.sent",
            extra={"event": "invoice.sent", "site_id": site_id, "invoice_id": invoice.id},
        )
        self.audit.record(
            site_id,
            invoice.lead_id,
            AuditAction.INVOICE_SENT,
            {"invoice_id": invoice.id, "sent_to": request.to_email},
        )
        return invoice
