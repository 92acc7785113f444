"""Payment recording against invoice balances."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from renoledger.core.enums import AuditAction, InvoiceStatus
from renoledger.core.exceptions import ConflictError, NotFoundError, RenoLedgerError
from renoledger.database.models import Invoice, Payment
from renoledger.schemas.invoices import PaymentRecordRequest
from renoledger.services.audit_service import AuditLogger
from renoledger.services.base_service import BaseService
from renoledger.utils.money import ZERO, to_money
from renoledger.utils.validators import optional_text, parse_model

logger = logging.getLogger(__name__)


class PaymentService(BaseService):
    """Applies payments to invoices.

    The balance update is a compare-and-swap on the balance and amount paid
    that were read for the check, so two concurrent payments cannot both
    apply: whichever statement runs second matches no row.
    """

    def __init__(self, db=None, audit: AuditLogger | None = None) -> None:
        super().__init__(db)
        self.audit = audit or AuditLogger(db=self.db)

    def _load_invoice(self, site_id: str, invoice_id: int) -> Invoice:
        invoice = (
            self.db.query(Invoice)
            .filter(Invoice.id == invoice_id, Invoice.site_id == site_id)
            .populate_existing()
            .first()
        )
        if invoice is None:
            raise NotFoundError("Invoice not found")
        return invoice

    @staticmethod
    def _check_payable(invoice: Invoice, amount: Decimal) -> None:
        if invoice.status == InvoiceStatus.CANCELLED.value:
            raise ConflictError("Cannot record payment on a cancelled invoice")
        if amount > to_money(invoice.balance_due):
            raise ConflictError("Payment amount exceeds balance due")

    def _apply_to_balance(self, invoice: Invoice, amount: Decimal) -> bool:
        # Money columns may be stored as REAL, so the arithmetic stays in
        # Decimal and the row is only updated if it still holds what we read.
        observed_balance = to_money(invoice.balance_due)
        observed_paid = to_money(invoice.amount_paid)
        new_balance = to_money(observed_balance - amount)
        new_amount_paid = to_money(observed_paid + amount)
        status = InvoiceStatus.PAID if new_balance <= ZERO else InvoiceStatus.PARTIALLY_PAID
        deposit_received = bool(invoice.deposit_received) or new_amount_paid >= to_money(invoice.deposit_required or 0)

        result = self.db.execute(
            update(Invoice)
            .where(
                Invoice.id == invoice.id,
                Invoice.site_id == invoice.site_id,
                Invoice.status != InvoiceStatus.CANCELLED.value,
                Invoice.balance_due == observed_balance,
                Invoice.amount_paid == observed_paid,
            )
            .values(
                amount_paid=new_amount_paid,
                balance_due=new_balance,
                status=status.value,
                deposit_received=deposit_received,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def list_payments(self, site_id: str, invoice_id: int) -> list[Payment]:
        """Payments for an invoice, most recent payment date first."""
        try:
            return (
                self.db.query(Payment)
                .filter(Payment.invoice_id == invoice_id, Payment.site_id == site_id)
                .order_by(Payment.payment_date.desc(), Payment.id.desc())
                .all()
            )
        except SQLAlchemyError as exc:
            raise self.store_failure("payment.list.failed", exc, site_id=site_id, invoice_id=invoice_id) from exc

    def record_payment(
        self,
        site_id: str,
        invoice_id: int,
        payload: PaymentRecordRequest | dict[str, Any],
    ) -> tuple[Payment, Invoice]:
        """Record a payment and return it with the post-update invoice.

        The balance update and the payment insert commit together.
        """
        request = parse_model(PaymentRecordRequest, payload)
        amount = to_money(request.amount)

        try:
            invoice = self._load_invoice(site_id, invoice_id)
            self._check_payable(invoice, amount)

            if not self._apply_to_balance(invoice, amount):
                self.db.rollback()
                current = self._load_invoice(site_id, invoice_id)
                self._check_payable(current, amount)
                raise ConflictError("Invoice balance changed during payment; retry")

            payment = Payment(
                site_id=site_id,
                invoice_id=invoice_id,
                amount=amount,
                payment_method=request.payment_method.value,
                payment_date=request.payment_date or date.today(),
                reference_number=optional_text(request.reference_number, 100),
                notes=optional_text(request.notes, 500),
            )
            self.db.add(payment)
            self.commit()
            self.db.refresh(invoice)
            self.db.refresh(payment)
        except RenoLedgerError:
            self.rollback()
            raise
        except SQLAlchemyError as exc:
            raise self.store_failure("payment.record.failed", exc, site_id=site_id, invoice_id=invoice_id) from exc

        logger.info(
            "payment.recorded",
            extra={
                "event": "payment.recorded",
                "site_id": site_id,
                "invoice_id": invoice_id,
                "payment_id": payment.id,
            },
        )
        self.audit.record(
            site_id,
            invoice.lead_id,
            AuditAction.PAYMENT_RECORDED,
            {
                "payment_id": payment.id,
                "invoice_id": invoice_id,
                "amount": float(amount),
                "method": payment.payment_method,
            },
        )
        return payment, invoice
