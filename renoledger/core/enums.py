"""Enums for the RenoLedger application.

Values are lowercase snake_case because they are persisted verbatim and
exchanged with the admin UI and the accounting export.
"""

from __future__ import annotations

import enum


class InvoiceStatus(str, enum.Enum):
    """Lifecycle status of an invoice."""

    DRAFT = "draft"
    SENT = "sent"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CHEQUE = "cheque"
    ETRANSFER = "etransfer"
    CREDIT_CARD = "credit_card"


class LeadStatus(str, enum.Enum):
    NEW = "new"
    QUOTED = "quoted"
    WON = "won"
    LOST = "lost"


class AuditAction(str, enum.Enum):
    """Action tags written to the audit log."""

    INVOICE_CREATED = "invoice_created"
    INVOICE_UPDATED = "invoice_updated"
    INVOICE_CANCELLED = "invoice_cancelled"
    INVOICE_SENT = "invoice_sent"
    INVOICE_OVERDUE = "invoice_overdue"
    PAYMENT_RECORDED = "payment_recorded"


class ExportStatusFilter(str, enum.Enum):
    ALL = "all"
    SENT = "sent"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
