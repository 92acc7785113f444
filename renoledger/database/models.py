from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from renoledger.core.enums import InvoiceStatus, LeadStatus

from .db import Base

MONEY = Numeric(10, 2, asdecimal=True)


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp helper."""
    return datetime.now(timezone.utc)


def default_due_date() -> date:
    return date.today() + timedelta(days=30)


class Lead(Base):
    __tablename__ = "leads"
    __table_args__ = (
        Index("idx_leads_site_status", "site_id", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    site_id = Column(String(64), nullable=False, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String)
    address = Column(String)
    city = Column(String)
    province = Column(String)
    postal_code = Column(String)
    status = Column(String, nullable=False, default=LeadStatus.NEW.value)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    quotes = relationship("QuoteDraft", back_populates="lead")


class QuoteDraft(Base):
    __tablename__ = "quote_drafts"
    __table_args__ = (
        Index("idx_quote_drafts_site_lead", "site_id", "lead_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    site_id = Column(String(64), nullable=False, index=True)
    lead_id = Column(Integer, ForeignKey("leads.id"), nullable=False)
    line_items = Column(JSON, nullable=False, default=list)
    subtotal = Column(MONEY)
    contingency_percent = Column(Numeric(5, 2, asdecimal=True), nullable=False, default=0)
    contingency_amount = Column(MONEY)
    hst_amount = Column(MONEY)
    total = Column(MONEY)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    lead = relationship("Lead", back_populates="quotes")


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("site_id", "invoice_number", name="uq_invoices_site_invoice_number"),
        Index("idx_invoices_site_status", "site_id", "status"),
        Index("idx_invoices_site_issue_date", "site_id", "issue_date"),
        Index("idx_invoices_lead_id", "lead_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    site_id = Column(String(64), nullable=False, index=True)
    invoice_number = Column(String(32), nullable=False)
    lead_id = Column(Integer, ForeignKey("leads.id"), nullable=False)
    quote_draft_id = Column(Integer, ForeignKey("quote_drafts.id"))
    status = Column(String(32), nullable=False, default=InvoiceStatus.DRAFT.value)
    line_items = Column(JSON, nullable=False, default=list)

    subtotal = Column(MONEY, nullable=False, default=0)
    contingency_percent = Column(Numeric(5, 2, asdecimal=True), nullable=False, default=0)
    contingency_amount = Column(MONEY, nullable=False, default=0)
    hst_amount = Column(MONEY, nullable=False, default=0)
    total = Column(MONEY, nullable=False, default=0)

    amount_paid = Column(MONEY, nullable=False, default=0)
    balance_due = Column(MONEY, nullable=False, default=0)
    deposit_required = Column(MONEY, nullable=False, default=0)
    deposit_received = Column(Boolean, nullable=False, default=False)

    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False)
    customer_phone = Column(String)
    customer_address = Column(String)
    customer_city = Column(String)
    customer_province = Column(String)
    customer_postal_code = Column(String)

    issue_date = Column(Date, nullable=False, default=date.today)
    due_date = Column(Date, nullable=False, default=default_due_date)
    sent_at = Column(DateTime(timezone=True))

    notes = Column(Text)
    internal_notes = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    lead = relationship("Lead")
    payments = relationship("Payment", back_populates="invoice", order_by="Payment.payment_date")


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        Index("idx_payments_site_invoice", "site_id", "invoice_id"),
        Index("idx_payments_payment_date", "payment_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    site_id = Column(String(64), nullable=False, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False)
    amount = Column(MONEY, nullable=False)
    payment_method = Column(String(32), nullable=False)
    payment_date = Column(Date, nullable=False, default=date.today)
    reference_number = Column(String(100))
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    invoice = relationship("Invoice", back_populates="payments")


class AuditLog(Base):
    __tablename__ = "audit_log"
    __table_args__ = (
        Index("idx_audit_log_site_lead", "site_id", "lead_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    site_id = Column(String(64), nullable=False, index=True)
    lead_id = Column(Integer, ForeignKey("leads.id"))
    action = Column(String(64), nullable=False)
    new_values = Column(JSON)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class InvoiceSequence(Base):
    __tablename__ = "invoice_sequences"

    site_id = Column(String(64), primary_key=True)
    year = Column(Integer, primary_key=True)
    last_number = Column(Integer, nullable=False, default=0)
