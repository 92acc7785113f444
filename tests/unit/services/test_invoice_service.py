from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest

from renoledger.core.enums import InvoiceStatus, LeadStatus
from renoledger.core.exceptions import ConflictError, NotFoundError, ValidationError
from renoledger.database.models import AuditLog, Lead
from renoledger.services.invoice_service import InvoiceService, normalize_line_items
from renoledger.services.payment_service import PaymentService

SITE_ID = "site-a"


def test_create_invoice_from_quote_copies_totals_and_customer(db_session, seed_quote):
    lead, quote = seed_quote()
    service = InvoiceService(db=db_session)

    invoice = service.create_from_quote(SITE_ID, lead_id=lead.id, quote_draft_id=quote.id, notes="  Thanks!  ")

    assert invoice.invoice_number == f"INV-{date.today().year}-001"
    assert invoice.status == InvoiceStatus.DRAFT.value
    assert invoice.subtotal == Decimal("884.96")
    assert invoice.hst_amount == Decimal("115.04")
    assert invoice.total == Decimal("1000.00")
    assert invoice.balance_due == Decimal("1000.00")
    assert invoice.amount_paid == Decimal("0.00")
    assert invoice.deposit_required == Decimal("500.00")
    assert invoice.customer_name == "Taylor Morgan"
    assert invoice.customer_postal_code == "N1H 2K8"
    assert invoice.due_date == date.today() + timedelta(days=30)
    assert invoice.notes == "Thanks!"
    assert [item["amount"] for item in invoice.line_items] == [500.0, 384.96]

    refreshed_lead = db_session.get(Lead, lead.id)
    assert refreshed_lead.status == LeadStatus.WON.value
    actions = [row.action for row in db_session.query(AuditLog).filter(AuditLog.lead_id == lead.id)]
    assert actions == ["invoice_created"]


def test_invoice_numbers_are_sequential_per_site(db_session, seed_quote):
    service = InvoiceService(db=db_session)
    year = date.today().year

    numbers = []
    for index in range(2):
        lead, quote = seed_quote(email=f"a{index}@example.com")
        numbers.append(service.create_from_quote(SITE_ID, lead.id, quote.id).invoice_number)
    other_lead, other_quote = seed_quote(site_id="site-b", email="b@example.com")
    other = service.create_from_quote("site-b", other_lead.id, other_quote.id)

    assert numbers == [f"INV-{year}-001", f"INV-{year}-002"]
    assert other.invoice_number == f"INV-{year}-001"


def test_create_invoice_with_contingency(db_session, seed_quote):
    lead, quote = seed_quote(
        line_items=[{"description": "Kitchen cabinets", "total": 1000}],
        contingency_percent="10",
        contingency_amount="100.00",
        subtotal="1000.00",
        hst_amount="143.00",
        total="1243.00",
    )
    invoice = InvoiceService(db=db_session).create_from_quote(SITE_ID, lead.id, quote.id)

    assert invoice.contingency_amount == Decimal("100.00")
    assert invoice.hst_amount == Decimal("143.00")
    assert invoice.total == Decimal("1243.00")


def test_create_invoice_rejects_quote_with_inconsistent_totals(db_session, seed_quote):
    lead, quote = seed_quote(total="999.00")

    with pytest.raises(ValidationError, match="total"):
        InvoiceService(db=db_session).create_from_quote(SITE_ID, lead.id, quote.id)


def test_create_invoice_rejects_empty_quote(db_session, seed_quote):
    lead, quote = seed_quote(line_items=[], subtotal=None, hst_amount=None, total=None)

    with pytest.raises(ValidationError, match="no line items"):
        InvoiceService(db=db_session).create_from_quote(SITE_ID, lead.id, quote.id)


def test_create_invoice_missing_lead_and_foreign_quote(db_session, seed_quote):
    lead, _quote = seed_quote()
    _other_lead, other_quote = seed_quote(email="other@example.com")
    service = InvoiceService(db=db_session)

    with pytest.raises(NotFoundError):
        service.create_from_quote(SITE_ID, lead_id=9999, quote_draft_id=other_quote.id)
    with pytest.raises(ValidationError, match="does not belong"):
        service.create_from_quote(SITE_ID, lead_id=lead.id, quote_draft_id=other_quote.id)
    with pytest.raises(NotFoundError):
        service.create_from_quote("site-b", lead_id=lead.id, quote_draft_id=other_quote.id)


def test_normalize_line_items_maps_quote_total_to_amount():
    items = normalize_line_items(
        [{"description": "Drywall", "total": "250.5", "quantity": 10, "unit": "sheet", "unit_price": 25.05}]
    )
    assert items == [
        {"description": "Drywall", "amount": 250.5, "quantity": 10.0, "unit": "sheet", "unit_price": 25.05}
    ]

    with pytest.raises(ValidationError):
        normalize_line_items([{"description": "Drywall"}])


def test_get_invoice_is_tenant_scoped(db_session, seed_quote):
    lead, quote = seed_quote()
    service = InvoiceService(db=db_session)
    invoice = service.create_from_quote(SITE_ID, lead.id, quote.id)

    assert service.get_invoice(SITE_ID, invoice.id).id == invoice.id
    with pytest.raises(NotFoundError):
        service.get_invoice("site-b", invoice.id)


def test_list_invoices_filters_and_paginates(db_session, seed_quote):
    service = InvoiceService(db=db_session)
    created = []
    for index in range(3):
        lead, quote = seed_quote(email=f"list{index}@example.com")
        created.append(service.create_from_quote(SITE_ID, lead.id, quote.id))
    service.update_invoice(SITE_ID, created[0].id, {"status": "sent"})

    page, total = service.list_invoices(SITE_ID, page=1, limit=2)
    assert total == 3
    assert len(page) == 2

    sent, sent_total = service.list_invoices(SITE_ID, status="sent")
    assert sent_total == 1
    assert sent[0].id == created[0].id

    with pytest.raises(ValidationError):
        service.list_invoices(SITE_ID, status="archived")


def test_update_invoice_follows_manual_transitions(db_session, seed_quote):
    lead, quote = seed_quote()
    service = InvoiceService(db=db_session)
    invoice = service.create_from_quote(SITE_ID, lead.id, quote.id)

    updated = service.update_invoice(SITE_ID, invoice.id, {"status": "sent", "internal_notes": "call first"})
    assert updated.status == InvoiceStatus.SENT.value
    assert updated.internal_notes == "call first"

    with pytest.raises(ConflictError, match="Transition not allowed"):
        service.update_invoice(SITE_ID, invoice.id, {"status": "paid"})
    with pytest.raises(ValidationError):
        service.update_invoice(SITE_ID, invoice.id, {"status": "archived"})


def test_cancelled_invoice_only_accepts_note_changes(db_session, seed_quote):
    lead, quote = seed_quote()
    service = InvoiceService(db=db_session)
    invoice = service.create_from_quote(SITE_ID, lead.id, quote.id)

    cancelled = service.cancel_invoice(SITE_ID, invoice.id)
    assert cancelled.status == InvoiceStatus.CANCELLED.value
    assert service.cancel_invoice(SITE_ID, invoice.id).status == InvoiceStatus.CANCELLED.value

    noted = service.update_invoice(SITE_ID, invoice.id, {"notes": "Client withdrew"})
    assert noted.notes == "Client withdrew"
    with pytest.raises(ConflictError):
        service.update_invoice(SITE_ID, invoice.id, {"status": "sent"})
    with pytest.raises(ConflictError):
        service.update_invoice(SITE_ID, invoice.id, {"due_date": date.today().isoformat()})


def test_paid_invoice_cannot_be_cancelled(db_session, seed_quote):
    lead, quote = seed_quote()
    service = InvoiceService(db=db_session)
    invoice = service.create_from_quote(SITE_ID, lead.id, quote.id)
    PaymentService(db=db_session).record_payment(
        SITE_ID, invoice.id, {"amount": "1000.00", "payment_method": "etransfer"}
    )

    with pytest.raises(ConflictError):
        service.cancel_invoice(SITE_ID, invoice.id)


def test_mark_overdue_flags_only_unpaid_sent_invoices(db_session, seed_quote):
    service = InvoiceService(db=db_session)
    lead, quote = seed_quote(email="late@example.com")
    late = service.create_from_quote(SITE_ID, lead.id, quote.id)
    service.update_invoice(SITE_ID, late.id, {"status": "sent"})
    lead, quote = seed_quote(email="draft@example.com")
    draft = service.create_from_quote(SITE_ID, lead.id, quote.id)

    flagged = service.mark_overdue(SITE_ID, today=date.today() + timedelta(days=31))

    assert [invoice.id for invoice in flagged] == [late.id]
    assert service.get_invoice(SITE_ID, late.id).status == InvoiceStatus.OVERDUE.value
    assert service.get_invoice(SITE_ID, draft.id).status == InvoiceStatus.DRAFT.value
    assert service.mark_overdue(SITE_ID, today=date.today()) == []
