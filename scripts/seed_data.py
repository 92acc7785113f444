"""Seed a demo lead and quote so an invoice can be created locally."""

from decimal import Decimal

from renoledger.core.config import get_config
from renoledger.database.db import get_db_session
from renoledger.database.init_db import init_db
from renoledger.database.models import Lead, QuoteDraft

DEMO_EMAIL = "demo.homeowner@example.com"


def seed_quote():
    init_db()
    site_id = get_config().SITE_ID
    with get_db_session() as db:
        existing = db.query(Lead).filter(Lead.site_id == site_id, Lead.email == DEMO_EMAIL).first()
        if existing:
            print(f"Seed lead already exists (id={existing.id}).")
            return

        lead = Lead(
            site_id=site_id,
            name="Jordan Reyes",
            email=DEMO_EMAIL,
            phone="(555) 010-2030",
            address="42 Maple Street",
            city="Stratford",
            province="ON",
            postal_code="N5A 1A1",
            status="quoted",
        )
        db.add(lead)
        db.flush()

        quote = QuoteDraft(
            site_id=site_id,
            lead_id=lead.id,
            line_items=[
                {"description": "Demolition and disposal", "category": "labour", "total": 1200.00},
                {"description": "Cabinets, supply and install", "category": "materials", "total": 8500.00},
                {"description": "Quartz countertop", "category": "materials", "total": 3300.00},
            ],
            subtotal=Decimal("13000.00"),
            contingency_percent=Decimal("10"),
            contingency_amount=Decimal("1300.00"),
            hst_amount=Decimal("1859.00"),
            total=Decimal("16159.00"),
        )
        db.add(quote)
        db.commit()
        print(f"Seeded lead {lead.id} with quote {quote.id} for site '{site_id}'.")


if __name__ == "__main__":
    seed_quote()
