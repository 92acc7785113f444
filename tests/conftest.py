from __future__ import annotations

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from renoledger.core.dependencies import get_db_session, get_email_client
from renoledger.database.models import Base, Lead, QuoteDraft

SITE_ID = "site-a"
OTHER_SITE_ID = "site-b"

# 500.00 + 384.96 = 884.96 subtotal, 115.04 HST, 1000.00 total.
DEFAULT_QUOTE_ITEMS = [
    {"description": "Bathroom demolition", "category": "labour", "total": 500.00},
    {"description": "Vanity and fixtures", "category": "materials", "total": 384.96},
]


class FakeEmailClient:
    """Stands in for ResendEmailClient; records every send."""

    def __init__(self, configured: bool = True, error: Exception | None = None) -> None:
        self.is_configured = configured
        self.error = error
        self.sent: list[dict] = []

    def send(self, to_email, subject, text_body, attachments=None):
        if self.error is not None:
            raise self.error
        self.sent.append(
            {
                "to_email": to_email,
                "subject": subject,
                "text_body": text_body,
                "attachments": list(attachments or []),
            }
        )
        return f"msg_{len(self.sent)}"


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'renoledger_test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seed_quote(db_session):
    """Factory creating a lead plus quote; returns (lead, quote)."""

    def _seed(
        site_id: str = SITE_ID,
        line_items: list[dict] | None = None,
        contingency_percent: str = "0",
        contingency_amount: str | None = None,
        subtotal: str | None = "884.96",
        hst_amount: str | None = "115.04",
        total: str | None = "1000.00",
        email: str = "homeowner@example.com",
    ):
        lead = Lead(
            site_id=site_id,
            name="Taylor Morgan",
            email=email,
            phone="(555) 222-3344",
            address="12 Elm Street",
            city="Guelph",
            province="ON",
            postal_code="N1H 2K8",
            status="quoted",
        )
        db_session.add(lead)
        db_session.flush()
        quote = QuoteDraft(
            site_id=site_id,
            lead_id=lead.id,
            line_items=DEFAULT_QUOTE_ITEMS if line_items is None else line_items,
            contingency_percent=Decimal(contingency_percent),
            contingency_amount=Decimal(contingency_amount) if contingency_amount is not None else None,
            subtotal=Decimal(subtotal) if subtotal is not None else None,
            hst_amount=Decimal(hst_amount) if hst_amount is not None else None,
            total=Decimal(total) if total is not None else None,
        )
        db_session.add(quote)
        db_session.commit()
        return lead, quote

    return _seed


@pytest.fixture
def fake_email():
    return FakeEmailClient()


@pytest.fixture
def client(session_factory, fake_email):
    from renoledger.main import create_app

    app = create_app()

    def _override_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db_session] = _override_db
    app.dependency_overrides[get_email_client] = lambda: fake_email
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def email_client_factory():
    return FakeEmailClient
