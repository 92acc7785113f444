"""Dependency providers for API handlers."""

from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from renoledger.auth.tenant_context import TenantContext, resolve_tenant
from renoledger.core.config import Config, get_config
from renoledger.database.db import get_db
from renoledger.services.accounting_export import AccountingExportService
from renoledger.services.audit_service import AuditLogger
from renoledger.services.email_service import ResendEmailClient
from renoledger.services.invoice_service import InvoiceService
from renoledger.services.payment_service import PaymentService


def get_settings() -> Config:
    """Return validated application configuration."""
    return get_config()


def get_db_session() -> Generator[Session, None, None]:
    """Yield SQLAlchemy session for dependency injection."""
    yield from get_db()


def get_tenant_context(
    x_site_id: str | None = Header(default=None, alias="X-Site-Id"),
    settings: Config = Depends(get_settings),
) -> TenantContext:
    return resolve_tenant(header_site_id=x_site_id, settings=settings)


def get_email_client(settings: Config = Depends(get_settings)) -> Generator[ResendEmailClient, None, None]:
    """Yield a Resend client for the request and close its HTTP session afterwards."""
    client = ResendEmailClient(config=settings)
    try:
        yield client
    finally:
        client.close()


def get_audit_logger(db: Session = Depends(get_db_session)) -> AuditLogger:
    return AuditLogger(db=db)


def get_invoice_service(db: Session = Depends(get_db_session)) -> InvoiceService:
    return InvoiceService(db=db)


def get_invoice_delivery_service(
    db: Session = Depends(get_db_session),
    email_client: ResendEmailClient = Depends(get_email_client),
) -> InvoiceService:
    return InvoiceService(db=db, email_client=email_client)


def get_payment_service(db: Session = Depends(get_db_session)) -> PaymentService:
    return PaymentService(db=db)


def get_export_service(db: Session = Depends(get_db_session)) -> AccountingExportService:
    return AccountingExportService(db=db)
