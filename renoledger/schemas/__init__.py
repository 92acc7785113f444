"""Pydantic schema package for API contracts."""

from renoledger.schemas.audit import AuditLogResponse
from renoledger.schemas.common import ErrorEnvelope, Money, OffsetPagination, Pagination
from renoledger.schemas.invoices import (
    InvoiceCreateRequest,
    InvoiceDetailResponse,
    InvoiceResponse,
    InvoiceSendRequest,
    InvoiceUpdateRequest,
    LineItem,
    PaymentRecordRequest,
    PaymentRecordResponse,
    PaymentResponse,
    SageExportQuery,
)

__all__ = [
    "AuditLogResponse",
    "ErrorEnvelope",
    "InvoiceCreateRequest",
    "InvoiceDetailResponse",
    "InvoiceResponse",
    "InvoiceSendRequest",
    "InvoiceUpdateRequest",
    "LineItem",
    "Money",
    "OffsetPagination",
    "Pagination",
    "PaymentRecordRequest",
    "PaymentRecordResponse",
    "PaymentResponse",
    "SageExportQuery",
]
