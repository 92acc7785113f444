"""Invoice and payment request/response schemas for API contracts."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from renoledger.core.enums import ExportStatusFilter, InvoiceStatus, PaymentMethod
from renoledger.schemas.common import Money

EMAIL_PATTERN = r"^[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}$"


class LineItem(BaseModel):
    """A single invoice line; `amount` is the extended (quantity x price) total."""

    description: str = Field(min_length=1, max_length=500)
    amount: Money = Field(ge=0, max_digits=10, decimal_places=2)
    category: str | None = None
    quantity: float | None = None
    unit: str | None = None
    unit_price: Money | None = None


class InvoiceCreateRequest(BaseModel):
    lead_id: int = Field(ge=1)
    quote_draft_id: int = Field(ge=1)
    notes: str | None = Field(default=None, max_length=2000)
    due_date: date | None = None


class InvoiceUpdateRequest(BaseModel):
    status: InvoiceStatus | None = None
    notes: str | None = Field(default=None, max_length=2000)
    internal_notes: str | None = Field(default=None, max_length=2000)
    due_date: date | None = None


class PaymentRecordRequest(BaseModel):
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    payment_method: PaymentMethod
    payment_date: date | None = None
    reference_number: str | None = Field(default=None, max_length=100)
    notes: str | None = Field(default=None, max_length=500)


class InvoiceSendRequest(BaseModel):
    to_email: str = Field(max_length=320, pattern=EMAIL_PATTERN)
    custom_message: str | None = Field(default=None, max_length=1000)


class SageExportQuery(BaseModel):
    start_date: date | None = None
    end_date: date | None = None
    status: ExportStatusFilter = ExportStatusFilter.ALL

    @model_validator(mode="after")
    def check_range(self) -> "SageExportQuery":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_id: int
    amount: Money
    payment_method: str
    payment_date: date
    reference_number: str | None = None
    notes: str | None = None
    created_at: datetime | None = None


class InvoiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_number: str
    lead_id: int
    quote_draft_id: int | None = None
    status: str
    line_items: list[LineItem]
    subtotal: Money
    contingency_percent: Money
    contingency_amount: Money
    hst_amount: Money
    total: Money
    amount_paid: Money
    balance_due: Money
    deposit_required: Money
    deposit_received: bool
    customer_name: str
    customer_email: str
    customer_phone: str | None = None
    customer_address: str | None = None
    customer_city: str | None = None
    customer_province: str | None = None
    customer_postal_code: str | None = None
    issue_date: date
    due_date: date
    sent_at: datetime | None = None
    notes: str | None = None
    internal_notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class InvoiceDetailResponse(InvoiceResponse):
    payments: list[PaymentResponse] = Field(default_factory=list)


class PaymentRecordResponse(BaseModel):
    payment: PaymentResponse
    invoice: InvoiceResponse
