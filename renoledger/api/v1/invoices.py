"""Invoice, payment and export endpoints for API v1."""

from __future__ import annotations

import math
from datetime import date

from fastapi import APIRouter, Depends, Query, Response

from renoledger.auth.tenant_context import TenantContext
from renoledger.core.dependencies import (
    get_export_service,
    get_invoice_delivery_service,
    get_invoice_service,
    get_payment_service,
    get_tenant_context,
)
from renoledger.core.enums import ExportStatusFilter
from renoledger.schemas.common import Pagination
from renoledger.schemas.invoices import (
    InvoiceCreateRequest,
    InvoiceDetailResponse,
    InvoiceResponse,
    InvoiceSendRequest,
    InvoiceUpdateRequest,
    PaymentRecordRequest,
    PaymentRecordResponse,
    PaymentResponse,
)
from renoledger.services.accounting_export import AccountingExportService
from renoledger.services.invoice_service import InvoiceService
from renoledger.services.payment_service import PaymentService

router = APIRouter(prefix="/invoices", tags=["invoices"])


def _invoice_data(invoice) -> dict:
    return InvoiceResponse.model_validate(invoice).model_dump(mode="json")


@router.get("")
def list_invoices(
    status: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    tenant: TenantContext = Depends(get_tenant_context),
    service: InvoiceService = Depends(get_invoice_service),
) -> dict:
    items, total = service.list_invoices(tenant.site_id, status=status, page=page, limit=limit)
    pagination = Pagination(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit))
    return {
        "success": True,
        "data": [_invoice_data(invoice) for invoice in items],
        "pagination": pagination.model_dump(),
    }


@router.post("")
def create_invoice(
    payload: InvoiceCreateRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    service: InvoiceService = Depends(get_invoice_service),
) -> dict:
    invoice = service.create_from_quote(
        tenant.site_id,
        lead_id=payload.lead_id,
        quote_draft_id=payload.quote_draft_id,
        due_date=payload.due_date,
        notes=payload.notes,
    )
    return {"success": True, "data": _invoice_data(invoice)}


@router.get("/export/sage")
def export_sage(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    status: ExportStatusFilter = Query(default=ExportStatusFilter.ALL),
    tenant: TenantContext = Depends(get_tenant_context),
    service: AccountingExportService = Depends(get_export_service),
) -> Response:
    content = service.export_sage_csv(
        tenant.site_id,
        {"start_date": start_date, "end_date": end_date, "status": status},
    )
    filename = f"sage_export_{date.today().isoformat()}.csv"
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/mark-overdue")
def mark_overdue(
    tenant: TenantContext = Depends(get_tenant_context),
    service: InvoiceService = Depends(get_invoice_service),
) -> dict:
    flagged = service.mark_overdue(tenant.site_id)
    return {"success": True, "data": {"updated": len(flagged), "invoice_ids": [invoice.id for invoice in flagged]}}


@router.get("/{invoice_id}")
def get_invoice(
    invoice_id: int,
    tenant: TenantContext = Depends(get_tenant_context),
    service: InvoiceService = Depends(get_invoice_service),
) -> dict:
    invoice, payments = service.get_invoice_detail(tenant.site_id, invoice_id)
    detail = InvoiceDetailResponse.model_validate(invoice).model_copy(
        update={"payments": [PaymentResponse.model_validate(payment) for payment in payments]}
    )
    return {"success": True, "data": detail.model_dump(mode="json")}


@router.put("/{invoice_id}")
def update_invoice(
    invoice_id: int,
    payload: InvoiceUpdateRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    service: InvoiceService = Depends(get_invoice_service),
) -> dict:
    invoice = service.update_invoice(tenant.site_id, invoice_id, payload)
    return {"success": True, "data": _invoice_data(invoice)}


@router.delete("/{invoice_id}")
def cancel_invoice(
    invoice_id: int,
    tenant: TenantContext = Depends(get_tenant_context),
    service: InvoiceService = Depends(get_invoice_service),
) -> dict:
    invoice = service.cancel_invoice(tenant.site_id, invoice_id)
    return {"success": True, "data": _invoice_data(invoice)}


@router.get("/{invoice_id}/payments")
def list_payments(
    invoice_id: int,
    tenant: TenantContext = Depends(get_tenant_context),
    service: PaymentService = Depends(get_payment_service),
) -> dict:
    payments = service.list_payments(tenant.site_id, invoice_id)
    return {
        "success": True,
        "data": [PaymentResponse.model_validate(payment).model_dump(mode="json") for payment in payments],
    }


@router.post("/{invoice_id}/payments")
def record_payment(
    invoice_id: int,
    payload: PaymentRecordRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    service: PaymentService = Depends(get_payment_service),
) -> dict:
    payment, invoice = service.record_payment(tenant.site_id, invoice_id, payload)
    result = PaymentRecordResponse(
        payment=PaymentResponse.model_validate(payment),
        invoice=InvoiceResponse.model_validate(invoice),
    )
    return {"success": True, "data": result.model_dump(mode="json")}


@router.get("/{invoice_id}/pdf")
def invoice_pdf(
    invoice_id: int,
    tenant: TenantContext = Depends(get_tenant_context),
    service: InvoiceService = Depends(get_invoice_service),
) -> Response:
    invoice, pdf_bytes = service.render_pdf(tenant.site_id, invoice_id)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{invoice.invoice_number}.pdf"'},
    )


@router.post("/{invoice_id}/send")
def send_invoice(
    invoice_id: int,
    payload: InvoiceSendRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    service: InvoiceService = Depends(get_invoice_delivery_service),
) -> dict:
    invoice = service.send_invoice(tenant.site_id, invoice_id, payload)
    return {
        "success": True,
        "message": f"Invoice sent to {payload.to_email}",
        "data": _invoice_data(invoice),
    }
