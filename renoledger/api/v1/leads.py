"""Lead audit trail endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from renoledger.auth.tenant_context import TenantContext
from renoledger.core.dependencies import get_audit_logger, get_tenant_context
from renoledger.schemas.audit import AuditLogResponse
from renoledger.schemas.common import OffsetPagination
from renoledger.services.audit_service import AuditLogger

router = APIRouter(prefix="/leads", tags=["leads"])


@router.get("/{lead_id}/audit")
def list_lead_audit(
    lead_id: int,
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    tenant: TenantContext = Depends(get_tenant_context),
    audit: AuditLogger = Depends(get_audit_logger),
) -> dict:
    entries, total = audit.list_for_lead(tenant.site_id, lead_id, limit=limit, offset=offset)
    pagination = OffsetPagination(total=total, limit=limit, offset=offset, has_more=offset + len(entries) < total)
    return {
        "success": True,
        "data": [AuditLogResponse.model_validate(entry).model_dump(mode="json") for entry in entries],
        "pagination": pagination.model_dump(),
    }
