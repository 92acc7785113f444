"""Append-only audit trail keyed by lead."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from renoledger.core.enums import AuditAction
from renoledger.core.exceptions import NotFoundError
from renoledger.database.models import AuditLog, Lead
from renoledger.services.base_service import BaseService

logger = logging.getLogger(__name__)

MAX_AUDIT_PAGE = 100


class AuditLogger(BaseService):
    """Writes and lists audit entries.

    Writes are best-effort: they run after the primary mutation has been
    committed, and a failed write is logged and rolled back without
    affecting the caller's result.
    """

    def record(
        self,
        site_id: str,
        lead_id: int | None,
        action: AuditAction | str,
        new_values: dict[str, Any] | None = None,
    ) -> int | None:
        action_value = action.value if isinstance(action, AuditAction) else str(action)
        try:
            entry = AuditLog(
                site_id=site_id,
                lead_id=lead_id,
                action=action_value,
                new_values=new_values or {},
            )
            self.db.add(entry)
            self.commit()
            return entry.id
        except SQLAlchemyError:
            logger.exception(
                "audit.write.failed",
                extra={"event": "audit.write.failed", "site_id": site_id, "lead_id": lead_id, "action": action_value},
            )
            return None

    def list_for_lead(
        self,
        site_id: str,
        lead_id: int,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[AuditLog], int]:
        """Return a page of entries for a lead, newest first, plus the total count."""
        limit = max(1, min(limit, MAX_AUDIT_PAGE))
        offset = max(0, offset)
        try:
            lead_exists = (
                self.db.query(Lead.id).filter(Lead.id == lead_id, Lead.site_id == site_id).first()
            )
            if lead_exists is None:
                raise NotFoundError("Lead not found")

            base = self.db.query(AuditLog).filter(AuditLog.site_id == site_id, AuditLog.lead_id == lead_id)
            total = base.with_entities(func.count(AuditLog.id)).scalar() or 0
            entries = (
                base.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as exc:
            raise self.store_failure("audit.list.failed", exc, site_id=site_id, lead_id=lead_id) from exc
        return entries, int(total)
