"""Tenant (site) context resolution."""

from __future__ import annotations

import re
from dataclasses import dataclass

from renoledger.core.config import Config, get_config
from renoledger.core.exceptions import ValidationError

SITE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]{1,64}$")


@dataclass(frozen=True)
class TenantContext:
    site_id: str


def resolve_tenant(header_site_id: str | None = None, settings: Config | None = None) -> TenantContext:
    """Build tenant context from the request header, falling back to the configured site."""
    cfg = settings or get_config()
    site_id = (header_site_id or "").strip() or cfg.SITE_ID
    if not SITE_ID_PATTERN.match(site_id):
        raise ValidationError("Invalid site id.", details={"field": "X-Site-Id"})
    return TenantContext(site_id=site_id)
