"""Shared error mapping for API v1 route modules."""

from __future__ import annotations

from typing import Any

from renoledger.core.exceptions import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ProviderNotConfiguredError,
    RenoLedgerError,
    ValidationError,
)


def map_domain_error(exc: Exception) -> tuple[int, str]:
    # ProviderNotConfiguredError subclasses DependencyError; keep it first.
    if isinstance(exc, ValidationError):
        return 400, exc.message or "Validation failed"
    if isinstance(exc, ConflictError):
        return 400, exc.message or "Request conflicts with the current state"
    if isinstance(exc, NotFoundError):
        return 404, exc.message or "Not found"
    if isinstance(exc, ProviderNotConfiguredError):
        return 503, exc.message or "Service not configured"
    if isinstance(exc, DependencyError):
        return 500, exc.message or "Upstream service failed"
    return 500, "Internal server error"


def error_details(exc: Exception, status_code: int) -> Any | None:
    """Client errors carry their details; server errors never do."""
    if status_code < 500 and isinstance(exc, RenoLedgerError):
        return exc.details
    return None
