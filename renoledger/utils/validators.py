"""Deterministic validators and sanitizers used across services."""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from renoledger.core.exceptions import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def sanitize_text(value: str | None, max_len: int = 20000) -> str:
    """Sanitize free-form content before persistence/display."""
    if value is None:
        return ""
    cleaned = str(value).replace("\x00", "").strip()
    cleaned = cleaned[:max_len]
    return cleaned


def optional_text(value: str | None, max_len: int = 20000) -> str | None:
    """Like sanitize_text, but blank input becomes None."""
    cleaned = sanitize_text(value, max_len=max_len)
    return cleaned or None


def parse_model(model_cls: type[ModelT], payload: ModelT | dict[str, Any]) -> ModelT:
    """Validate a payload against a Pydantic model.

    Already-parsed instances pass through unchanged; schema errors are raised
    as the application ValidationError with field-level details attached.
    """
    if isinstance(payload, model_cls):
        return payload
    try:
        return model_cls.model_validate(payload)
    except PydanticValidationError as exc:
        details = [
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in exc.errors()
        ]
        raise ValidationError("Validation failed", details={"fields": details}) from exc
