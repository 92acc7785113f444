"""Application entrypoint for the FastAPI service."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from renoledger.api.v1._errors import error_details, map_domain_error
from renoledger.api.v1.router import get_api_router
from renoledger.core.config import get_config
from renoledger.core.exceptions import RenoLedgerError
from renoledger.core.startup import bootstrap
from renoledger.schemas.common import ErrorEnvelope

logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str, details=None) -> JSONResponse:
    body = ErrorEnvelope(error=message, details=details).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    cfg = get_config()
    app = FastAPI(title=cfg.APP_NAME, version=cfg.APP_VERSION)
    app.include_router(get_api_router())

    @app.exception_handler(RenoLedgerError)
    async def handle_domain_error(request: Request, exc: RenoLedgerError) -> JSONResponse:
        status_code, message = map_domain_error(exc)
        if status_code >= 500:
            logger.error(
                "request.failed",
                extra={"event": "request.failed", "status_code": status_code, "path": request.url.path},
            )
        return _error_response(status_code, message, error_details(exc, status_code))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = [
            {"field": ".".join(str(part) for part in error.get("loc", ())), "message": error.get("msg", "")}
            for error in exc.errors()
        ]
        return _error_response(400, "Validation failed", {"fields": fields})

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error_response(exc.status_code, str(exc.detail))

    @app.get("/")
    def root() -> dict:
        return {"service": cfg.APP_NAME, "version": cfg.APP_VERSION, "api_prefix": cfg.API_PREFIX}

    return app


# Expose ASGI app for `uvicorn renoledger.main:app`.
app = create_app()


if __name__ == "__main__":
    import uvicorn

    bootstrap()
    uvicorn.run(app, host="0.0.0.0", port=8000)
