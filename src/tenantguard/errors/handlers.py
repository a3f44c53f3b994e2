"""FastAPI exception handlers producing the standard ErrorResponse envelope."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from tenantguard.errors.exceptions import (
    AcknowledgementRequiredError,
    ConfirmationRequiredError,
    ProbeError,
    TenantGuardError,
)
from tenantguard.models.common import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


def _error_response(request: Request, status_code: int, code: str, message: str, details=None) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorDetail(
            code=code,
            message=message,
            details=details,
            trace_id=getattr(request.state, "trace_id", "unknown"),
            timestamp=datetime.now(timezone.utc),
        ),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app."""

    @app.exception_handler(TenantGuardError)
    async def tenantguard_error_handler(request: Request, exc: TenantGuardError):
        # Refused risky writes
        if isinstance(exc, (AcknowledgementRequiredError, ConfirmationRequiredError)):
            logger.warning(
                "Operator confirmation missing for %s %s: %s",
                request.method,
                request.url.path,
                exc.code,
            )
        elif isinstance(exc, ProbeError):
            logger.error("Directory probe failed during %s: %s", request.url.path, exc.message)
        return _error_response(request, exc.status_code, exc.code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
            for err in exc.errors()
        ]
        return _error_response(request, 400, "VALIDATION_ERROR", "Request body is invalid", errors)
