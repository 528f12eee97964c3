"""
Exception handlers for FastAPI application.

Framework errors share the ``{error, message, status_code}`` envelope.
Domain errors answer with their own status and ``to_dict()`` payload, so a
PMS auth failure reaches the client as 401 with ``PMS_AUTH_ERROR``.
"""

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.core.domain import DomainException
from app.domains.pms_sync.domain.exceptions import PMSError

logger = logging.getLogger(__name__)


def _envelope(status_code: int, message: Any, details: list[dict] | None = None) -> dict[str, Any]:
    content: dict[str, Any] = {"error": True, "message": message, "status_code": status_code}
    if details is not None:
        content["details"] = details
    return content


def _field_errors(errors: list[dict]) -> list[dict[str, str]]:
    return [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in errors
    ]


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle HTTPException with the standard envelope."""
    if not isinstance(exc, HTTPException):
        return await global_exception_handler(request, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(exc.status_code, exc.detail),
        headers=exc.headers,
    )


async def validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle request body/query validation and pydantic model errors."""
    code = status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, RequestValidationError | ValidationError):
        details = _field_errors(list(exc.errors()))
        logger.warning(f"Validation error on {request.method} {request.url.path}: {details}")
        return JSONResponse(status_code=code, content=_envelope(code, "Validation error", details))
    return JSONResponse(status_code=code, content=_envelope(code, str(exc)))


async def domain_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Translate domain errors to their HTTP status with the error payload."""
    if not isinstance(exc, DomainException):
        return await global_exception_handler(request, exc)

    where = f"{request.method} {request.url.path}"
    if isinstance(exc, PMSError) and exc.upstream_status is not None:
        where = f"{where} ({exc.pms_type.value} answered {exc.upstream_status})"

    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {where}: {exc.message}")
    else:
        logger.warning(f"{exc.code} on {where}: {exc.message}")

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the traceback and answer with a generic 500."""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc!s}", exc_info=True)

    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=code, content=_envelope(code, "Internal server error"))


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(DomainException, domain_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    logger.info("Exception handlers registered")
