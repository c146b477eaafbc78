"""HTTP exception handlers.

Every error response has the shape ``{"error": {"code", "message"}}`` plus an
optional ``details`` object. Domain exceptions choose their status and code
through the ``http_status_code`` and ``error_code`` class attributes.
"""

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import IntegrityError

from entitystore.domain.exceptions import DomainException, InvalidArgumentError


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    error: dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


async def domain_exception_handler(
    _request: Request, exc: DomainException
) -> JSONResponse:
    details = None
    if isinstance(exc, InvalidArgumentError):
        details = {"argument": exc.argument}
    return error_response(exc.http_status_code, exc.error_code, exc.message, details)


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Constraint violations raised by the store, e.g. a duplicate unique value."""
    logger.warning(f"Integrity error on {request.method} {request.url.path}: {exc.orig}")
    return error_response(
        status.HTTP_409_CONFLICT,
        "CONFLICT",
        "The change conflicts with data already stored",
    )


async def global_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled exception: {exc}")
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "An internal error occurred",
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainException, domain_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)
