"""Map domain and infrastructure errors onto HTTP responses.

Every error body has the same shape, {"detail": ...}, so the web UI and the device
firmware only need one parser.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from jukebox.domain.exceptions import (
    ConfigurationError,
    DomainException,
    EntityNotFoundException,
    ExternalServiceError,
    ValidationException,
)

logger = logging.getLogger(__name__)

DB_RETRY_AFTER_SECONDS = 3

# status code and log level per domain error; most specific class first
DOMAIN_ERROR_MAP: list[tuple[type[DomainException], int, int]] = [
    (EntityNotFoundException, status.HTTP_404_NOT_FOUND, logging.INFO),
    (ValidationException, status.HTTP_422_UNPROCESSABLE_ENTITY, logging.WARNING),
    (ExternalServiceError, status.HTTP_502_BAD_GATEWAY, logging.ERROR),
    (ConfigurationError, status.HTTP_503_SERVICE_UNAVAILABLE, logging.ERROR),
]


def _status_for(exc: DomainException) -> tuple[int, int]:
    for exc_type, status_code, level in DOMAIN_ERROR_MAP:
        if isinstance(exc, exc_type):
            return status_code, level
    return status.HTTP_500_INTERNAL_SERVER_ERROR, logging.ERROR


def _error_context(exc: DomainException) -> dict[str, Any]:
    context: dict[str, Any] = {"error_type": type(exc).__name__}
    if isinstance(exc, EntityNotFoundException):
        context.update(entity_type=exc.entity_type, entity_id=str(exc.entity_id))
    elif isinstance(exc, ExternalServiceError):
        context["service"] = exc.service
    return context


def _validation_errors(exc: RequestValidationError) -> Any:
    """Pydantic error list made JSON safe.

    Hey future me - `input` can hold the raw body as bytes and `ctx` can hold the
    exception a validator raised; neither survives JSONResponse as-is.
    """
    return jsonable_encoder(
        exc.errors(),
        custom_encoder={
            bytes: lambda b: b.decode("utf-8", errors="replace"),
            Exception: str,
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the app-wide error handlers. Call once while building the app."""

    @app.exception_handler(DomainException)
    async def domain_exception_handler(
        request: Request, exc: DomainException
    ) -> JSONResponse:
        status_code, level = _status_for(exc)
        logger.log(
            level,
            "%s at %s: %s",
            type(exc).__name__,
            request.url.path,
            exc.message,
            extra={"path": request.url.path, **_error_context(exc)},
        )
        return JSONResponse(status_code=status_code, content={"detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = _validation_errors(exc)
        logger.warning(
            "Rejected request to %s: %s",
            request.url.path,
            errors,
            extra={"path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": errors},
        )

    # SQLite answers "database is locked" when a writer holds it past the busy
    # timeout. The device just retries on its next poll.
    @app.exception_handler(OperationalError)
    async def database_unavailable_handler(
        request: Request, exc: OperationalError
    ) -> JSONResponse:
        logger.error(
            "Database error at %s: %s",
            request.url.path,
            str(exc.orig)[:300],
            extra={"path": request.url.path, "error_type": "OperationalError"},
        )
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Database unavailable. Please try again."},
            headers={"Retry-After": str(DB_RETRY_AFTER_SECONDS)},
        )
