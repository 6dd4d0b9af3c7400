"""Translate domain errors into the API's error envelope.

Body: ``{"error": <kind>, "message": <text>, "details": <field messages>}``.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import (
    ExpectedVersionError,
    InvalidOperationError,
    ObjectNotFoundError,
    ValidationError,
)

from marketplace.exceptions import error_kind, error_message

logger = structlog.get_logger(__name__)

STATUS_BY_KIND = {
    "NotFound": 404,
    "ProductNotFound": 404,
    "InsufficientStock": 400,
    "InvalidTransition": 400,
    "ValidationError": 400,
    "AlreadyAssigned": 409,
    "AuthorizationError": 403,
    "ConcurrentModification": 409,
}


def _details(exc: Exception) -> dict:
    messages = getattr(exc, "messages", None)
    if not isinstance(messages, dict):
        return {}
    return {str(k): v if isinstance(v, list) else [str(v)] for k, v in messages.items()}


def _envelope(kind: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=STATUS_BY_KIND.get(kind, 400),
        content={"error": kind, "message": error_message(exc), "details": _details(exc)},
    )


async def domain_error_handler(request: Request, exc: Exception) -> JSONResponse:
    kind = error_kind(exc)
    logger.info("Request rejected", path=request.url.path, error=kind, message=error_message(exc))
    return _envelope(kind, exc)


async def version_conflict_handler(request: Request, exc: ExpectedVersionError) -> JSONResponse:
    logger.warning("Concurrent modification", path=request.url.path, message=error_message(exc))
    return _envelope("ConcurrentModification", exc)


def register_exception_handlers(app: FastAPI) -> None:
    for exc_class in (ValidationError, ObjectNotFoundError, InvalidOperationError):
        app.add_exception_handler(exc_class, domain_error_handler)
    app.add_exception_handler(ExpectedVersionError, version_conflict_handler)
