"""
Domain errors and the handlers that render them.

Services raise BugTrackerException subclasses; each subclass fixes its HTTP
status and machine-readable error code, so every error body has the shape
{"error": <code>, "detail": <message>}.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# ── Error kinds ───────────────────────────────────────────────────────────────

class BugTrackerException(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_SERVER_ERROR"
    default_detail: str = "An unexpected internal server error occurred"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFoundException(BugTrackerException):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            super().__init__(f"{resource} with id '{resource_id}' not found")
        else:
            super().__init__(f"{resource} not found")


class UnauthorizedException(BugTrackerException):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "UNAUTHORIZED"
    default_detail = "Authentication required"


class InvalidTokenException(UnauthorizedException):
    error_code = "INVALID_TOKEN"
    default_detail = "Invalid or expired token"


class ForbiddenException(BugTrackerException):
    """Authenticated, but without the project role or ownership required."""

    status_code = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"
    default_detail = "You do not have permission to perform this action"


class ConflictException(BugTrackerException):
    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"
    default_detail = "Resource already exists"


class BadRequestException(BugTrackerException):
    """Well-formed request that breaks a domain rule."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_FAILED"
    default_detail = "Request violates a business rule"


# ── Handlers ──────────────────────────────────────────────────────────────────

def _error_response(status_code: int, error_code: str, detail: str, **extra: object) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error_code, "detail": detail, **extra},
    )


async def bugtracker_exception_handler(
    request: Request, exc: BugTrackerException
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.error_code, request.method, request.url.path, exc.detail)
    return _error_response(exc.status_code, exc.error_code, exc.detail)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Schema violations: one entry per offending field."""
    errors = [
        {"field": " -> ".join(str(loc) for loc in error["loc"]), "message": error["msg"]}
        for error in exc.errors()
    ]
    return _error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        "Request validation failed",
        errors=errors,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        BugTrackerException.error_code,
        BugTrackerException.default_detail,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BugTrackerException, bugtracker_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
