"""
Domain errors and their HTTP mapping.

Services raise these; the handlers registered in main.py turn them (and
FastAPI's own HTTPException / validation errors) into the common
{"success": false, "error": "..."} envelope.
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from app.core.logger import get_logger

log = get_logger(__name__)


class StudentNestError(Exception):
    """Base class for errors raised by services."""

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra


class ValidationFailedError(StudentNestError):
    """Raised when request data breaks a business rule."""


class AuthenticationError(StudentNestError):
    """Raised when credentials or tokens are missing or invalid."""


class PermissionDeniedError(StudentNestError):
    """Raised when the caller may not act on a resource."""


class NotFoundError(StudentNestError):
    """Raised when a referenced document does not exist."""


class ConflictError(StudentNestError):
    """Raised when the request conflicts with current state (duplicates, availability)."""


class AccountLockedError(StudentNestError):
    """Raised when login is attempted on a temporarily locked account."""


class RateLimitError(StudentNestError):
    """Raised when a caller exceeds a rate limit or OTP attempt budget."""


class IntegrationError(StudentNestError):
    """Raised when an external service (Cloudinary, Razorpay, Google, SMS, SMTP) fails."""


# Mapping of domain exceptions to HTTP status codes
STATUS_CODES = {
    ValidationFailedError: 400,
    AuthenticationError: 401,
    PermissionDeniedError: 403,
    NotFoundError: 404,
    ConflictError: 409,
    AccountLockedError: 423,
    RateLimitError: 429,
    IntegrationError: 502,
}


def error_body(message: str, extra: Optional[Dict[str, Any]] = None) -> dict:
    body = {"success": False, "error": message}
    if extra:
        body.update(extra)
    return body


async def studentnest_error_handler(request: Request, exc: StudentNestError) -> JSONResponse:
    status_code = STATUS_CODES.get(type(exc), 500)
    if status_code >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content=error_body(exc.message, exc.extra))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", []) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content=error_body(message))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body("Internal server error"))


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all error handlers to the app."""
    app.add_exception_handler(StudentNestError, studentnest_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
