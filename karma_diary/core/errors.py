"""
Error Handling
==============

Standardized error codes and exception handlers.

Every error leaves the API in the same envelope::

    {"success": false, "error": {"code": "...", "message": "..."}}
"""

import logging
from typing import Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# =============================================================================
# Error Codes
# =============================================================================

class ErrorCodes:
    """Standardized error codes."""

    # Authentication (AUTH_001 - AUTH_010)
    AUTH_INVALID_CREDENTIALS = "AUTH_001"
    AUTH_TOKEN_EXPIRED = "AUTH_002"
    AUTH_INVALID_TOKEN = "AUTH_005"
    AUTH_TELEGRAM_INVALID = "AUTH_006"
    AUTH_GOOGLE_TOKEN_INVALID = "AUTH_007"
    AUTH_GOOGLE_EMAIL_UNVERIFIED = "AUTH_008"
    AUTH_SESSION_NOT_FOUND = "AUTH_009"

    # Principles
    PRINCIPLE_INVALID_NUMBER = "PRINCIPLE_001"
    PRINCIPLE_NOT_FOUND = "PRINCIPLE_002"

    # Journal (JOURNAL_001 - JOURNAL_010)
    JOURNAL_NOT_FOUND = "JOURNAL_003"

    # Subscription (SUB_001 - SUB_010)
    SUB_INVALID_PLAN = "SUB_001"
    SUB_NO_ACTIVE_SUB = "SUB_004"
    SUB_PAYMENTS_DISABLED = "SUB_007"
    SUBSCRIPTION_REQUIRED = "SUBSCRIPTION_REQUIRED"
    PLAN_UPGRADE_REQUIRED = "PLAN_UPGRADE_REQUIRED"

    # Reminders
    REMINDER_INVALID_MODE = "REMINDER_001"
    REMINDER_NO_CHANNEL = "REMINDER_002"

    # AI (AI_001 - AI_010)
    AI_LIMIT_REACHED = "AI_001"
    AI_BUDGET_EXHAUSTED = "AI_002"
    AI_UNAVAILABLE = "AI_003"

    # Push
    PUSH_DISABLED = "PUSH_001"

    # Telegram webhook
    WEBHOOK_FORBIDDEN = "WEBHOOK_001"

    # Rate Limit
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT"

    # General
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"


# =============================================================================
# Custom Exceptions
# =============================================================================

class AppException(HTTPException):
    """Base application exception with structured error response."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        field: Optional[str] = None,
        **extra,
    ):
        self.code = code
        self.field = field
        self.extra = extra

        detail = {
            "code": code,
            "message": message,
        }

        if field:
            detail["field"] = field

        detail.update(extra)

        super().__init__(status_code=status_code, detail=detail)


class AuthenticationError(AppException):
    """Authentication-related errors."""

    def __init__(
        self,
        code: str = ErrorCodes.AUTH_INVALID_CREDENTIALS,
        message: str = "Authentication failed",
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            code=code,
            message=message,
            **extra,
        )


class NotFoundError(AppException):
    """Resource not found errors."""

    def __init__(
        self,
        code: str = ErrorCodes.NOT_FOUND,
        message: str = "Resource not found",
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            code=code,
            message=message,
            **extra,
        )


class ForbiddenError(AppException):
    """Permission errors."""

    def __init__(
        self,
        code: str = ErrorCodes.WEBHOOK_FORBIDDEN,
        message: str = "Access denied",
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            code=code,
            message=message,
            **extra,
        )


class PaymentRequiredError(AppException):
    """Plan gate denials. The only status used for missing or low plans."""

    def __init__(
        self,
        code: str = ErrorCodes.SUBSCRIPTION_REQUIRED,
        message: str = "An active subscription is required",
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            code=code,
            message=message,
            **extra,
        )


class ValidationError(AppException):
    """Validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        code: str = ErrorCodes.VALIDATION_ERROR,
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            code=code,
            message=message,
            field=field,
            **extra,
        )


class RateLimitError(AppException):
    """Too many requests for an action window."""

    def __init__(self, message: str, reset_in: int, **extra):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            code=ErrorCodes.RATE_LIMIT_EXCEEDED,
            message=message,
            reset_in=reset_in,
            **extra,
        )
        self.headers = {"Retry-After": str(reset_in)}


class ServiceUnavailableError(AppException):
    """External service unavailable errors."""

    def __init__(
        self,
        code: str,
        message: str = "Service temporarily unavailable",
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            code=code,
            message=message,
            **extra,
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def app_exception_handler(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    """Handler for AppException."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
        },
        headers=exc.headers,
    )


async def http_exception_handler(
    request: Request,
    exc: HTTPException,
) -> JSONResponse:
    """Handler for standard HTTPException."""
    # Check if detail is already structured
    if isinstance(exc.detail, dict) and "code" in exc.detail:
        error = exc.detail
    else:
        error = {
            "code": "HTTP_ERROR",
            "message": str(exc.detail),
        }

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": error,
        },
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handler for request and Pydantic validation errors."""
    errors = exc.errors() if hasattr(exc, "errors") else []
    if errors:
        first_error = errors[0]
        field = ".".join(str(loc) for loc in first_error.get("loc", []))
        message = first_error.get("msg", "Validation error")
    else:
        field = None
        message = str(exc) or "Validation error"

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "error": {
                "code": ErrorCodes.VALIDATION_ERROR,
                "message": message,
                "field": field,
            },
        },
    )


async def global_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handler for unhandled exceptions. Never leaks the exception text."""
    logger.exception(
        "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": {
                "code": ErrorCodes.INTERNAL_ERROR,
                "message": "An unexpected error occurred",
            },
        },
    )


def setup_exception_handlers(app):
    """
    Register exception handlers with FastAPI app.

    Usage:
        from karma_diary.core.errors import setup_exception_handlers
        setup_exception_handlers(app)
    """
    from pydantic import ValidationError as PydanticValidationError
    from fastapi.exceptions import RequestValidationError

    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PydanticValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
