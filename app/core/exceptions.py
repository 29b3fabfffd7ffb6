"""
Application Exception Handling

Single AppException class for all HTTP-facing errors with FastAPI integration.

Error envelope:
    {"error": {"code": "...", "message": "...", "field": "...", "details": {...}}}
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import get_settings


# Module logger
logger = logging.getLogger(__name__)


class AppException(Exception):
    """
    Unified application exception for all error responses.

    Usage:
        raise AppException("Invalid TCIN", "VALIDATION_ERROR", 400, {"tcin": "12"}, field="tcin")

    Error Codes:
        Request:
            - VALIDATION_ERROR (400)

        Upstream:
            - PRODUCT_NOT_FOUND (404)
            - RATE_LIMIT_EXCEEDED (429)

        General:
            - INTERNAL_ERROR (500)
    """

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None
    ):
        """
        Initialize application exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code (e.g., "PRODUCT_NOT_FOUND")
            status_code: HTTP status code (default: 400)
            details: Additional error context (optional)
            field: Offending request field for validation errors (optional)
            headers: Extra response headers, e.g. Retry-After (optional)
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.field = field
        self.headers = headers or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        error: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }

        if self.field:
            error["field"] = self.field

        if self.details:
            error["details"] = self.details

        return {"error": error}


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    FastAPI exception handler for AppException.

    Converts AppException to consistent JSON error response.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers or None
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    FastAPI exception handler for anything that is not an AppException.

    Answers with the INTERNAL_ERROR envelope; the message is hidden in
    production.
    """
    logger.exception(f"❌ [Exception Handler] Unhandled error on {request.url.path}: {exc}")

    settings_provider = request.app.dependency_overrides.get(get_settings, get_settings)
    if settings_provider().is_production or not str(exc):
        error = internal_error()
    else:
        error = internal_error(str(exc))

    return await app_exception_handler(request, error)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


# ============================================
# CONVENIENCE FACTORY FUNCTIONS
# ============================================

def validation_error(message: str, field: str, value: Any) -> AppException:
    """Create validation error exception for a rejected request parameter."""
    return AppException(message, "VALIDATION_ERROR", 400, {field: value}, field=field)


def product_not_found(message: str) -> AppException:
    """Create product not found exception."""
    return AppException(message, "PRODUCT_NOT_FOUND", 404)


def rate_limited(retry_after: Optional[str] = None) -> AppException:
    """Create rate limit exception, echoing the upstream Retry-After hint."""
    details = {"retry_after": retry_after} if retry_after else {}
    headers = {"Retry-After": retry_after} if retry_after else {}
    return AppException(
        "Upstream rate limit exceeded, try again later",
        "RATE_LIMIT_EXCEEDED",
        429,
        details,
        headers=headers
    )


def internal_error(message: str = "Internal server error") -> AppException:
    """Create internal server error exception."""
    return AppException(message, "INTERNAL_ERROR", 500)
