"""
==============================================================================
Upstream Error Classification
==============================================================================

Typed errors raised by the RedCircle client.

Classification Rules:
--------------------
    HTTP 404 / body code PRODUCT_NOT_FOUND     -> PRODUCT_NOT_FOUND
    HTTP 429 / body code RATE_LIMIT_EXCEEDED   -> RATE_LIMIT_EXCEEDED
    HTTP 401, 403                              -> UNAUTHORIZED
    any other HTTP error status                -> NETWORK_ERROR
    transport failure (timeout, connect, ...)  -> NETWORK_ERROR
    anything else (malformed body, ...)        -> UNKNOWN_ERROR

Known error body shapes:
-----------------------
    {"error": {"code": "PRODUCT_NOT_FOUND", ...}}
    {"error": "RATE_LIMIT_EXCEEDED"}

==============================================================================
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, Optional

import httpx


class ApiErrorCode(str, Enum):
    """Closed set of upstream error kinds."""

    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    UNAUTHORIZED = "UNAUTHORIZED"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"


_BODY_CODES = {
    ApiErrorCode.PRODUCT_NOT_FOUND.value: ApiErrorCode.PRODUCT_NOT_FOUND,
    ApiErrorCode.RATE_LIMIT_EXCEEDED.value: ApiErrorCode.RATE_LIMIT_EXCEEDED,
}


class ApiError(Exception):
    """
    Typed failure from the upstream product API.

    Attributes:
        message: Human-readable description
        code: ApiErrorCode
        context: Diagnostic context (identifier, operation, status, retry_after)
    """

    def __init__(
        self,
        message: str,
        code: ApiErrorCode,
        context: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.context = context or {}
        super().__init__(message)

    @property
    def status(self) -> Optional[int]:
        """Upstream HTTP status, when a response was received."""
        return self.context.get("status")

    @property
    def retry_after(self) -> Optional[str]:
        """Upstream Retry-After hint for rate-limit errors."""
        return self.context.get("retry_after")

    def __repr__(self) -> str:
        return f"ApiError(code={self.code.value!r}, message={self.message!r})"


def extract_error_code(response: httpx.Response) -> Optional[str]:
    """
    Read an error code from a response body.

    Only the two known body shapes are recognised; anything else,
    including a non-JSON body, yields None.
    """
    try:
        body = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None

    if not isinstance(body, dict):
        return None

    error = body.get("error")
    if isinstance(error, dict) and isinstance(error.get("code"), str):
        return error["code"]
    if isinstance(error, str):
        return error
    return None


def classify_error(
    error: BaseException,
    identifier: Optional[str] = None,
    operation: Optional[str] = None,
) -> ApiError:
    """
    Map an exception raised during an upstream call to an ApiError.

    Args:
        error: The exception caught around the HTTP call
        identifier: Lookup key for diagnostics, e.g. "TCIN 78025470"
        operation: Client operation name, e.g. "get_product_by_tcin"

    Returns:
        ApiError carrying the original request context
    """
    context: Dict[str, Any] = {"identifier": identifier, "operation": operation}

    if isinstance(error, ApiError):
        return error

    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        status = response.status_code
        body_code = _BODY_CODES.get(extract_error_code(response) or "")
        context["status"] = status

        if status == 404 or body_code is ApiErrorCode.PRODUCT_NOT_FOUND:
            suffix = f": {identifier}" if identifier else ""
            return ApiError(
                f"Product not found{suffix}",
                ApiErrorCode.PRODUCT_NOT_FOUND,
                context,
            )

        if status == 429 or body_code is ApiErrorCode.RATE_LIMIT_EXCEEDED:
            context["retry_after"] = response.headers.get("retry-after")
            return ApiError(
                "Rate limit exceeded",
                ApiErrorCode.RATE_LIMIT_EXCEEDED,
                context,
            )

        if status in (401, 403):
            return ApiError(
                "Invalid API key or unauthorized",
                ApiErrorCode.UNAUTHORIZED,
                context,
            )

        context["original_error"] = str(error)
        return ApiError(
            f"Upstream request failed with status {status}",
            ApiErrorCode.NETWORK_ERROR,
            context,
        )

    if isinstance(error, httpx.HTTPError):
        context["original_error"] = str(error) or type(error).__name__
        return ApiError(
            f"Upstream request failed: {type(error).__name__}",
            ApiErrorCode.NETWORK_ERROR,
            context,
        )

    context["original_error"] = str(error)
    return ApiError(
        "Unknown error occurred",
        ApiErrorCode.UNKNOWN_ERROR,
        context,
    )
