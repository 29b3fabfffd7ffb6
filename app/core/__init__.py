"""
==============================================================================
Core Package
==============================================================================

Core utilities and infrastructure for the application.

This package provides:
- Custom exception handling with consistent error responses
- FastAPI dependencies for the upstream API client
- Exception factory functions for common error scenarios

Modules:
--------
- exceptions: AppException class and error factory functions
- dependencies: FastAPI dependency injection functions

Usage:
------
    from app.core import AppException, get_target_client

    # Or use exception factory functions via module
    from app.core import exceptions
    raise exceptions.product_not_found("Product with TCIN 78025470 not found")

==============================================================================
"""

from .exceptions import (
    AppException,
    register_exception_handlers,
)
from .dependencies import get_target_client

__all__ = [
    # Exceptions
    "AppException",
    "register_exception_handlers",
    # Dependencies
    "get_target_client",
]
