"""
==============================================================================
Target Package - RedCircle API Integration
==============================================================================

Async caching client for Target product data served by RedCircle.

Classes:
--------
- TargetApiClient: product, barcode, store stock and search lookups
- TargetApiConfig: explicit client configuration
- RequestOptions: per-call cache bypass and timeout
- ApiError / ApiErrorCode: typed upstream failures

==============================================================================
"""

from .errors import ApiError, ApiErrorCode, classify_error
from .models import Payload, RequestOptions, TargetApiConfig
from .client import TargetApiClient

__all__ = [
    "ApiError",
    "ApiErrorCode",
    "classify_error",
    "Payload",
    "RequestOptions",
    "TargetApiConfig",
    "TargetApiClient",
]
