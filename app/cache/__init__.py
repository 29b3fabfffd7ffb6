"""
==============================================================================
Cache Package
==============================================================================

In-memory TTL caching for upstream API responses.

Classes:
--------
- TTLCache: key/value store with passive expiry

Modules:
--------
- keys: deterministic cache key builders

==============================================================================
"""

from . import keys
from .ttl_cache import TTLCache

__all__ = [
    "TTLCache",
    "keys",
]
