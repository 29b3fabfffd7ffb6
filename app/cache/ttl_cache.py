"""
==============================================================================
TTL Cache Module
==============================================================================

In-process key/value cache with per-entry time-to-live.

Behaviour:
----------
- Entries expire passively: staleness is checked when an entry is read
- No background sweeper, no capacity bound, no LRU eviction
- Each instance has its own default TTL; ``set`` may override it per entry

==============================================================================
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple


# Module logger
logger = logging.getLogger(__name__)


class TTLCache:
    """
    Simple TTL cache backed by a dict.

    Attributes:
        name: Label used in log messages (e.g. "product", "stock")
        default_ttl: TTL in seconds applied when ``set`` gets no ttl

    Example:
        >>> cache = TTLCache("product", default_ttl=3600)
        >>> cache.set("product:78025470", {"product": {...}})
        >>> cache.get("product:78025470")
        {'product': {...}}
    """

    def __init__(
        self,
        name: str,
        default_ttl: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize an empty cache.

        Args:
            name: Label used in log messages
            default_ttl: Default TTL in seconds (must be positive)
            clock: Time source returning seconds; injectable for tests
        """
        if default_ttl <= 0:
            raise ValueError(f"default_ttl must be positive, got {default_ttl}")

        self.name = name
        self.default_ttl = default_ttl
        self._clock = clock
        # key -> (expires_at, value)
        self._entries: Dict[str, Tuple[float, Any]] = {}

    def get(self, key: str) -> Optional[Any]:
        """
        Return the live value for ``key``, or None if absent or expired.

        Expired entries are dropped on read.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None

        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            logger.debug(f"[{self.name} cache] expired: {key}")
            return None

        logger.debug(f"[{self.name} cache] hit: {key}")
        return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """
        Store ``value`` under ``key``.

        Args:
            key: Cache key
            value: Payload to cache
            ttl: Seconds until expiry; defaults to ``default_ttl``
        """
        effective_ttl = self.default_ttl if ttl is None else ttl
        if effective_ttl <= 0:
            raise ValueError(f"ttl must be positive, got {effective_ttl}")

        self._entries[key] = (self._clock() + effective_ttl, value)

    def delete(self, key: str) -> bool:
        """Remove ``key``; returns True if an entry was present."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        # Counts stored entries, including ones not yet lazily expired
        return len(self._entries)

    def __repr__(self) -> str:
        return (
            f"TTLCache(name={self.name!r}, default_ttl={self.default_ttl}, "
            f"entries={len(self._entries)})"
        )
