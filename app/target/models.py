"""
==============================================================================
Target API Models
==============================================================================

Pydantic models for client configuration and per-call options.

Upstream response bodies are passed through as plain JSON dicts; the
gateway does not remodel RedCircle's payloads.

==============================================================================
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from app.config import Settings


# Raw upstream JSON body
Payload = Dict[str, Any]


class TargetApiConfig(BaseModel):
    """
    Explicit configuration for TargetApiClient.

    Attributes:
        api_key: RedCircle API key
        base_url: RedCircle request endpoint
        timeout: Default per-request timeout in seconds
        product_ttl: TTL for product entries in the product cache
        search_ttl: TTL for search entries in the product cache
        stock_ttl: TTL for entries in the stock cache
        health_check_tcin: Known-good TCIN for the health check
    """

    model_config = ConfigDict(frozen=True)

    api_key: SecretStr = Field(default=SecretStr(""))
    base_url: str = Field(default="https://api.redcircleapi.com/request")
    timeout: float = Field(default=10.0, gt=0)
    product_ttl: float = Field(default=3600, gt=0)
    search_ttl: float = Field(default=300, gt=0)
    stock_ttl: float = Field(default=60, gt=0)
    health_check_tcin: str = Field(default="78025470")

    @classmethod
    def from_settings(cls, settings: Settings) -> "TargetApiConfig":
        """Build the client configuration from application settings."""
        return cls(
            api_key=SecretStr(settings.target_api_key),
            base_url=settings.target_api_base_url,
            timeout=settings.target_api_timeout_seconds,
            product_ttl=settings.product_cache_ttl_seconds,
            search_ttl=settings.search_cache_ttl_seconds,
            stock_ttl=settings.stock_cache_ttl_seconds,
            health_check_tcin=settings.health_check_tcin,
        )


class RequestOptions(BaseModel):
    """
    Per-call request options.

    Attributes:
        skip_cache: Bypass the cache lookup and force an upstream call
        timeout: Override the default timeout (seconds)
    """

    model_config = ConfigDict(frozen=True)

    skip_cache: bool = False
    timeout: Optional[float] = Field(default=None, gt=0)
