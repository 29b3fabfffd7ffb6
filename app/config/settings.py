"""
==============================================================================
Application Settings Module
==============================================================================

Configuration management using Pydantic Settings.

This module implements the Singleton pattern to ensure a single global
configuration instance throughout the application lifecycle.

Features:
---------
- Environment variable loading with type validation
- .env file support for local development
- Upstream (RedCircle) API credentials and cache TTLs

Configuration Priority (highest to lowest):
------------------------------------------
1. Environment variables
2. .env file
3. Default values

Security Considerations:
-----------------------
- Never commit .env files to version control
- TARGET_API_KEY is a secret; it is never logged

==============================================================================
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Module logger
logger = logging.getLogger(__name__)


DEFAULT_TARGET_API_BASE_URL = "https://api.redcircleapi.com/request"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_name: Display name for the application
        app_env: Environment mode (development/staging/production/test)
        debug: Enable debug mode for verbose logging
        host: Server bind address
        port: Server port number
        cors_origins: Allowed CORS origins (JSON array string)
        target_api_key: RedCircle API key (TARGET_API_KEY)
        target_api_base_url: RedCircle request endpoint (TARGET_API_BASE_URL)
        target_api_timeout_seconds: Default upstream request timeout
        product_cache_ttl_seconds: TTL for product detail entries
        search_cache_ttl_seconds: TTL for search result entries
        stock_cache_ttl_seconds: TTL for store stock entries
        health_check_tcin: Known-good TCIN used by the upstream health check

    Example:
        >>> settings = Settings()
        >>> print(settings.target_api_base_url)
        'https://api.redcircleapi.com/request'
        >>> print(settings.is_production)
        False
    """

    # =========================================================================
    # PYDANTIC SETTINGS CONFIGURATION
    # =========================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    # =========================================================================
    # APPLICATION SETTINGS
    # =========================================================================
    app_name: str = Field(
        default="Target Product Gateway",
        description="Display name for the application"
    )

    app_env: str = Field(
        default="development",
        description="Environment mode: development, staging, production, test"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode for verbose logging"
    )

    # =========================================================================
    # SERVER SETTINGS
    # =========================================================================
    host: str = Field(
        default="0.0.0.0",
        description="Server bind address"
    )

    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Server port number"
    )

    cors_origins: str = Field(
        default='["*"]',
        description="Allowed CORS origins as JSON array string"
    )

    # =========================================================================
    # UPSTREAM API SETTINGS
    # =========================================================================
    target_api_key: str = Field(
        default="",
        description="RedCircle API key, sent as the api_key query parameter"
    )

    target_api_base_url: str = Field(
        default=DEFAULT_TARGET_API_BASE_URL,
        description="RedCircle request endpoint"
    )

    target_api_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Default per-request upstream timeout"
    )

    health_check_tcin: str = Field(
        default="78025470",
        pattern=r"^\d{8,10}$",
        description="Known-good TCIN used by the upstream health check"
    )

    # =========================================================================
    # CACHE SETTINGS
    # =========================================================================
    product_cache_ttl_seconds: int = Field(
        default=3600,
        ge=1,
        description="TTL for cached product details"
    )

    search_cache_ttl_seconds: int = Field(
        default=300,
        ge=1,
        description="TTL for cached search results"
    )

    stock_cache_ttl_seconds: int = Field(
        default=60,
        ge=1,
        description="TTL for cached store stock (inventory is volatile)"
    )

    # =========================================================================
    # VALIDATORS
    # =========================================================================
    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, value: str) -> str:
        """
        Validate and normalize application environment.

        Unknown values fall back to 'development' with a warning.
        """
        valid_envs = {"development", "staging", "production", "test"}
        normalized = value.lower().strip()

        if normalized not in valid_envs:
            logger.warning(
                f"Unknown environment '{value}', defaulting to 'development'"
            )
            return "development"

        return normalized

    @field_validator("target_api_base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        """Require an absolute http(s) URL and drop any trailing slash."""
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError(
                f"TARGET_API_BASE_URL must be an http(s) URL, got: {value!r}"
            )
        return value.rstrip("/")

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================
    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def is_test(self) -> bool:
        """Check if running under the test suite."""
        return self.app_env == "test"

    @property
    def has_api_key(self) -> bool:
        """Check whether an upstream API key is configured."""
        return bool(self.target_api_key.strip())

    @property
    def cors_origins_list(self) -> List[str]:
        """
        Parse CORS origins from JSON string to list.

        Returns:
            List of allowed origin strings
        """
        try:
            origins = json.loads(self.cors_origins)
            if isinstance(origins, list):
                return origins
            return ["*"]
        except json.JSONDecodeError:
            logger.warning(
                f"Invalid CORS origins JSON: {self.cors_origins}, "
                "defaulting to ['*']"
            )
            return ["*"]

    def __repr__(self) -> str:
        """String representation for debugging (never includes the API key)."""
        return (
            f"Settings(app_name={self.app_name!r}, "
            f"app_env={self.app_env!r}, "
            f"debug={self.debug}, "
            f"target_api_base_url={self.target_api_base_url!r}, "
            f"has_api_key={self.has_api_key})"
        )


# =============================================================================
# SINGLETON INSTANCE MANAGEMENT
# =============================================================================

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the global Settings instance (singleton pattern).

    Uses lru_cache to ensure only one Settings instance is created
    throughout the application lifecycle.

    Returns:
        Global Settings instance
    """
    settings = Settings()

    if settings.debug:
        logger.info(f"Configuration loaded: {settings}")

    return settings
