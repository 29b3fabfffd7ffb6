"""
==============================================================================
Pytest Configuration and Fixtures
==============================================================================

Provides settings, a mocked upstream (respx), the API client and the
FastAPI test client.

==============================================================================
"""

import asyncio
import os

os.environ.setdefault("APP_ENV", "test")

import pytest
import respx
from typing import Any, Callable, Dict, Generator, Optional
from fastapi.testclient import TestClient

from app.main import app
from app.config import Settings, get_settings
from app.core.dependencies import get_target_client
from app.target import TargetApiClient, TargetApiConfig


BASE_URL = "https://api.redcircle.test/request"


# ============================================================================
# CLOCK
# ============================================================================

class FakeClock:
    """Manually advanced time source for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================================================
# SETTINGS FIXTURES
# ============================================================================

@pytest.fixture
def settings() -> Settings:
    """Settings pointing at the mocked upstream."""
    return Settings(
        app_env="test",
        target_api_key="test-key",
        target_api_base_url=BASE_URL,
    )


@pytest.fixture
def production_settings() -> Settings:
    """Production-mode settings (error messages redacted)."""
    return Settings(
        app_env="production",
        target_api_key="test-key",
        target_api_base_url=BASE_URL,
    )


# ============================================================================
# UPSTREAM FIXTURES
# ============================================================================

@pytest.fixture
def upstream() -> Generator[respx.MockRouter, None, None]:
    """Mock every outgoing httpx request; unmatched requests fail."""
    with respx.mock(assert_all_called=False) as mock:
        yield mock


@pytest.fixture
def product_payload() -> Callable[..., Dict[str, Any]]:
    """Factory for RedCircle type=product bodies."""
    def build(tcin: str = "78025470", title: str = "Highlighter Pens, 6ct") -> Dict[str, Any]:
        return {
            "request_info": {"success": True, "credits_used": 1},
            "request_metadata": {"created_at": "2026-10-16T12:00:00Z", "processed_at": "2026-10-16T12:00:01Z"},
            "product": {
                "tcin": tcin,
                "title": title,
                "link": f"https://www.target.com/p/-/A-{tcin}",
            },
            "location_info": {"zipcode": "04457"},
        }
    return build


@pytest.fixture
def stock_payload() -> Callable[..., Dict[str, Any]]:
    """Factory for RedCircle type=store_stock bodies."""
    def build(tcin: str = "78025470") -> Dict[str, Any]:
        return {
            "request_info": {"success": True},
            "store_stock_results": [
                {"store_id": "1234", "store_name": "Bangor", "in_stock": True, "stock_level": 7},
                {"store_id": "5678", "store_name": "Augusta", "in_stock": False, "stock_level": 0},
            ],
            "product": {"tcin": tcin},
        }
    return build


@pytest.fixture
def search_payload() -> Callable[..., Dict[str, Any]]:
    """Factory for RedCircle type=search bodies."""
    def build(results: Optional[list] = None) -> Dict[str, Any]:
        results = [{"product": {"tcin": "78025470", "title": "Highlighter Pens"}}] if results is None else results
        return {
            "request_info": {"success": True},
            "request_metadata": {"created_at": "2026-10-16T12:00:00Z"},
            "search_results": results,
            "pagination": {"current_page": 1, "total_pages": 3, "total_results": 61},
            "facets": [{"name": "Brand"}],
            "categories": [{"name": "School Supplies"}],
            "related_queries": [{"query": "markers"}],
        }
    return build


# ============================================================================
# CLIENT FIXTURES
# ============================================================================

@pytest.fixture
def target_client(settings: Settings) -> Generator[TargetApiClient, None, None]:
    """API client talking to the mocked upstream; closed on teardown."""
    target = TargetApiClient(TargetApiConfig.from_settings(settings))
    yield target
    asyncio.run(target.aclose())


@pytest.fixture
def make_client() -> Generator[Callable[..., TargetApiClient], None, None]:
    """Factory for API clients with custom config or caches; all closed on teardown."""
    created = []

    def build(product_cache=None, stock_cache=None, **overrides) -> TargetApiClient:
        values = {"api_key": "test-key", "base_url": BASE_URL}
        values.update(overrides)
        target = TargetApiClient(
            TargetApiConfig(**values),
            product_cache=product_cache,
            stock_cache=stock_cache,
        )
        created.append(target)
        return target

    yield build

    for target in created:
        asyncio.run(target.aclose())


@pytest.fixture
def client(
    target_client: TargetApiClient,
    settings: Settings
) -> Generator[TestClient, None, None]:
    """Create test client with the upstream client and settings overridden."""
    app.dependency_overrides[get_target_client] = lambda: target_client
    app.dependency_overrides[get_settings] = lambda: settings

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
