"""
==============================================================================
FastAPI Dependencies Module
==============================================================================

Dependency injection for the upstream client and settings.

The TargetApiClient is created once by the application lifespan and kept on
``app.state``; endpoints receive it through ``get_target_client`` so tests
can swap it with ``app.dependency_overrides``.

Usage Examples:
--------------
    @router.get("/{tcin}")
    async def get_product(client: TargetApiClient = Depends(get_target_client)):
        ...

==============================================================================
"""

from __future__ import annotations

from fastapi import Request

from app.core import exceptions
from app.target import TargetApiClient


def get_target_client(request: Request) -> TargetApiClient:
    """
    Return the application's shared TargetApiClient.

    Raises:
        AppException: If the client was not initialized at startup
    """
    client = getattr(request.app.state, "target_client", None)
    if client is None:
        raise exceptions.internal_error("Product API client not initialized")
    return client
