"""
==============================================================================
Health Check Endpoints
==============================================================================

System health status endpoints for monitoring and orchestration.

==============================================================================
"""

from fastapi import APIRouter, Depends

from app.core.dependencies import get_target_client
from app.target import TargetApiClient


router = APIRouter(prefix="/health", tags=["Health"])


class HealthController:
    """Controller for health check operations."""

    def __init__(self, client: TargetApiClient):
        self._client = client

    async def check_target_api(self) -> str:
        """Check the upstream product API (bypasses the cache)."""
        healthy = await self._client.check_api_health()
        return "healthy" if healthy else "unhealthy"

    def cache_stats(self) -> dict:
        """Entry counts for the in-memory caches."""
        return {
            "product_entries": len(self._client.product_cache),
            "stock_entries": len(self._client.stock_cache),
        }

    async def get_health(self) -> dict:
        """Get full health status."""
        target_status = await self.check_target_api()

        overall = "healthy" if target_status == "healthy" else "degraded"

        return {
            "status": overall,
            "components": {
                "api": "healthy",
                "target_api": target_status,
            },
            "details": {
                "cache": self.cache_stats(),
            },
        }


@router.get("")
async def health_check(client: TargetApiClient = Depends(get_target_client)):
    """
    Health check endpoint.

    Returns gateway status including upstream API reachability.
    """
    controller = HealthController(client)
    return await controller.get_health()


@router.get("/ready")
async def readiness_check():
    """Readiness check for container orchestration."""
    return {"ready": True}


@router.get("/live")
async def liveness_check():
    """Liveness check for container orchestration."""
    return {"alive": True}
