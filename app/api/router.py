"""
==============================================================================
Main API Router
==============================================================================

Combines all API routes under the /api prefix.

==============================================================================
"""

from fastapi import APIRouter

from app.api.routes import health, products


class MainAPIRouter:
    """
    Main API router combining all route modules.

    Provides a single entry point for all API endpoints.
    """

    def __init__(self):
        """Initialize the main router with all sub-routers."""
        self._router = APIRouter(prefix="/api")
        self._include_routers()

    def _include_routers(self) -> None:
        """Include all routers."""
        self._router.include_router(health.router)
        self._router.include_router(products.router)

    @property
    def router(self):
        """Get the FastAPI router instance."""
        return self._router


# Create main API router instance
api_router = MainAPIRouter().router
