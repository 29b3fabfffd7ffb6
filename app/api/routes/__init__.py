"""
==============================================================================
API Route Modules
==============================================================================

Routers:
--------
- health: Health check endpoints
- products: Product lookup, search and store stock

==============================================================================
"""

from . import health, products

__all__ = ["health", "products"]
