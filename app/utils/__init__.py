"""
==============================================================================
Utilities Package
==============================================================================

Utility classes and functions for the application.

Modules:
--------
- validators: TCIN, barcode, zip code and search parameter validation
- product_urls: Target product page URL parsing and generation

==============================================================================
"""

from .validators import (
    GtinValidator,
    SearchQueryValidator,
    TcinValidator,
    ZipCodeValidator,
    is_valid_gtin,
    is_valid_tcin,
)
from .product_urls import extract_tcin_from_url, generate_product_url

__all__ = [
    "GtinValidator",
    "SearchQueryValidator",
    "TcinValidator",
    "ZipCodeValidator",
    "is_valid_gtin",
    "is_valid_tcin",
    "extract_tcin_from_url",
    "generate_product_url",
]
