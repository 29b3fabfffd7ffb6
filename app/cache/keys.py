"""
Cache key builders.

Keys depend only on the logical query. Arguments the upstream API ignores
(such as a store id on store stock lookups) never take part in a key.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote


def product_key(tcin: str) -> str:
    """Key for a product-by-TCIN lookup."""
    return f"product:{tcin}"


def full_product_key(tcin: str) -> str:
    """Key for a full product detail lookup."""
    return f"full_product:{tcin}"


def gtin_key(gtin: str) -> str:
    """Key for a product-by-barcode lookup."""
    return f"product_gtin:{gtin}"


def stock_key(zipcode: str, tcin: str) -> str:
    """Key for a store stock lookup."""
    return f"stock:{zipcode}:{tcin}"


def search_key(search_term: str, page: int = 1, sort_by: Optional[str] = None) -> str:
    """
    Key for one page of search results.

    The term and sort key are percent-encoded so a ":" inside either one
    cannot shift the field boundaries.
    """
    term = quote(search_term, safe="")
    sort = quote(sort_by, safe="") if sort_by else "default"
    return f"search:{term}:page{page}:{sort}"
