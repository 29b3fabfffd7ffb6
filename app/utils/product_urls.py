"""
Target product page URL helpers.

Product pages end in ``/A-<tcin>``, e.g.
``https://www.target.com/p/product-name/-/A-78025470``.
"""

from __future__ import annotations

import re
from typing import Optional


TARGET_PRODUCT_URL_PREFIX = "https://www.target.com/p/-/A-"

_TCIN_IN_URL = re.compile(r"/A-([0-9]{8,10})(?![0-9])")


def extract_tcin_from_url(url: str) -> Optional[str]:
    """
    Extract the TCIN from a Target product URL.

    Example:
        >>> extract_tcin_from_url("https://www.target.com/p/product-name/-/A-78025470")
        '78025470'
    """
    match = _TCIN_IN_URL.search(url)
    return match.group(1) if match else None


def generate_product_url(tcin: str) -> str:
    """
    Build the canonical Target product page URL for a TCIN.

    Example:
        >>> generate_product_url("78025470")
        'https://www.target.com/p/-/A-78025470'
    """
    return f"{TARGET_PRODUCT_URL_PREFIX}{tcin}"
