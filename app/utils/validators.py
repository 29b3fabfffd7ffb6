"""
==============================================================================
Validation Utilities Module
==============================================================================

Validation classes for request parameters.

This module implements:
- TcinValidator: Target product ids (8-10 digits)
- GtinValidator: UPC/GTIN barcodes (8-14 digits)
- ZipCodeValidator: US zip codes (12345 or 12345-6789)
- SearchQueryValidator: search term and page number

Each validator returns a tuple so callers can report the exact reason
a value was rejected.

==============================================================================
"""

from __future__ import annotations

import re
from typing import Optional, Tuple


class TcinValidator:
    """
    Validator for Target TCINs.

    Example:
        >>> TcinValidator().validate("78025470")
        (True, None)
        >>> TcinValidator().validate("123")
        (False, 'Invalid TCIN format. Must be 8-10 digits.')
    """

    PATTERN = re.compile(r"[0-9]{8,10}")

    def validate(self, tcin: Optional[str]) -> Tuple[bool, Optional[str]]:
        """
        Validate a TCIN.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not tcin or not self.PATTERN.fullmatch(tcin):
            return False, "Invalid TCIN format. Must be 8-10 digits."
        return True, None

    def is_valid(self, tcin: Optional[str]) -> bool:
        """Quick validation check."""
        is_valid, _ = self.validate(tcin)
        return is_valid


class GtinValidator:
    """Validator for UPC/GTIN barcodes."""

    PATTERN = re.compile(r"[0-9]{8,14}")

    def validate(self, gtin: Optional[str]) -> Tuple[bool, Optional[str]]:
        """
        Validate a UPC/GTIN.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not gtin or not self.PATTERN.fullmatch(gtin):
            return False, "Invalid UPC/GTIN format. Must be 8-14 digits."
        return True, None

    def is_valid(self, gtin: Optional[str]) -> bool:
        """Quick validation check."""
        is_valid, _ = self.validate(gtin)
        return is_valid


class ZipCodeValidator:
    """Validator for US zip codes."""

    PATTERN = re.compile(r"[0-9]{5}(-[0-9]{4})?")

    def validate(self, zipcode: Optional[str]) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Validate and normalize a zip code.

        Returns:
            Tuple of (is_valid, normalized_zip, error_message)
        """
        if not zipcode or not zipcode.strip():
            return False, None, "Zip code is required"

        zipcode = zipcode.strip()
        if not self.PATTERN.fullmatch(zipcode):
            return False, None, "Invalid zip code format. Must be 5 digits (optionally ZIP+4)."

        return True, zipcode, None


class SearchQueryValidator:
    """
    Validator for search parameters.

    Rules:
    - Search term must not be empty after trimming
    - Page must be a positive integer (defaults to 1 when omitted)
    """

    PAGE_PATTERN = re.compile(r"[0-9]+")

    def validate_term(self, term: Optional[str]) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Validate and trim a search term.

        Returns:
            Tuple of (is_valid, trimmed_term, error_message)
        """
        if term is None or not term.strip():
            return False, None, "Search term is required and must not be empty"
        return True, term.strip(), None

    def validate_page(self, page: Optional[str]) -> Tuple[bool, Optional[int], Optional[str]]:
        """
        Parse and validate a page number.

        Returns:
            Tuple of (is_valid, page_number, error_message)
        """
        if page is None or page == "":
            return True, 1, None

        page = page.strip()
        if not self.PAGE_PATTERN.fullmatch(page) or int(page) < 1:
            return False, None, "Page must be a positive integer"

        return True, int(page), None


# =============================================================================
# MODULE-LEVEL SHORTCUTS
# =============================================================================

_tcin_validator = TcinValidator()
_gtin_validator = GtinValidator()


def is_valid_tcin(tcin: Optional[str]) -> bool:
    """True if ``tcin`` is 8-10 digits."""
    return _tcin_validator.is_valid(tcin)


def is_valid_gtin(gtin: Optional[str]) -> bool:
    """True if ``gtin`` is 8-14 digits."""
    return _gtin_validator.is_valid(gtin)
