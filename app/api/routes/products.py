"""
==============================================================================
Product Endpoints
==============================================================================

Product lookup, barcode lookup, search and store stock, backed by the
RedCircle API.

Routes:
-------
    GET /api/products/search?q=&page=&sort=
    GET /api/products/upc/{gtin}
    GET /api/products/{tcin}
    GET /api/products/{tcin}/stock?zip=&store_id=

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Dict, List, Optional, TypeVar

from fastapi import APIRouter, Depends, Query

from app.config import Settings, get_settings
from app.core import exceptions
from app.core.dependencies import get_target_client
from app.core.exceptions import AppException
from app.target import ApiError, ApiErrorCode, Payload, TargetApiClient
from app.utils.validators import (
    GtinValidator,
    SearchQueryValidator,
    TcinValidator,
    ZipCodeValidator,
)


# Module logger
logger = logging.getLogger(__name__)

T = TypeVar("T")

router = APIRouter(prefix="/products", tags=["Products"])

_ENVELOPE_KEYS = ("request_info", "request_metadata", "location_info")


class ProductController:
    """
    Controller for product operations.

    Validates request parameters, calls the upstream client and shapes
    the JSON envelope. Upstream ApiErrors are translated to AppExceptions
    here and nowhere else.
    """

    def __init__(self, client: TargetApiClient, settings: Settings):
        self._client = client
        self._settings = settings
        self._tcin_validator = TcinValidator()
        self._gtin_validator = GtinValidator()
        self._zip_validator = ZipCodeValidator()
        self._search_validator = SearchQueryValidator()

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    async def get_by_tcin(self, tcin: str) -> dict:
        """Get detailed product information by TCIN."""
        is_valid, error = self._tcin_validator.validate(tcin)
        if not is_valid:
            raise exceptions.validation_error(error, "tcin", tcin)

        logger.debug(f"[Product Controller] Getting product details for TCIN: {tcin}")

        return await self._guard(
            self._product_response(
                self._client.get_full_product_by_tcin(tcin),
                f"Product with TCIN {tcin} not found",
            ),
            "Failed to fetch product information",
        )

    async def get_by_upc(self, gtin: str) -> dict:
        """Get product information by UPC/GTIN barcode."""
        is_valid, error = self._gtin_validator.validate(gtin)
        if not is_valid:
            raise exceptions.validation_error(error, "gtin", gtin)

        logger.debug(f"[Product Controller] Getting product by UPC/GTIN: {gtin}")

        return await self._guard(
            self._product_response(
                self._client.get_product_by_gtin(gtin),
                f"Product with UPC/GTIN {gtin} not found",
            ),
            "Failed to fetch product information",
        )

    async def search(
        self,
        query: Optional[str],
        page: Optional[str],
        sort: Optional[str]
    ) -> dict:
        """Search Target products."""
        is_valid, term, error = self._search_validator.validate_term(query)
        if not is_valid:
            raise exceptions.validation_error(error, "q", query)

        is_valid, page_number, error = self._search_validator.validate_page(page)
        if not is_valid:
            raise exceptions.validation_error(error, "page", page)

        sort_by = sort.strip() if sort and sort.strip() else None

        logger.debug(f"[Product Controller] Searching for \"{term}\" (page {page_number})")

        return await self._guard(
            self._search_response(term, page_number, sort_by),
            "Failed to search products",
        )

    async def get_stock(
        self,
        tcin: str,
        zipcode: Optional[str],
        store_id: Optional[str]
    ) -> dict:
        """
        Get store availability for a TCIN near a zip code.

        The upstream has no store filter, so ``store_id`` narrows the
        returned store list here.
        """
        is_valid, error = self._tcin_validator.validate(tcin)
        if not is_valid:
            raise exceptions.validation_error(error, "tcin", tcin)

        is_valid, zipcode_normalized, error = self._zip_validator.validate(zipcode)
        if not is_valid:
            raise exceptions.validation_error(error, "zip", zipcode)

        return await self._guard(
            self._stock_response(tcin, zipcode_normalized, store_id),
            "Failed to fetch store availability",
        )

    # =========================================================================
    # RESPONSE SHAPING
    # =========================================================================

    async def _product_response(self, lookup: Awaitable[Payload], not_found_message: str) -> dict:
        """Await a product lookup and wrap its product in the success envelope."""
        payload = await lookup

        if not payload.get("product"):
            raise exceptions.product_not_found(not_found_message)

        response = {"success": True, "data": payload["product"]}
        for key in _ENVELOPE_KEYS:
            if payload.get(key) is not None:
                response[key] = payload[key]
        return response

    async def _search_response(self, term: str, page_number: int, sort_by: Optional[str]) -> dict:
        payload = await self._client.search_products(term, page=page_number, sort_by=sort_by)

        results = payload.get("search_results") or []
        if not results:
            return {
                "success": True,
                "data": {
                    "results": [],
                    "pagination": {
                        "current_page": page_number,
                        "total_pages": 0,
                        "total_results": 0,
                    },
                    "message": "No products found matching your search",
                },
            }

        response = {
            "success": True,
            "data": {
                "results": results,
                "pagination": payload.get("pagination"),
                "facets": payload.get("facets"),
                "categories": payload.get("categories"),
                "related_queries": payload.get("related_queries"),
            },
        }
        for key in ("request_info", "request_metadata"):
            if payload.get(key) is not None:
                response[key] = payload[key]
        return response

    async def _stock_response(self, tcin: str, zipcode: str, store_id: Optional[str]) -> dict:
        payload = await self._client.check_store_stock(tcin, zipcode, store_id)

        stores = self.filter_stores(payload.get("store_stock_results") or [], store_id)

        response = {
            "success": True,
            "data": {
                "tcin": tcin,
                "zipcode": zipcode,
                "store_id": store_id,
                "stores": stores,
                "in_stock_anywhere": any(store.get("in_stock") for store in stores),
            },
        }
        for key in _ENVELOPE_KEYS:
            if payload.get(key) is not None:
                response[key] = payload[key]
        return response

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def filter_stores(stores: List[Dict[str, Any]], store_id: Optional[str]) -> List[Dict[str, Any]]:
        """Keep only ``store_id``'s entry when a store id is given."""
        if not store_id:
            return list(stores)
        return [store for store in stores if str(store.get("store_id")) == str(store_id)]

    async def _guard(self, operation: Awaitable[T], fallback_message: str) -> T:
        """
        Await an upstream call together with its response shaping.

        AppExceptions pass through, ApiErrors are translated and anything
        else (including a malformed payload) becomes a 500.
        """
        try:
            return await operation
        except AppException:
            raise
        except ApiError as error:
            raise self._translate(error, fallback_message) from error
        except Exception as error:
            logger.exception(f"❌ [Product Controller] Unexpected error: {error}")
            raise self._internal(str(error), fallback_message) from error

    def _translate(self, error: ApiError, fallback_message: str) -> AppException:
        """Map a typed upstream error to an HTTP-facing exception."""
        if error.code is ApiErrorCode.PRODUCT_NOT_FOUND:
            return exceptions.product_not_found(error.message)

        if error.code is ApiErrorCode.RATE_LIMIT_EXCEEDED:
            logger.warning(f"⚠️ [Product Controller] Upstream rate limited: {error.context}")
            return exceptions.rate_limited(error.retry_after)

        logger.error(
            f"❌ [Product Controller] Upstream error {error.code.value}: "
            f"{error.message} ({error.context.get('identifier')})"
        )
        return self._internal(error.message, fallback_message)

    def _internal(self, message: str, fallback_message: str) -> AppException:
        """500 error; the real message is hidden in production."""
        if self._settings.is_production:
            return exceptions.internal_error(fallback_message)
        return exceptions.internal_error(message)


def get_product_controller(
    client: TargetApiClient = Depends(get_target_client),
    settings: Settings = Depends(get_settings)
) -> ProductController:
    """Build a ProductController for the current request."""
    return ProductController(client, settings)


# Literal routes are declared before "/{tcin}" so they are matched first.

@router.get("/search")
async def search_products(
    q: Optional[str] = Query(None, description="Search keywords"),
    page: Optional[str] = Query(None, description="1-based page number"),
    sort: Optional[str] = Query(None, description="Sort key, e.g. best_seller"),
    controller: ProductController = Depends(get_product_controller)
):
    """Search products on Target."""
    return await controller.search(q, page, sort)


@router.get("/upc/{gtin}")
async def get_product_by_upc(
    gtin: str,
    controller: ProductController = Depends(get_product_controller)
):
    """Get product by UPC/GTIN barcode."""
    return await controller.get_by_upc(gtin)


@router.get("/{tcin}")
async def get_product_by_tcin(
    tcin: str,
    controller: ProductController = Depends(get_product_controller)
):
    """Get detailed product information by TCIN."""
    return await controller.get_by_tcin(tcin)


@router.get("/{tcin}/stock")
async def get_product_stock(
    tcin: str,
    zip: Optional[str] = Query(None, description="US zip code"),
    store_id: Optional[str] = Query(None, description="Only return this store"),
    controller: ProductController = Depends(get_product_controller)
):
    """Get store availability for a product near a zip code."""
    return await controller.get_stock(tcin, zip, store_id)
