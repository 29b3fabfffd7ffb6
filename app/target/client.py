"""
==============================================================================
Target RedCircle API Client
==============================================================================

Async caching client for the RedCircle product-data API.

Every upstream call goes to a single endpoint and is dispatched by the
``type`` query parameter:

    type=product       tcin=<id> | gtin=<barcode>
    type=store_stock   tcin=<id>, store_stock_zipcode=<zip>
    type=search        search_term=<term>, page=<n>[, sort_by=<key>]

Request Template:
----------------
1. Build the cache key from the logical query
2. Return a live cache entry unless ``skip_cache`` is set
3. GET the endpoint with api_key + type + operation parameters
4. Cache and return the raw JSON body
5. On failure raise a classified ApiError (no retries)

Bulk operations fan out with asyncio.gather. A failed item is logged and
left out of the result mapping; it never fails the batch.

==============================================================================
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

import httpx

from app.cache import TTLCache, keys
from .errors import ApiError, ApiErrorCode, classify_error
from .models import Payload, RequestOptions, TargetApiConfig


# Module logger
logger = logging.getLogger(__name__)


_DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "target-product-gateway/1.0",
}

_NO_OPTIONS = RequestOptions()

_ASCII_DIGITS = re.compile(r"[0-9]+")


class TargetApiClient:
    """
    Caching client for the RedCircle API.

    Owns two caches: one for product and search payloads, one for store
    stock. Both are created here unless injected.

    Example:
        >>> client = TargetApiClient(TargetApiConfig(api_key="..."))
        >>> product = await client.get_product_by_tcin("78025470")
        >>> stock = await client.check_store_stock("78025470", "04457")
        >>> await client.aclose()
    """

    def __init__(
        self,
        config: TargetApiConfig,
        *,
        http: Optional[httpx.AsyncClient] = None,
        product_cache: Optional[TTLCache] = None,
        stock_cache: Optional[TTLCache] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            config: API key, base URL, timeout and cache TTLs
            http: Shared httpx.AsyncClient; one is created and owned if omitted
            product_cache: Cache for product and search payloads
            stock_cache: Cache for store stock payloads
        """
        self._config = config
        self._base_url = config.base_url.rstrip("/")

        self._owns_http = http is None
        self._client = http or httpx.AsyncClient(
            timeout=config.timeout,
            headers=_DEFAULT_HEADERS.copy(),
        )

        self._product_cache = (
            product_cache if product_cache is not None
            else TTLCache("product", config.product_ttl)
        )
        self._stock_cache = (
            stock_cache if stock_cache is not None
            else TTLCache("stock", config.stock_ttl)
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance owns it."""
        if self._owns_http and not self._client.is_closed:
            await self._client.aclose()

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def config(self) -> TargetApiConfig:
        return self._config

    @property
    def product_cache(self) -> TTLCache:
        return self._product_cache

    @property
    def stock_cache(self) -> TTLCache:
        return self._stock_cache

    # =========================================================================
    # PRODUCT INFORMATION
    # =========================================================================

    async def get_product_by_tcin(
        self,
        tcin: str,
        options: Optional[RequestOptions] = None
    ) -> Payload:
        """
        Get product details by TCIN.

        Raises:
            ApiError: If the upstream call fails
        """
        return await self._cached_request(
            cache=self._product_cache,
            key=keys.product_key(tcin),
            ttl=self._config.product_ttl,
            params={"type": "product", "tcin": tcin},
            identifier=f"TCIN {tcin}",
            operation="get_product_by_tcin",
            options=options,
        )

    async def get_full_product_by_tcin(
        self,
        tcin: str,
        options: Optional[RequestOptions] = None
    ) -> Payload:
        """
        Get the complete product payload (variants, specifications, ...).

        Same upstream call as get_product_by_tcin, cached under its own key.
        """
        return await self._cached_request(
            cache=self._product_cache,
            key=keys.full_product_key(tcin),
            ttl=self._config.product_ttl,
            params={"type": "product", "tcin": tcin},
            identifier=f"TCIN {tcin}",
            operation="get_full_product_by_tcin",
            options=options,
        )

    async def get_product_by_gtin(
        self,
        gtin: str,
        options: Optional[RequestOptions] = None
    ) -> Payload:
        """Get product details by UPC/GTIN barcode."""
        return await self._cached_request(
            cache=self._product_cache,
            key=keys.gtin_key(gtin),
            ttl=self._config.product_ttl,
            params={"type": "product", "gtin": gtin},
            identifier=f"GTIN {gtin}",
            operation="get_product_by_gtin",
            options=options,
        )

    async def get_bulk_products(
        self,
        tcins: Iterable[str],
        options: Optional[RequestOptions] = None
    ) -> Dict[str, Payload]:
        """
        Get several products concurrently.

        Returns:
            Mapping of TCIN to product payload; failed TCINs are omitted
        """
        tcins = list(tcins)
        logger.debug(f"[Target API] Fetching {len(tcins)} product details")

        return await self._gather_bulk(
            tcins,
            lambda tcin: self.get_product_by_tcin(tcin, options),
            "product",
        )

    # =========================================================================
    # STORE STOCK
    # =========================================================================

    async def check_store_stock(
        self,
        tcin: str,
        zipcode: str,
        store_id: Optional[str] = None,
        options: Optional[RequestOptions] = None
    ) -> Payload:
        """
        Check store stock for a TCIN near a zip code.

        The upstream returns every store within range of the zip code and
        has no store filter, so ``store_id`` is accepted for compatibility
        but neither sent nor part of the cache key. Callers filter
        ``store_stock_results`` themselves.
        """
        return await self._cached_request(
            cache=self._stock_cache,
            key=keys.stock_key(zipcode, tcin),
            ttl=self._config.stock_ttl,
            params={
                "type": "store_stock",
                "tcin": tcin,
                "store_stock_zipcode": zipcode,
            },
            identifier=f"TCIN {tcin}",
            operation="check_store_stock",
            options=options,
        )

    async def check_bulk_store_stock(
        self,
        tcins: Iterable[str],
        zipcode: str,
        store_id: Optional[str] = None,
        options: Optional[RequestOptions] = None
    ) -> Dict[str, Payload]:
        """
        Check store stock for several TCINs concurrently.

        Returns:
            Mapping of TCIN to stock payload; failed TCINs are omitted
        """
        tcins = list(tcins)
        logger.debug(f"[Target API] Checking bulk stock for {len(tcins)} products")

        return await self._gather_bulk(
            tcins,
            lambda tcin: self.check_store_stock(tcin, zipcode, store_id, options),
            "stock",
        )

    # =========================================================================
    # SEARCH
    # =========================================================================

    async def search_products(
        self,
        search_term: str,
        page: int = 1,
        sort_by: Optional[str] = None,
        options: Optional[RequestOptions] = None
    ) -> Payload:
        """
        Search Target products.

        Args:
            search_term: Search keywords
            page: 1-based page number
            sort_by: Upstream sort key (e.g. "best_seller", "price_low_to_high")
            options: Request options

        Returns:
            Search payload with search_results, pagination, facets, ...
        """
        params: Dict[str, Any] = {
            "type": "search",
            "search_term": search_term,
            "page": str(page),
        }
        if sort_by:
            params["sort_by"] = sort_by

        return await self._cached_request(
            cache=self._product_cache,
            key=keys.search_key(search_term, page, sort_by),
            ttl=self._config.search_ttl,
            params=params,
            identifier=f"Search: {search_term}",
            operation="search_products",
            options=options,
        )

    # =========================================================================
    # HEALTH
    # =========================================================================

    async def check_api_health(self) -> bool:
        """
        Check the upstream with a forced lookup of a known product.

        Returns:
            True if the lookup succeeded, False on any failure
        """
        tcin = self._config.health_check_tcin
        try:
            await self.get_product_by_tcin(tcin, RequestOptions(skip_cache=True))
            return True
        except ApiError as error:
            logger.error(
                f"❌ [Target API] Health check failed: "
                f"{error.code.value} - {error.message}"
            )
            return False

    # =========================================================================
    # INTERNALS
    # =========================================================================

    async def _cached_request(
        self,
        *,
        cache: TTLCache,
        key: str,
        ttl: float,
        params: Dict[str, Any],
        identifier: str,
        operation: str,
        options: Optional[RequestOptions],
    ) -> Payload:
        """Serve from cache or fetch, cache and return."""
        options = options or _NO_OPTIONS

        if not options.skip_cache:
            cached = cache.get(key)
            if cached is not None:
                return cached

        payload = await self._request(
            params,
            timeout=options.timeout or self._config.timeout,
            identifier=identifier,
            operation=operation,
        )
        cache.set(key, payload, ttl)
        return payload

    async def _request(
        self,
        params: Dict[str, Any],
        *,
        timeout: float,
        identifier: str,
        operation: str,
    ) -> Payload:
        """Issue one GET against the upstream endpoint."""
        query = {"api_key": self._config.api_key.get_secret_value(), **params}

        logger.debug(
            f"[Target API] {operation} ({identifier}) "
            f"params={self.redact(query)}"
        )

        try:
            response = await self._client.get(
                self._base_url,
                params=query,
                timeout=timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except Exception as error:
            raise classify_error(error, identifier, operation) from error

        if not isinstance(payload, dict):
            raise ApiError(
                "Malformed upstream response",
                ApiErrorCode.UNKNOWN_ERROR,
                {
                    "identifier": identifier,
                    "operation": operation,
                    "original_error": f"expected JSON object, got {type(payload).__name__}",
                },
            )

        return payload

    async def _gather_bulk(
        self,
        identifiers: List[str],
        fetch: Callable[[str], Awaitable[Payload]],
        label: str,
    ) -> Dict[str, Payload]:
        """Run ``fetch`` for every identifier concurrently and merge results."""

        async def fetch_one(identifier: str):
            try:
                return identifier, await fetch(identifier)
            except ApiError as error:
                logger.warning(
                    f"⚠️ [Target API] Failed to fetch {label} for {identifier}: "
                    f"{error.code.value} - {error.message}"
                )
                return identifier, None

        results = await asyncio.gather(*(fetch_one(i) for i in identifiers))

        mapping: Dict[str, Payload] = {}
        for identifier, payload in results:
            if payload is None:
                continue
            for alias in self.lookup_keys(identifier):
                mapping[alias] = payload

        return mapping

    @staticmethod
    def lookup_keys(identifier: str) -> List[str]:
        """
        Keys a bulk result is stored under.

        The identifier as given, plus its canonical decimal form when it is
        numeric (so "0078025470" is also reachable as "78025470").
        """
        aliases = [identifier]
        stripped = identifier.strip()
        if _ASCII_DIGITS.fullmatch(stripped):
            canonical = str(int(stripped))
            if canonical != identifier:
                aliases.append(canonical)
        return aliases

    @staticmethod
    def redact(params: Dict[str, Any]) -> Dict[str, Any]:
        """Copy of ``params`` safe for logging."""
        if "api_key" not in params:
            return dict(params)
        return {**params, "api_key": "[REDACTED]"}
