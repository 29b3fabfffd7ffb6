"""
==============================================================================
Target API Client Tests
==============================================================================

Tests for caching, parameter dispatch, bulk fan-out and error mapping of
TargetApiClient against a respx-mocked upstream.

==============================================================================
"""

import logging

import httpx
import pytest

from app.cache import TTLCache
from app.target import (
    ApiError,
    ApiErrorCode,
    RequestOptions,
    TargetApiClient,
    TargetApiConfig,
)

from conftest import BASE_URL


class TestCaching:
    """Tests for the cache-first request template."""

    @pytest.mark.asyncio
    async def test_repeat_lookup_hits_cache(self, target_client, upstream, product_payload):
        """Second lookup of the same TCIN is served from cache."""
        route = upstream.get(BASE_URL).mock(
            return_value=httpx.Response(200, json=product_payload())
        )

        first = await target_client.get_product_by_tcin("78025470")
        second = await target_client.get_product_by_tcin("78025470")

        assert first == second
        assert route.call_count == 1

    @pytest.mark.asyncio
    async def test_skip_cache_forces_upstream_call(self, target_client, upstream, product_payload):
        """skip_cache bypasses a live entry."""
        route = upstream.get(BASE_URL).mock(
            side_effect=lambda request: httpx.Response(200, json=product_payload())
        )

        await target_client.get_product_by_tcin("78025470")
        await target_client.get_product_by_tcin("78025470", RequestOptions(skip_cache=True))

        assert route.call_count == 2

    def test_injected_empty_caches_are_used(self, make_client, clock):
        """Empty injected caches are kept, not replaced by fresh ones."""
        product_cache = TTLCache("product", 3600, clock=clock)
        stock_cache = TTLCache("stock", 60, clock=clock)

        client = make_client(product_cache=product_cache, stock_cache=stock_cache)

        assert client.product_cache is product_cache
        assert client.stock_cache is stock_cache

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self, make_client, upstream, product_payload, clock):
        """Product entries expire once the product TTL has elapsed."""
        client = make_client(product_cache=TTLCache("product", 3600, clock=clock))
        route = upstream.get(BASE_URL).mock(
            side_effect=lambda request: httpx.Response(200, json=product_payload())
        )

        await client.get_product_by_tcin("78025470")
        clock.advance(3599)
        await client.get_product_by_tcin("78025470")
        assert route.call_count == 1

        clock.advance(1)
        await client.get_product_by_tcin("78025470")
        assert route.call_count == 2

    @pytest.mark.asyncio
    async def test_search_uses_search_ttl(self, make_client, upstream, search_payload, clock):
        """Search entries use the shorter search TTL in the shared cache."""
        client = make_client(
            product_cache=TTLCache("product", 3600, clock=clock),
            search_ttl=300,
        )
        route = upstream.get(BASE_URL).mock(
            side_effect=lambda request: httpx.Response(200, json=search_payload())
        )

        await client.search_products("pens")
        clock.advance(300)
        await client.search_products("pens")

        assert route.call_count == 2

    @pytest.mark.asyncio
    async def test_stock_uses_stock_cache_ttl(self, make_client, upstream, stock_payload, clock):
        """Stock entries live in the injected stock cache with the stock TTL."""
        stock_cache = TTLCache("stock", 60, clock=clock)
        client = make_client(stock_cache=stock_cache, stock_ttl=60)
        route = upstream.get(BASE_URL).mock(
            side_effect=lambda request: httpx.Response(200, json=stock_payload())
        )

        await client.check_store_stock("78025470", "04457")
        assert len(stock_cache) == 1

        clock.advance(60)
        await client.check_store_stock("78025470", "04457")
        assert route.call_count == 2

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, target_client, upstream, product_payload):
        """A failed lookup leaves no entry behind."""
        responses = iter([
            httpx.Response(500, json={}),
            httpx.Response(200, json=product_payload()),
        ])
        route = upstream.get(BASE_URL).mock(side_effect=lambda request: next(responses))

        with pytest.raises(ApiError):
            await target_client.get_product_by_tcin("78025470")
        product = await target_client.get_product_by_tcin("78025470")

        assert product["product"]["tcin"] == "78025470"
        assert route.call_count == 2

    @pytest.mark.asyncio
    async def test_stock_and_product_caches_are_separate(self, target_client, upstream, stock_payload):
        """Stock payloads never land in the product cache."""
        upstream.get(BASE_URL).mock(return_value=httpx.Response(200, json=stock_payload()))

        await target_client.check_store_stock("78025470", "04457")

        assert len(target_client.stock_cache) == 1
        assert len(target_client.product_cache) == 0

    @pytest.mark.asyncio
    async def test_search_terms_with_colons_do_not_collide(self, target_client, upstream, search_payload):
        """Terms containing ':' are cached apart from look-alike queries."""
        route = upstream.get(BASE_URL).mock(
            side_effect=lambda request: httpx.Response(200, json=search_payload())
        )

        await target_client.search_products("a", page=1, sort_by="x:page2:y")
        await target_client.search_products("a:page1:x", page=2, sort_by="y")

        assert route.call_count == 2
        assert route.calls.last.request.url.params["search_term"] == "a:page1:x"


class TestRequestParameters:
    """Tests for the upstream query parameters of each operation."""

    @pytest.mark.asyncio
    async def test_api_key_and_type_sent(self, target_client, upstream, product_payload):
        """Every call carries api_key and the type dispatch parameter."""
        route = upstream.get(BASE_URL).mock(
            return_value=httpx.Response(200, json=product_payload())
        )

        await target_client.get_product_by_tcin("78025470")

        params = route.calls.last.request.url.params
        assert params["api_key"] == "test-key"
        assert params["type"] == "product"
        assert params["tcin"] == "78025470"

    @pytest.mark.asyncio
    async def test_gtin_lookup(self, target_client, upstream, product_payload):
        """Barcode lookups send gtin instead of tcin."""
        route = upstream.get(BASE_URL).mock(
            return_value=httpx.Response(200, json=product_payload())
        )

        await target_client.get_product_by_gtin("012345678905")

        params = route.calls.last.request.url.params
        assert params["type"] == "product"
        assert params["gtin"] == "012345678905"

    @pytest.mark.asyncio
    async def test_store_id_never_sent_nor_keyed(self, target_client, upstream, stock_payload):
        """store_id is neither sent upstream nor part of the cache key."""
        route = upstream.get(BASE_URL).mock(
            return_value=httpx.Response(200, json=stock_payload())
        )

        first = await target_client.check_store_stock("78025470", "04457", store_id="1234")
        second = await target_client.check_store_stock("78025470", "04457", store_id="9999")
        third = await target_client.check_store_stock("78025470", "04457")

        assert first == second == third
        assert route.call_count == 1

        params = route.calls.last.request.url.params
        assert params["type"] == "store_stock"
        assert params["tcin"] == "78025470"
        assert params["store_stock_zipcode"] == "04457"
        assert "store_id" not in params

    @pytest.mark.asyncio
    async def test_search_pages_cached_separately(self, target_client, upstream, search_payload):
        """Page and sort key are part of the search cache key."""
        route = upstream.get(BASE_URL).mock(
            side_effect=lambda request: httpx.Response(200, json=search_payload())
        )

        await target_client.search_products("pens")
        await target_client.search_products("pens", page=2)
        await target_client.search_products("pens", page=2, sort_by="price_low_to_high")
        await target_client.search_products("pens", page=2, sort_by="price_low_to_high")

        assert route.call_count == 3
        params = route.calls.last.request.url.params
        assert params["search_term"] == "pens"
        assert params["page"] == "2"
        assert params["sort_by"] == "price_low_to_high"

    @pytest.mark.asyncio
    async def test_per_call_timeout_override(self, target_client, upstream, product_payload):
        """RequestOptions.timeout replaces the configured timeout."""
        route = upstream.get(BASE_URL).mock(
            side_effect=lambda request: httpx.Response(200, json=product_payload())
        )

        await target_client.get_product_by_tcin("78025470")
        assert route.calls.last.request.extensions["timeout"]["read"] == 10.0

        await target_client.get_product_by_tcin("78025470", RequestOptions(skip_cache=True, timeout=2.5))
        assert route.calls.last.request.extensions["timeout"]["read"] == 2.5

    @pytest.mark.asyncio
    async def test_api_key_redacted_in_logs(self, target_client, upstream, product_payload, caplog):
        """The API key never appears in client log records."""
        upstream.get(BASE_URL).mock(return_value=httpx.Response(200, json=product_payload()))

        with caplog.at_level(logging.DEBUG, logger="app.target.client"):
            await target_client.get_product_by_tcin("78025470")

        messages = [
            record.getMessage() for record in caplog.records
            if record.name == "app.target.client"
        ]
        assert any("[REDACTED]" in message for message in messages)
        assert not any("test-key" in message for message in messages)


class TestBulkOperations:
    """Tests for concurrent fan-out with per-item isolation."""

    @pytest.mark.asyncio
    async def test_bulk_products_skips_failures(self, target_client, upstream, product_payload):
        """A not-found item is omitted; the others are returned."""
        def respond(request: httpx.Request) -> httpx.Response:
            tcin = request.url.params["tcin"]
            if tcin == "99999999":
                return httpx.Response(404, json={})
            return httpx.Response(200, json=product_payload(tcin=tcin))

        upstream.get(BASE_URL).mock(side_effect=respond)

        result = await target_client.get_bulk_products(["78025470", "99999999", "12345678"])

        assert set(result) == {"78025470", "12345678"}
        assert result["12345678"]["product"]["tcin"] == "12345678"

    @pytest.mark.asyncio
    async def test_bulk_products_transport_failure(self, target_client, upstream, product_payload):
        """A transport failure on one item does not fail the batch."""
        def respond(request: httpx.Request) -> httpx.Response:
            if request.url.params["tcin"] == "11111111":
                raise httpx.ConnectTimeout("timed out", request=request)
            return httpx.Response(200, json=product_payload())

        upstream.get(BASE_URL).mock(side_effect=respond)

        result = await target_client.get_bulk_products(["78025470", "11111111"])

        assert list(result) == ["78025470"]

    @pytest.mark.asyncio
    async def test_bulk_result_keyed_by_canonical_form(self, target_client, upstream, product_payload):
        """Zero-padded TCINs are also reachable by their canonical form."""
        upstream.get(BASE_URL).mock(
            side_effect=lambda request: httpx.Response(200, json=product_payload())
        )

        result = await target_client.get_bulk_products(["0078025470"])

        assert result["0078025470"] is result["78025470"]

    @pytest.mark.asyncio
    async def test_bulk_non_ascii_digits_do_not_abort_batch(self, target_client, upstream, product_payload):
        """Unicode digit characters are kept as given and never break the batch."""
        upstream.get(BASE_URL).mock(
            side_effect=lambda request: httpx.Response(200, json=product_payload())
        )

        result = await target_client.get_bulk_products(["78025470", "²³", "١٢٣٤٥٦٧٨"])

        assert set(result) == {"78025470", "²³", "١٢٣٤٥٦٧٨"}

    @pytest.mark.parametrize("identifier,expected", [
        ("78025470", ["78025470"]),
        ("0078025470", ["0078025470", "78025470"]),
        ("²³", ["²³"]),
        ("١٢٣", ["١٢٣"]),
        ("", [""]),
    ])
    def test_lookup_keys(self, identifier: str, expected: list):
        """Only ASCII-digit identifiers gain a canonical alias."""
        assert TargetApiClient.lookup_keys(identifier) == expected

    @pytest.mark.asyncio
    async def test_bulk_stock(self, target_client, upstream, stock_payload):
        """Bulk stock skips rate-limited items and never sends store_id."""
        def respond(request: httpx.Request) -> httpx.Response:
            if request.url.params["tcin"] == "22222222":
                return httpx.Response(429, headers={"retry-after": "5"}, json={})
            return httpx.Response(200, json=stock_payload(tcin=request.url.params["tcin"]))

        route = upstream.get(BASE_URL).mock(side_effect=respond)

        result = await target_client.check_bulk_store_stock(
            ["78025470", "22222222"], "04457", store_id="1234"
        )

        assert set(result) == {"78025470"}
        assert route.call_count == 2
        for call in route.calls:
            assert "store_id" not in call.request.url.params

    @pytest.mark.asyncio
    async def test_bulk_empty(self, target_client):
        """An empty batch makes no calls and returns an empty mapping."""
        assert await target_client.get_bulk_products([]) == {}


class TestErrorMapping:
    """Tests for typed errors raised by single-item operations."""

    @pytest.mark.asyncio
    async def test_not_found(self, target_client, upstream):
        """404 becomes PRODUCT_NOT_FOUND with identifier and operation context."""
        upstream.get(BASE_URL).mock(return_value=httpx.Response(404, json={}))

        with pytest.raises(ApiError) as exc_info:
            await target_client.get_product_by_tcin("78025470")

        error = exc_info.value
        assert error.code is ApiErrorCode.PRODUCT_NOT_FOUND
        assert error.context["identifier"] == "TCIN 78025470"
        assert error.context["operation"] == "get_product_by_tcin"

    @pytest.mark.asyncio
    async def test_rate_limited_carries_retry_after(self, target_client, upstream):
        """429 becomes RATE_LIMIT_EXCEEDED carrying Retry-After."""
        upstream.get(BASE_URL).mock(
            return_value=httpx.Response(429, headers={"retry-after": "12"}, json={})
        )

        with pytest.raises(ApiError) as exc_info:
            await target_client.search_products("pens")

        assert exc_info.value.code is ApiErrorCode.RATE_LIMIT_EXCEEDED
        assert exc_info.value.retry_after == "12"

    @pytest.mark.asyncio
    async def test_malformed_body(self, target_client, upstream):
        """A non-JSON body becomes UNKNOWN_ERROR."""
        upstream.get(BASE_URL).mock(return_value=httpx.Response(200, text="<html>oops</html>"))

        with pytest.raises(ApiError) as exc_info:
            await target_client.get_product_by_tcin("78025470")

        assert exc_info.value.code is ApiErrorCode.UNKNOWN_ERROR

    @pytest.mark.asyncio
    async def test_non_object_body(self, target_client, upstream):
        """A JSON body that is not an object becomes UNKNOWN_ERROR."""
        upstream.get(BASE_URL).mock(return_value=httpx.Response(200, json=["not", "an", "object"]))

        with pytest.raises(ApiError) as exc_info:
            await target_client.get_product_by_tcin("78025470")

        assert exc_info.value.code is ApiErrorCode.UNKNOWN_ERROR


class TestHealthCheck:
    """Tests for the upstream health check."""

    @pytest.mark.asyncio
    async def test_healthy_bypasses_cache(self, target_client, upstream, product_payload):
        """Each health check goes upstream for the configured TCIN."""
        route = upstream.get(BASE_URL).mock(
            side_effect=lambda request: httpx.Response(200, json=product_payload())
        )

        assert await target_client.check_api_health() is True
        assert await target_client.check_api_health() is True
        assert route.call_count == 2
        assert route.calls.last.request.url.params["tcin"] == "78025470"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403, 404, 500])
    async def test_unhealthy(self, target_client, upstream, status: int):
        """Any upstream error status reports unhealthy."""
        upstream.get(BASE_URL).mock(return_value=httpx.Response(status, json={}))

        assert await target_client.check_api_health() is False

    @pytest.mark.asyncio
    async def test_unreachable(self, target_client, upstream):
        """A connection failure reports unhealthy."""
        upstream.get(BASE_URL).mock(side_effect=httpx.ConnectError("connection refused"))

        assert await target_client.check_api_health() is False


@pytest.fixture
def closed_on_teardown():
    """Clients appended here must be closed once later fixtures are finalized."""
    clients = []
    yield clients
    assert all(target._client.is_closed for target in clients)


class TestLifecycle:
    """Tests for HTTP client ownership."""

    @pytest.mark.asyncio
    async def test_closes_owned_client(self, make_client):
        """aclose closes an HTTP client the instance created."""
        client = make_client()
        await client.aclose()
        assert client._client.is_closed

    @pytest.mark.asyncio
    async def test_aclose_is_idempotent(self, make_client):
        """Closing twice is safe, so fixture teardown after an explicit close works."""
        client = make_client()
        await client.aclose()
        await client.aclose()
        assert client._client.is_closed

    def test_fixture_client_closed_on_teardown(self, closed_on_teardown, request):
        """The target_client fixture closes its HTTP client when finalized."""
        target = request.getfixturevalue("target_client")
        closed_on_teardown.append(target)
        assert not target._client.is_closed

    @pytest.mark.asyncio
    async def test_leaves_injected_client_open(self):
        """aclose leaves an injected HTTP client open."""
        async with httpx.AsyncClient() as http:
            client = TargetApiClient(TargetApiConfig(api_key="test-key", base_url=BASE_URL), http=http)
            await client.aclose()
            assert not http.is_closed
