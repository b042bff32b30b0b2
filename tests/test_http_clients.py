"""Tests for HTTP-based adapters."""

import asyncio

import httpx
import pytest

from pufa_check.adapters.off_client import HttpxProductApiClient
from pufa_check.domain.lookup import ProductFound, ProductNotFound
from pufa_check.services.lookup import ProductLookupService


def test_product_client_sends_expected_headers() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"status": 1, "product": {}})

    transport = httpx.MockTransport(handler)
    client = HttpxProductApiClient(
        http_client=httpx.AsyncClient(transport=transport),
        user_agent="PUFA-Check/test",
    )

    payload = asyncio.run(
        client.fetch_json("https://off.test/api/v2/product/1.json", timeout=1)
    )

    assert payload == {"status": 1, "product": {}}
    assert seen[0].method == "GET"
    assert seen[0].headers["Accept"] == "application/json"
    assert seen[0].headers["Accept-Language"] == "en"
    assert seen[0].headers["User-Agent"] == "PUFA-Check/test"


def test_product_client_returns_not_found_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"status": 0, "status_verbose": "not found"})

    transport = httpx.MockTransport(handler)
    client = HttpxProductApiClient(http_client=httpx.AsyncClient(transport=transport))

    payload = asyncio.run(client.fetch_json("https://off.test/x.json", timeout=1))

    assert payload == {"status": 0, "status_verbose": "not found"}


def test_product_client_raises_on_server_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="maintenance")

    transport = httpx.MockTransport(handler)
    client = HttpxProductApiClient(http_client=httpx.AsyncClient(transport=transport))

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(client.fetch_json("https://off.test/x.json", timeout=1))


def test_product_client_raises_on_html_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>rate limited</html>")

    transport = httpx.MockTransport(handler)
    client = HttpxProductApiClient(http_client=httpx.AsyncClient(transport=transport))

    with pytest.raises(ValueError):
        asyncio.run(client.fetch_json("https://off.test/x.json", timeout=1))


def test_lookup_over_http_falls_back_across_hosts() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "world.openfoodfacts.org":
            return httpx.Response(502, text="bad gateway")
        if "/api/v2/" in request.url.path:
            return httpx.Response(
                200,
                json={
                    "status": 1,
                    "product": {
                        "product_name": "Mayo",
                        "ingredients_text_en": "rapeseed oil, egg yolk",
                        "nutriments": {"energy-kj_100g": 2845},
                    },
                },
            )
        return httpx.Response(404, json={"status": 0})

    transport = httpx.MockTransport(handler)
    client = HttpxProductApiClient(http_client=httpx.AsyncClient(transport=transport))
    service = ProductLookupService(api_client=client, timeout_seconds=1)

    result = asyncio.run(service.lookup("5000157024671"))

    assert isinstance(result, ProductFound)
    assert result.source_id == "OFF v2 us"
    assert result.product.ingredients_text == "rapeseed oil, egg yolk"


def test_lookup_over_http_connection_errors_exhaust_endpoints() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    transport = httpx.MockTransport(handler)
    client = HttpxProductApiClient(http_client=httpx.AsyncClient(transport=transport))
    service = ProductLookupService(api_client=client, timeout_seconds=1)

    result = asyncio.run(service.lookup("5000157024671"))

    assert isinstance(result, ProductNotFound)
    assert result.all_failed
    assert len(result.outcomes) == 4
