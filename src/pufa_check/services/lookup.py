"""Product lookup across prioritized Open Food Facts endpoints."""

import asyncio
import logging
from dataclasses import dataclass
from urllib.parse import quote

import httpx

from pufa_check.adapters.off_client import ProductApiClient
from pufa_check.domain.errors import LookupFailureKind
from pufa_check.domain.lookup import (
    EndpointDescriptor,
    EndpointFail,
    EndpointOk,
    EndpointOutcome,
    EndpointSkip,
    LookupResult,
    ProductFound,
    ProductNotFound,
)
from pufa_check.services.product_parsers import parse_off_v0, parse_off_v2

DEFAULT_ENDPOINTS: tuple[EndpointDescriptor, ...] = (
    EndpointDescriptor(
        url_template="https://world.openfoodfacts.org/api/v2/product/{barcode}.json",
        parser=parse_off_v2,
        source_id="OFF v2 world",
    ),
    EndpointDescriptor(
        url_template="https://us.openfoodfacts.org/api/v2/product/{barcode}.json",
        parser=parse_off_v2,
        source_id="OFF v2 us",
    ),
    EndpointDescriptor(
        url_template="https://world.openfoodfacts.org/api/v0/product/{barcode}.json",
        parser=parse_off_v0,
        source_id="OFF v0 world",
    ),
    EndpointDescriptor(
        url_template="https://us.openfoodfacts.org/api/v0/product/{barcode}.json",
        parser=parse_off_v0,
        source_id="OFF v0 us",
    ),
)

_logger = logging.getLogger(__name__)


@dataclass
class ProductLookupService:
    """Queries endpoints in order and returns the first usable product."""

    api_client: ProductApiClient
    endpoints: tuple[EndpointDescriptor, ...] = DEFAULT_ENDPOINTS
    timeout_seconds: float = 6.0

    async def lookup(self, barcode: str) -> LookupResult:
        """Look up a barcode, falling through endpoints that do not answer."""
        encoded = quote(barcode, safe="")
        misses: list[EndpointSkip | EndpointFail] = []
        for endpoint in self.endpoints:
            outcome = await self._attempt(endpoint, encoded)
            if isinstance(outcome, EndpointOk):
                _logger.info(
                    "Product lookup hit: barcode=%s source=%s",
                    barcode,
                    outcome.source_id,
                )
                return ProductFound(product=outcome.product, source_id=outcome.source_id)
            misses.append(outcome)
        _logger.info(
            "Product lookup exhausted: barcode=%s outcomes=%s",
            barcode,
            [outcome.kind.value for outcome in misses],
        )
        return ProductNotFound(outcomes=tuple(misses))

    async def _attempt(
        self, endpoint: EndpointDescriptor, encoded_barcode: str
    ) -> EndpointOutcome:
        """Run one request against one endpoint and tag the result."""
        url = endpoint.url_for(encoded_barcode)
        try:
            async with asyncio.timeout(self.timeout_seconds):
                payload = await self.api_client.fetch_json(
                    url, timeout=self.timeout_seconds
                )
        except (TimeoutError, httpx.TimeoutException) as exc:
            return _fail(endpoint, LookupFailureKind.NETWORK_TIMEOUT, exc)
        except httpx.HTTPError as exc:
            return _fail(endpoint, LookupFailureKind.NETWORK_ERROR, exc)
        except ValueError as exc:
            return _fail(endpoint, LookupFailureKind.MALFORMED_RESPONSE, exc)

        try:
            product = endpoint.parser(payload)
        except (TypeError, ValueError, KeyError) as exc:
            return _fail(endpoint, LookupFailureKind.MALFORMED_RESPONSE, exc)
        if product is None:
            return EndpointSkip(source_id=endpoint.source_id, reason="no usable data")
        return EndpointOk(source_id=endpoint.source_id, product=product)


def _fail(
    endpoint: EndpointDescriptor, kind: LookupFailureKind, exc: Exception
) -> EndpointFail:
    _logger.warning(
        "Product endpoint %s failed (%s): %s", endpoint.source_id, kind.value, exc
    )
    return EndpointFail(source_id=endpoint.source_id, kind=kind, detail=str(exc))
