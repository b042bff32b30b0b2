"""Open Food Facts HTTP client."""

from dataclasses import dataclass, field
from typing import Protocol

import httpx

# Open Food Facts asks clients to identify themselves; deployments override
# the contact part through PUFA_USER_AGENT.
DEFAULT_USER_AGENT = "PUFA-Check/0.1 (+https://example.com)"


class ProductApiClient(Protocol):
    """Interface for fetching raw product JSON from a product database."""

    async def fetch_json(self, url: str, timeout: float) -> object:
        """GET a URL and return its decoded JSON body."""


@dataclass
class HttpxProductApiClient(ProductApiClient):
    """HTTPX-backed product database client."""

    http_client: httpx.AsyncClient
    user_agent: str = DEFAULT_USER_AGENT
    headers: dict[str, str] = field(init=False)

    def __post_init__(self) -> None:
        self.headers = {
            "Accept": "application/json",
            "Accept-Language": "en",
            "User-Agent": self.user_agent,
        }

    @classmethod
    def create(cls, user_agent: str = DEFAULT_USER_AGENT) -> "HttpxProductApiClient":
        """Create a client with a managed httpx session."""
        return cls(http_client=httpx.AsyncClient(), user_agent=user_agent)

    async def fetch_json(self, url: str, timeout: float) -> object:
        """Fetch a product document.

        Not-found answers come back as 404 with a JSON body, so only server
        errors raise; a body that is not JSON raises ValueError.
        """
        response = await self.http_client.get(
            url,
            headers=self.headers,
            timeout=timeout,
        )
        if response.status_code >= 500:
            response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
