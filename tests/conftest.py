"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from pufa_check.adapters.off_client import ProductApiClient
from pufa_check.config import Settings
from pufa_check.containers import AppContainer
from pufa_check.domain.errors import StorageCorruptError, StoragePersistError
from pufa_check.domain.lookup import LookupResult, ProductNotFound
from pufa_check.services.enrichment import EnrichmentOrchestrator, ProductLookup
from pufa_check.services.lookup import ProductLookupService
from pufa_check.services.records import KeyValueStorage, RecordStore

TEST_BARCODE = "0000000000017"


def off_url(host: str, version: str, barcode: str = TEST_BARCODE) -> str:
    return f"https://{host}.openfoodfacts.org/api/{version}/product/{barcode}.json"


class Hang:
    """Marker response: the fake endpoint never answers."""


@dataclass
class FakeProductApiClient(ProductApiClient):
    """Fake product API keyed by URL; unknown URLs answer 'not found'."""

    responses: dict[str, object] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    async def fetch_json(self, url: str, timeout: float) -> object:
        self.calls.append(url)
        response = self.responses.get(url, {"status": 0})
        if isinstance(response, Hang):
            await asyncio.sleep(3600)
        if isinstance(response, Exception):
            raise response
        return response


@dataclass
class InMemoryKeyValueStorage(KeyValueStorage):
    """In-memory key-value storage with switchable failures."""

    items: dict[str, str] = field(default_factory=dict)
    writes: int = 0
    fail_writes: bool = False
    fail_reads: bool = False

    def get_item(self, key: str) -> str | None:
        if self.fail_reads:
            raise StorageCorruptError("disk on fire")
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise StoragePersistError("disk full")
        self.writes += 1
        self.items[key] = value


@dataclass
class StaticLookup(ProductLookup):
    """Lookup returning canned results per barcode, optionally gated."""

    results: dict[str, LookupResult | Exception] = field(default_factory=dict)
    gate: asyncio.Event | None = None
    calls: list[str] = field(default_factory=list)

    async def lookup(self, barcode: str) -> LookupResult:
        self.calls.append(barcode)
        if self.gate is not None:
            await self.gate.wait()
        result = self.results.get(barcode, ProductNotFound())
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        storage_backend="file",
        storage_path=str(tmp_path / "history.json"),
        lookup_timeout_seconds=0.05,
    )


@pytest.fixture
def storage() -> InMemoryKeyValueStorage:
    return InMemoryKeyValueStorage()


@pytest.fixture
def record_store(storage: InMemoryKeyValueStorage) -> RecordStore:
    return RecordStore(storage=storage)


@pytest.fixture
def api_client() -> FakeProductApiClient:
    return FakeProductApiClient()


@pytest.fixture
def lookup_service(api_client: FakeProductApiClient) -> ProductLookupService:
    return ProductLookupService(api_client=api_client, timeout_seconds=0.05)


@pytest.fixture
def orchestrator(
    record_store: RecordStore, lookup_service: ProductLookupService
) -> EnrichmentOrchestrator:
    return EnrichmentOrchestrator(
        store=record_store,
        lookup_service=lookup_service,
        clock=lambda: 1_700_000_000_000,
    )


@pytest.fixture
def container(
    settings: Settings,
    record_store: RecordStore,
    lookup_service: ProductLookupService,
    orchestrator: EnrichmentOrchestrator,
) -> AppContainer:
    async def close_resources() -> None:
        await orchestrator.aclose()

    return AppContainer(
        settings=settings,
        record_store=record_store,
        lookup_service=lookup_service,
        orchestrator=orchestrator,
        close_resources=close_resources,
    )
