"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from supabase import create_client

from pufa_check.adapters.json_file_storage import JsonFileStorage
from pufa_check.adapters.off_client import HttpxProductApiClient
from pufa_check.adapters.supabase_kv_storage import SupabaseKeyValueStorage
from pufa_check.config import Settings
from pufa_check.services.enrichment import EnrichmentOrchestrator
from pufa_check.services.lookup import ProductLookupService
from pufa_check.services.records import KeyValueStorage, RecordStore


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    record_store: RecordStore
    lookup_service: ProductLookupService
    orchestrator: EnrichmentOrchestrator
    close_resources: Callable[[], Awaitable[None]]


def build_storage(settings: Settings) -> KeyValueStorage:
    """Create the configured key-value storage backend."""
    if settings.storage_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError("Supabase storage requires supabase_url and service key")
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return SupabaseKeyValueStorage(client, table=settings.supabase_table)
    if settings.storage_backend == "file":
        return JsonFileStorage(Path(settings.storage_path))
    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    record_store = RecordStore(
        storage=build_storage(resolved_settings),
        key=resolved_settings.storage_key,
        limit=resolved_settings.history_limit,
    )
    api_client = HttpxProductApiClient.create(user_agent=resolved_settings.user_agent)
    lookup_service = ProductLookupService(
        api_client=api_client,
        timeout_seconds=resolved_settings.lookup_timeout_seconds,
    )
    orchestrator = EnrichmentOrchestrator(
        store=record_store,
        lookup_service=lookup_service,
        strict_lookup_status=resolved_settings.strict_lookup_status,
    )

    async def close_resources() -> None:
        await orchestrator.aclose()
        await api_client.close()

    return AppContainer(
        settings=resolved_settings,
        record_store=record_store,
        lookup_service=lookup_service,
        orchestrator=orchestrator,
        close_resources=close_resources,
    )
