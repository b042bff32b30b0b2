"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from pufa_check.api.models import (
    ManualEntryRequest,
    RecordListPayload,
    RecordPayload,
    ScanRequest,
)
from pufa_check.app_logging import configure_logging
from pufa_check.containers import AppContainer
from pufa_check.domain.errors import StoragePersistError


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        records = await app.state.container.record_store.load()
        logger.info("Loaded %s records", len(records))
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(StoragePersistError)
    async def storage_error_handler(
        request: Request, exc: StoragePersistError
    ) -> JSONResponse:
        logger.error("Storage write failed on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Record storage is unavailable; changes were not saved."},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/scans")
    async def capture_scan(scan: ScanRequest, request: Request) -> RecordPayload:
        """Record a barcode capture and enrich it."""
        state_container: AppContainer = request.app.state.container
        orchestrator = state_container.orchestrator
        if scan.wait:
            record = await orchestrator.on_barcode_captured(scan.value, scan.symbology)
        else:
            record = await orchestrator.submit_barcode(scan.value, scan.symbology)
        return RecordPayload.from_record(record)

    @app.post("/records", status_code=status.HTTP_201_CREATED)
    async def create_manual_record(
        entry: ManualEntryRequest, request: Request
    ) -> RecordPayload:
        """Create a record from manually entered product data."""
        state_container: AppContainer = request.app.state.container
        record = await state_container.orchestrator.create_manual_entry(
            name=entry.name,
            ingredients_text=entry.ingredients_text,
            polyunsaturated_fat_per_100g=entry.polyunsaturated_fat_per_100g,
        )
        return RecordPayload.from_record(record)

    @app.get("/records")
    async def list_records(
        request: Request, favorites_only: bool = False, limit: int | None = None
    ) -> RecordListPayload:
        """Return records, most recent first."""
        state_container: AppContainer = request.app.state.container
        records = state_container.record_store.list_records(
            favorites_only=favorites_only, limit=limit
        )
        return RecordListPayload(
            records=[RecordPayload.from_record(record) for record in records]
        )

    @app.get("/records/{record_id}")
    async def get_record(record_id: str, request: Request) -> RecordPayload:
        """Return a single record."""
        state_container: AppContainer = request.app.state.container
        record = state_container.record_store.get(record_id)
        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return RecordPayload.from_record(record)

    @app.post("/records/{record_id}/favorite")
    async def toggle_favorite(record_id: str, request: Request) -> RecordPayload:
        """Flip the favorite flag of a record."""
        state_container: AppContainer = request.app.state.container
        record = await state_container.record_store.toggle_favorite(record_id)
        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return RecordPayload.from_record(record)

    @app.post("/records/{record_id}/retry")
    async def retry_lookup(record_id: str, request: Request) -> RecordPayload:
        """Run a new lookup for a record stuck at not_found or error."""
        state_container: AppContainer = request.app.state.container
        try:
            record = await state_container.orchestrator.retry(record_id)
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail=str(exc)
            ) from exc
        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return RecordPayload.from_record(record)

    @app.delete("/records/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_record(record_id: str, request: Request) -> Response:
        """Delete a record."""
        state_container: AppContainer = request.app.state.container
        state_container.orchestrator.cancel(record_id)
        removed = await state_container.record_store.remove(record_id)
        if not removed:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.put("/focus/{record_id}")
    async def set_focus(record_id: str, request: Request) -> RecordPayload:
        """Mark the record currently shown by the result view."""
        state_container: AppContainer = request.app.state.container
        record = state_container.orchestrator.focus(record_id)
        if record is None:
            state_container.orchestrator.focus(None)
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return RecordPayload.from_record(record)

    @app.get("/focus")
    async def get_focus(request: Request) -> RecordPayload:
        """Return the latest version of the focused record."""
        state_container: AppContainer = request.app.state.container
        record = state_container.orchestrator.focused_record()
        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return RecordPayload.from_record(record)

    return app
