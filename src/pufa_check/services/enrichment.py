"""Scan enrichment: lookup, classification and record updates."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from pufa_check.domain.lookup import LookupResult, ProductNotFound
from pufa_check.domain.records import LookupStatus, Record
from pufa_check.services.classifier import classify_pufa
from pufa_check.services.records import RecordStore

MANUAL_SOURCE_ID = "manual"

_logger = logging.getLogger(__name__)


class ProductLookup(Protocol):
    """Interface for resolving a barcode to product data."""

    async def lookup(self, barcode: str) -> LookupResult:
        """Return the first usable product for a barcode, or not-found."""


def _now_ms() -> int:
    return int(datetime.now(tz=UTC).timestamp() * 1000)


@dataclass
class EnrichmentOrchestrator:
    """Creates records for scans and enriches them with product data.

    At most one enrichment task runs per record id. A forced attempt
    supersedes any in-flight one; completions from superseded attempts are
    discarded instead of being written to the store.
    """

    store: RecordStore
    lookup_service: ProductLookup
    strict_lookup_status: bool = False
    clock: Callable[[], int] = _now_ms
    _tasks: dict[str, "asyncio.Task[Record | None]"] = field(
        default_factory=dict, init=False, repr=False
    )
    _attempts: dict[str, int] = field(default_factory=dict, init=False, repr=False)
    _commit_locks: dict[str, asyncio.Lock] = field(
        default_factory=dict, init=False, repr=False
    )
    _subscribers: dict[str, list["asyncio.Queue[Record]"]] = field(
        default_factory=dict, init=False, repr=False
    )
    _focused_id: str | None = field(default=None, init=False, repr=False)

    async def on_barcode_captured(self, value: str, symbology: str) -> Record:
        """Handle a confirmed scan and return the enriched record."""
        record = await self.submit_barcode(value, symbology)
        task = self._tasks.get(record.id)
        if task is None:
            return record
        enriched = await self._outcome_of(task, record.id)
        return enriched or record

    async def submit_barcode(self, value: str, symbology: str) -> Record:
        """Create or refresh the record for a scan and start its enrichment."""
        barcode = value.strip()
        if not barcode:
            record = await self.store.add(
                Record(
                    id=self._synthesize_id(),
                    scanned_at_ms=self.clock(),
                    symbology=symbology or None,
                    lookup_status=LookupStatus.NOT_FOUND,
                )
            )
            self._publish(record)
            self.focus(record.id)
            return record

        in_flight = self._tasks.get(barcode)
        if in_flight is not None and not in_flight.done():
            record = self.store.get(barcode)
            if record is not None:
                self.focus(record.id)
                return record

        record = await self.store.upsert(
            Record(
                id=barcode,
                scanned_at_ms=self.clock(),
                barcode_value=barcode,
                symbology=symbology or None,
            ),
            lookup_status=LookupStatus.PENDING,
        )
        self._publish(record)
        self.focus(record.id)
        self.start_enrichment(record.id)
        return record

    def start_enrichment(
        self, record_id: str, *, force: bool = False
    ) -> "asyncio.Task[Record | None] | None":
        """Schedule an enrichment attempt, reusing an in-flight one unless forced."""
        record = self.store.get(record_id)
        if record is None or not record.barcode_value:
            return None
        current = self._tasks.get(record_id)
        if current is not None and not current.done() and not force:
            return current

        attempt = self._attempts.get(record_id, 0) + 1
        self._attempts[record_id] = attempt
        task = asyncio.create_task(
            self._enrich(record_id, record.barcode_value, attempt),
            name=f"enrich:{record_id}:{attempt}",
        )
        self._tasks[record_id] = task
        task.add_done_callback(lambda done: self._forget(record_id, done))
        return task

    async def retry(self, record_id: str) -> Record | None:
        """Run a fresh enrichment attempt for an existing barcode record."""
        record = self.store.get(record_id)
        if record is None:
            return None
        if record.is_manual:
            raise ValueError(f"Record {record_id} has no barcode to look up")
        pending = await self.store.update_by_id(
            record_id, lookup_status=LookupStatus.PENDING
        )
        if pending is not None:
            self._publish(pending)
        task = self.start_enrichment(record_id, force=True)
        if task is None:
            return self.store.get(record_id)
        return await self._outcome_of(task, record_id)

    async def create_manual_entry(
        self,
        name: str | None = None,
        ingredients_text: str | None = None,
        polyunsaturated_fat_per_100g: float | None = None,
    ) -> Record:
        """Create a record without a barcode, classified from the given data."""
        has_data = bool(name or ingredients_text) or (
            polyunsaturated_fat_per_100g is not None
        )
        assessment = classify_pufa(ingredients_text, polyunsaturated_fat_per_100g)
        now = self.clock()
        record = await self.store.add(
            Record(
                id=self._synthesize_id(now),
                scanned_at_ms=now,
                display_name=name or None,
                ingredients_text=ingredients_text or None,
                polyunsaturated_fat_per_100g=polyunsaturated_fat_per_100g,
                risk_tier=assessment.tier,
                matched_seed_oil_terms=assessment.matched_terms,
                lookup_status=(
                    LookupStatus.FOUND if has_data else LookupStatus.NOT_FOUND
                ),
                lookup_source_id=MANUAL_SOURCE_ID if has_data else None,
            )
        )
        self._publish(record)
        return record

    def cancel(self, record_id: str) -> bool:
        """Abandon an in-flight enrichment; committed changes stand."""
        task = self._tasks.get(record_id)
        if task is None or task.done():
            return False
        return task.cancel()

    def is_enriching(self, record_id: str) -> bool:
        """Return True while an enrichment task is running for the id."""
        task = self._tasks.get(record_id)
        return task is not None and not task.done()

    def subscribe(self, record_id: str) -> "asyncio.Queue[Record]":
        """Return a queue receiving every committed version of a record."""
        queue: asyncio.Queue[Record] = asyncio.Queue()
        self._subscribers.setdefault(record_id, []).append(queue)
        return queue

    def unsubscribe(self, record_id: str, queue: "asyncio.Queue[Record]") -> None:
        """Stop delivering updates to a queue."""
        queues = self._subscribers.get(record_id, [])
        if queue in queues:
            queues.remove(queue)
        if not queues:
            self._subscribers.pop(record_id, None)

    def focus(self, record_id: str | None) -> Record | None:
        """Mark the record shown by the result view."""
        self._focused_id = record_id
        return self.focused_record()

    def focused_record(self) -> Record | None:
        """Return the latest stored version of the focused record."""
        if self._focused_id is None:
            return None
        return self.store.get(self._focused_id)

    async def aclose(self) -> None:
        """Cancel outstanding enrichment tasks."""
        tasks = [task for task in self._tasks.values() if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _enrich(self, record_id: str, barcode: str, attempt: int) -> Record | None:
        try:
            result = await self.lookup_service.lookup(barcode)
        except Exception:
            _logger.exception("Product lookup crashed: id=%s", record_id)
            changes: dict[str, object] = {"lookup_status": LookupStatus.ERROR}
        else:
            changes = self._changes_for(result)
        return await self._commit(record_id, attempt, changes)

    async def _outcome_of(
        self, task: "asyncio.Task[Record | None]", record_id: str
    ) -> Record | None:
        # Waiting never cancels the shared task; a cancelled task yields the
        # latest stored record instead of CancelledError.
        await asyncio.wait({task})
        if task.cancelled():
            return self.store.get(record_id)
        return task.result() or self.store.get(record_id)

    def _changes_for(self, result: LookupResult) -> dict[str, object]:
        if isinstance(result, ProductNotFound):
            if self.strict_lookup_status and result.all_failed:
                return {"lookup_status": LookupStatus.ERROR}
            return {"lookup_status": LookupStatus.NOT_FOUND}

        product = result.product
        assessment = classify_pufa(
            product.ingredients_text, product.polyunsaturated_fat_per_100g
        )
        changes: dict[str, object] = {
            "risk_tier": assessment.tier,
            "matched_seed_oil_terms": assessment.matched_terms,
            "lookup_status": LookupStatus.FOUND,
            "lookup_source_id": result.source_id,
        }
        # Fields missing from the product keep the record's previous values.
        if product.name:
            changes["display_name"] = product.name
        if product.ingredients_text:
            changes["ingredients_text"] = product.ingredients_text
        if product.polyunsaturated_fat_per_100g is not None:
            changes["polyunsaturated_fat_per_100g"] = (
                product.polyunsaturated_fat_per_100g
            )
        if product.nutrients is not None and not product.nutrients.is_empty():
            changes["nutrients"] = product.nutrients
        return changes

    async def _commit(
        self, record_id: str, attempt: int, changes: dict[str, object]
    ) -> Record | None:
        lock = self._commit_locks.setdefault(record_id, asyncio.Lock())
        async with lock:
            if self._attempts.get(record_id) != attempt:
                _logger.info(
                    "Discarding stale enrichment: id=%s attempt=%s", record_id, attempt
                )
                return self.store.get(record_id)
            updated = await self.store.update_by_id(record_id, **changes)
        if updated is None:
            _logger.info("Record removed before enrichment finished: id=%s", record_id)
            return None
        self._publish(updated)
        return updated

    def _publish(self, record: Record) -> None:
        for queue in self._subscribers.get(record.id, []):
            queue.put_nowait(record)

    def _forget(self, record_id: str, task: "asyncio.Task[Record | None]") -> None:
        if self._tasks.get(record_id) is task:
            del self._tasks[record_id]
            lock = self._commit_locks.get(record_id)
            if lock is not None and not lock.locked():
                del self._commit_locks[record_id]
        if task.cancelled():
            _logger.info("Enrichment cancelled: id=%s", record_id)
            return
        exc = task.exception()
        if exc is not None:
            _logger.warning("Enrichment failed: id=%s error=%s", record_id, exc)

    def _synthesize_id(self, now: int | None = None) -> str:
        candidate = now if now is not None else self.clock()
        while self.store.get(str(candidate)) is not None:
            candidate += 1
        return str(candidate)
