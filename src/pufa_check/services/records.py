"""Persisted, bounded store of product records."""

import asyncio
import json
import logging
from dataclasses import dataclass, field, replace
from typing import Protocol

from pufa_check.domain.errors import StorageError, StoragePersistError
from pufa_check.domain.records import Record, record_from_dict, record_to_dict

DEFAULT_STORAGE_KEY = "pufa_check:history"
DEFAULT_HISTORY_LIMIT = 200

_IMMUTABLE_FIELDS = frozenset({"id", "scanned_at_ms"})

_logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    """Durable storage of string values under namespaced keys."""

    def get_item(self, key: str) -> str | None:
        """Return the value stored under key, if any."""

    def set_item(self, key: str, value: str) -> None:
        """Durably store value under key."""


@dataclass
class RecordStore:
    """Ordered record collection, most recent first, capped at limit.

    All mutations are serialized through one lock and persist the whole
    collection before returning. The in-memory view is updated first, so a
    persistence failure leaves it consistent and is raised to the caller.
    """

    storage: KeyValueStorage
    key: str = DEFAULT_STORAGE_KEY
    limit: int = DEFAULT_HISTORY_LIMIT
    _records: list[Record] = field(default_factory=list, init=False, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    async def load(self) -> list[Record]:
        """Restore persisted records, degrading to empty on corrupt state."""
        async with self._lock:
            self._records = self._read()
            return list(self._records)

    def list_records(
        self, favorites_only: bool = False, limit: int | None = None
    ) -> list[Record]:
        """Return records, most recent first."""
        records = [
            record
            for record in self._records
            if record.is_favorite or not favorites_only
        ]
        if limit is not None:
            return records[:limit]
        return records

    def get(self, record_id: str) -> Record | None:
        """Return a record by id, if present."""
        index = self._index_of(record_id)
        if index is None:
            return None
        return self._records[index]

    async def add(self, record: Record) -> Record:
        """Prepend a record, replacing any record with the same id."""
        async with self._lock:
            remaining = [item for item in self._records if item.id != record.id]
            self._records = [record, *remaining][: self.limit]
            self._persist()
            return record

    async def upsert(self, record: Record, **refresh: object) -> Record:
        """Move an existing record to the front with refresh applied.

        When no record with the same id exists, record itself is added.
        """
        blocked = _IMMUTABLE_FIELDS.intersection(refresh)
        if blocked:
            raise ValueError(f"Fields cannot be updated: {sorted(blocked)}")
        async with self._lock:
            index = self._index_of(record.id)
            if index is None:
                stored = record
            else:
                stored = replace(self._records.pop(index), **refresh)
            self._records = [stored, *self._records][: self.limit]
            self._persist()
            return stored

    async def update_by_id(self, record_id: str, **changes: object) -> Record | None:
        """Merge the given fields into a record; no-op for unknown ids."""
        blocked = _IMMUTABLE_FIELDS.intersection(changes)
        if blocked:
            raise ValueError(f"Fields cannot be updated: {sorted(blocked)}")
        async with self._lock:
            index = self._index_of(record_id)
            if index is None:
                return None
            updated = replace(self._records[index], **changes)
            self._records[index] = updated
            self._persist()
            return updated

    async def toggle_favorite(self, record_id: str) -> Record | None:
        """Flip the favorite flag of a record."""
        async with self._lock:
            index = self._index_of(record_id)
            if index is None:
                return None
            current = self._records[index]
            updated = replace(current, is_favorite=not current.is_favorite)
            self._records[index] = updated
            self._persist()
            return updated

    async def remove(self, record_id: str) -> bool:
        """Delete a record. Returns False if it did not exist."""
        async with self._lock:
            index = self._index_of(record_id)
            if index is None:
                return False
            del self._records[index]
            self._persist()
            return True

    def _index_of(self, record_id: str) -> int | None:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        return None

    def _persist(self) -> None:
        payload = json.dumps([record_to_dict(record) for record in self._records])
        try:
            self.storage.set_item(self.key, payload)
        except StoragePersistError:
            _logger.error("Failed to persist %s records", len(self._records))
            raise
        except OSError as exc:
            _logger.error("Failed to persist %s records", len(self._records))
            raise StoragePersistError(str(exc)) from exc

    def _read(self) -> list[Record]:
        try:
            raw = self.storage.get_item(self.key)
        except (StorageError, OSError) as exc:
            _logger.warning("Record storage unreadable, starting empty: %s", exc)
            return []
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except ValueError:
            _logger.warning("Record storage holds invalid JSON, starting empty")
            return []
        if not isinstance(data, list):
            _logger.warning("Record storage holds %s, starting empty", type(data))
            return []

        records: list[Record] = []
        seen: set[str] = set()
        for entry in data:
            if not isinstance(entry, dict):
                _logger.warning("Skipping malformed record entry: %r", entry)
                continue
            try:
                record = record_from_dict(entry)
            except ValueError as exc:
                _logger.warning("Skipping malformed record entry: %s", exc)
                continue
            if record.id in seen:
                continue
            seen.add(record.id)
            records.append(record)
        return records[: self.limit]
