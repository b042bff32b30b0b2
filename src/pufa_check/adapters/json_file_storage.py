"""Local JSON file implementation of key-value storage."""

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from pufa_check.domain.errors import StorageCorruptError, StoragePersistError
from pufa_check.services.records import KeyValueStorage


@dataclass
class JsonFileStorage(KeyValueStorage):
    """Stores namespaced string values in a single JSON object on disk."""

    path: Path

    def get_item(self, key: str) -> str | None:
        """Return the stored value for a key, if present."""
        value = self._read_all().get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            raise StorageCorruptError(f"Value for {key!r} is not a string")
        return value

    def set_item(self, key: str, value: str) -> None:
        """Store a value, replacing the file atomically."""
        try:
            entries = self._read_all()
        except StorageCorruptError:
            entries = {}
        entries[key] = value
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(entries, handle)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StoragePersistError(f"Failed to write {self.path}: {exc}") from exc

    def _read_all(self) -> dict[str, object]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise StorageCorruptError(f"Failed to read {self.path}: {exc}") from exc
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise StorageCorruptError(f"Invalid JSON in {self.path}") from exc
        if not isinstance(data, dict):
            raise StorageCorruptError(f"Unexpected layout in {self.path}")
        return data
