"""Supabase implementation of key-value storage."""

from dataclasses import dataclass

from supabase import Client

from pufa_check.domain.errors import StorageCorruptError, StoragePersistError
from pufa_check.services.records import KeyValueStorage


@dataclass
class SupabaseKeyValueStorage(KeyValueStorage):
    """Supabase-backed storage using a table with key and value columns."""

    client: Client
    table: str = "kv_store"

    def get_item(self, key: str) -> str | None:
        """Return the stored value for a key, if present."""
        try:
            response = (
                self.client.table(self.table)
                .select("value")
                .eq("key", key)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            raise StorageCorruptError(f"Failed to read {key!r}: {exc}") from exc
        if not response.data:
            return None
        value = response.data[0].get("value")
        if value is None:
            return None
        if not isinstance(value, str):
            raise StorageCorruptError(f"Value for {key!r} is not a string")
        return value

    def set_item(self, key: str, value: str) -> None:
        """Insert or replace the value for a key."""
        try:
            response = (
                self.client.table(self.table)
                .upsert({"key": key, "value": value})
                .execute()
            )
        except Exception as exc:
            raise StoragePersistError(f"Failed to write {key!r}: {exc}") from exc
        if not response.data:
            raise StoragePersistError(f"Failed to write {key!r}")
