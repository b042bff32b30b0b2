"""Error taxonomy for lookups and storage."""

from enum import StrEnum


class LookupFailureKind(StrEnum):
    """Why a single endpoint attempt did not produce usable data."""

    NETWORK_TIMEOUT = "network_timeout"
    NETWORK_ERROR = "network_error"
    MALFORMED_RESPONSE = "malformed_response"
    NOT_FOUND_REMOTE = "not_found_remote"


class StorageError(Exception):
    """Base class for record storage failures."""


class StoragePersistError(StorageError):
    """Raised when the record collection could not be written durably."""


class StorageCorruptError(StorageError):
    """Raised when persisted state cannot be read back."""
