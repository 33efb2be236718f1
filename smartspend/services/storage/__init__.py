"""
Storage Services Package

Provides abstract interfaces and concrete implementations for local persistence.
JSON files on disk by default, in-memory for tests.
"""

from smartspend.services.storage.interface import (
    LEDGER_KEY,
    SYNC_CONFIG_KEY,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
    SyncConfigStorageInterface,
)
from smartspend.services.storage.local import InMemoryStorage, JsonFileStorage

__all__ = [
    # Interfaces
    "LedgerStorageInterface",
    "SyncConfigStorageInterface",
    "LEDGER_KEY",
    "SYNC_CONFIG_KEY",
    # Exceptions
    "NotFoundError",
    "StorageError",
    # Implementations
    "InMemoryStorage",
    "JsonFileStorage",
]
