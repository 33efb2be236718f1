"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for local persistence.
This allows us to:
1. Keep the ledger on disk as JSON today and swap to SQLite later
2. Use in-memory storage for testing
3. Keep the ledger store decoupled from where bytes end up

Each record (the ledger snapshot, the sync config) is stored whole under a
stable key and rewritten in full on every change. There is no diffing.
"""

from abc import ABC, abstractmethod
from typing import Optional

from smartspend.models.ledger import LedgerSnapshot, SyncConfig


LEDGER_KEY = "smartspend_ledger_v1"
SYNC_CONFIG_KEY = "smartspend_sheets_sync_v1"


class LedgerStorageInterface(ABC):
    """
    Abstract interface for local ledger persistence.

    Methods are synchronous: every ledger mutation persists before it returns.
    """

    @abstractmethod
    def load_snapshot(self) -> Optional[LedgerSnapshot]:
        """
        Load the persisted ledger snapshot.

        Returns:
            The snapshot, or None if nothing was ever saved

        Raises:
            StorageError: If the record exists but cannot be read
        """
        pass

    @abstractmethod
    def save_snapshot(self, snapshot: LedgerSnapshot) -> None:
        """
        Persist the full ledger snapshot, replacing the previous one.

        Raises:
            StorageError: If the write fails
        """
        pass


class SyncConfigStorageInterface(ABC):
    """Abstract interface for persisting the user's SyncConfig."""

    @abstractmethod
    def load_sync_config(self) -> Optional[SyncConfig]:
        """Return the stored config, or None when sync is not configured."""
        pass

    @abstractmethod
    def save_sync_config(self, config: SyncConfig) -> None:
        """Persist the config, replacing the previous one."""
        pass

    @abstractmethod
    def clear_sync_config(self) -> None:
        """Remove the stored config. No-op if there is none."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in the ledger."""
    pass
