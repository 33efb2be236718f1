"""
Local Storage Implementations

JsonFileStorage keeps one JSON file per key inside a data directory.
Writes go to a temporary file first and are then moved into place, so a
crash mid-write leaves the previous record intact.

InMemoryStorage keeps the same records in a dict and is used by tests.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from smartspend.models.ledger import LedgerSnapshot, SyncConfig
from smartspend.services.storage.interface import (
    LEDGER_KEY,
    SYNC_CONFIG_KEY,
    LedgerStorageInterface,
    StorageError,
    SyncConfigStorageInterface,
)


class JsonFileStorage(LedgerStorageInterface, SyncConfigStorageInterface):
    """
    File-backed key/value storage for the ledger snapshot and sync config.

    Records are stored in the camelCase wire form so the files are readable
    next to the spreadsheet they mirror.
    """

    def __init__(self, directory: Union[str, Path]):
        self._directory = Path(directory).expanduser()

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        return self._directory / f"{key}.json"

    def _read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    def _write(self, key: str, payload: dict) -> None:
        path = self._path(key)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(payload, handle, ensure_ascii=False, indent=2)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e

    def load_snapshot(self) -> Optional[LedgerSnapshot]:
        raw = self._read(LEDGER_KEY)
        if raw is None:
            return None
        try:
            return LedgerSnapshot.model_validate_json(raw)
        except ValidationError as e:
            raise StorageError(f"Stored ledger is corrupt: {e}") from e

    def save_snapshot(self, snapshot: LedgerSnapshot) -> None:
        self._write(LEDGER_KEY, snapshot.to_wire())

    def load_sync_config(self) -> Optional[SyncConfig]:
        raw = self._read(SYNC_CONFIG_KEY)
        if raw is None:
            return None
        try:
            return SyncConfig.model_validate_json(raw)
        except ValidationError as e:
            raise StorageError(f"Stored sync config is corrupt: {e}") from e

    def save_sync_config(self, config: SyncConfig) -> None:
        self._write(SYNC_CONFIG_KEY, config.to_wire())

    def clear_sync_config(self) -> None:
        try:
            self._path(SYNC_CONFIG_KEY).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to clear sync config: {e}") from e


class InMemoryStorage(LedgerStorageInterface, SyncConfigStorageInterface):
    """Dict-backed storage with the same full-record semantics."""

    def __init__(
        self,
        snapshot: Optional[LedgerSnapshot] = None,
        sync_config: Optional[SyncConfig] = None,
    ):
        self._records: dict[str, dict] = {}
        self.save_count = 0
        if snapshot is not None:
            self._records[LEDGER_KEY] = snapshot.to_wire()
        if sync_config is not None:
            self._records[SYNC_CONFIG_KEY] = sync_config.to_wire()

    def load_snapshot(self) -> Optional[LedgerSnapshot]:
        record = self._records.get(LEDGER_KEY)
        return LedgerSnapshot.model_validate(record) if record is not None else None

    def save_snapshot(self, snapshot: LedgerSnapshot) -> None:
        self._records[LEDGER_KEY] = snapshot.to_wire()
        self.save_count += 1

    def load_sync_config(self) -> Optional[SyncConfig]:
        record = self._records.get(SYNC_CONFIG_KEY)
        return SyncConfig.model_validate(record) if record is not None else None

    def save_sync_config(self, config: SyncConfig) -> None:
        self._records[SYNC_CONFIG_KEY] = config.to_wire()

    def clear_sync_config(self) -> None:
        self._records.pop(SYNC_CONFIG_KEY, None)
