"""Tests for local persistence of the snapshot and the sync config."""

import json
from datetime import datetime

import pytest

from smartspend.models.ledger import Account, LedgerSnapshot, SyncConfig, TransactionType
from smartspend.services.storage import (
    LEDGER_KEY,
    SYNC_CONFIG_KEY,
    InMemoryStorage,
    JsonFileStorage,
    StorageError,
)

from conftest import make_tx


@pytest.fixture
def snapshot() -> LedgerSnapshot:
    return LedgerSnapshot(
        accounts=(Account(id="cash", name="Cash"), Account(id="bank")),
        transactions=(
            make_tx("t2", TransactionType.TRANSFER, 200, "bank", target_account_id="cash"),
            make_tx("t1", TransactionType.INCOME, 1000, "bank"),
        ),
    )


class TestJsonFileStorage:
    """Tests for the file-backed store."""

    def test_missing_records_load_as_none(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        assert storage.load_snapshot() is None
        assert storage.load_sync_config() is None

    def test_snapshot_survives_reopen(self, tmp_path, snapshot):
        """Test a saved snapshot is read back identically by a new instance."""
        JsonFileStorage(tmp_path).save_snapshot(snapshot)
        assert JsonFileStorage(tmp_path).load_snapshot() == snapshot

    def test_one_file_per_key_in_wire_form(self, tmp_path, snapshot):
        storage = JsonFileStorage(tmp_path)
        storage.save_snapshot(snapshot)
        storage.save_sync_config(SyncConfig(url="https://x"))

        record = json.loads((tmp_path / f"{LEDGER_KEY}.json").read_text(encoding="utf-8"))
        assert record["transactions"][0]["targetAccountId"] == "cash"
        assert "targetAccountId" not in record["transactions"][1]
        assert (tmp_path / f"{SYNC_CONFIG_KEY}.json").exists()

    def test_save_rewrites_whole_record(self, tmp_path, snapshot):
        storage = JsonFileStorage(tmp_path)
        storage.save_snapshot(snapshot)
        storage.save_snapshot(LedgerSnapshot.empty())
        assert storage.load_snapshot() == LedgerSnapshot.empty()
        assert not list(tmp_path.glob("*.tmp"))

    def test_creates_missing_directory(self, tmp_path, snapshot):
        storage = JsonFileStorage(tmp_path / "nested" / "dir")
        storage.save_snapshot(snapshot)
        assert storage.load_snapshot() == snapshot

    def test_corrupt_snapshot_raises_storage_error(self, tmp_path):
        (tmp_path / f"{LEDGER_KEY}.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError):
            JsonFileStorage(tmp_path).load_snapshot()

    def test_sync_config_roundtrip_and_clear(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        config = SyncConfig(url="https://x", last_synced=datetime(2024, 1, 2, 3, 4))
        storage.save_sync_config(config)
        assert storage.load_sync_config() == config

        storage.clear_sync_config()
        assert storage.load_sync_config() is None
        storage.clear_sync_config()  # clearing twice is fine


class TestInMemoryStorage:
    """Tests for the dict-backed store."""

    def test_seeded_records(self, snapshot):
        storage = InMemoryStorage(snapshot=snapshot, sync_config=SyncConfig(url="https://x"))
        assert storage.load_snapshot() == snapshot
        assert storage.load_sync_config().url == "https://x"

    def test_counts_saves(self, snapshot):
        storage = InMemoryStorage()
        storage.save_snapshot(snapshot)
        storage.save_snapshot(snapshot)
        assert storage.save_count == 2
