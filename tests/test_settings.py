"""Tests for configuration and application wiring."""

import pytest

from smartspend.config import Settings, get_settings, validate_all_settings
from smartspend.models.ledger import SyncConfig, SyncState
from smartspend.orchestrator import create_app_components, create_replica_client
from smartspend.services.replica import AppsScriptReplicaClient, GoogleSheetsReplica, InMemoryReplica
from smartspend.services.storage import InMemoryStorage
from smartspend.sync import ConnectivityMonitor

from conftest import SYNC_URL, ManualScheduler, make_draft


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in (
        "SMARTSPEND_SYNC_URL",
        "SMARTSPEND_REPLICA_BACKEND",
        "SMARTSPEND_DEBOUNCE_SECONDS",
        "SMARTSPEND_LOG_LEVEL",
        "GOOGLE_SHEETS_CREDENTIALS_PATH",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SMARTSPEND_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("SMARTSPEND_LOG_JSON_OUTPUT", "false")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    """Tests for the pydantic-settings classes."""

    def test_defaults(self, tmp_path):
        ledger = Settings().ledger
        assert ledger.data_dir == tmp_path
        assert ledger.debounce_seconds == 2.0
        assert ledger.replica_backend == "apps_script"
        assert ledger.fire_and_forget_push is True
        assert ledger.sync_url is None

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("SMARTSPEND_DEBOUNCE_SECONDS", "0.5")
        monkeypatch.setenv("SMARTSPEND_LOG_LEVEL", "debug")
        settings = Settings()
        assert settings.ledger.debounce_seconds == 0.5
        assert settings.logging.level == "DEBUG"

    def test_blank_sync_url_is_none(self, monkeypatch):
        monkeypatch.setenv("SMARTSPEND_SYNC_URL", "   ")
        assert Settings().ledger.sync_url is None

    def test_invalid_backend_rejected(self, monkeypatch):
        monkeypatch.setenv("SMARTSPEND_REPLICA_BACKEND", "dropbox")
        with pytest.raises(ValueError):
            Settings().ledger

    def test_invalid_log_level_rejected(self, monkeypatch):
        monkeypatch.setenv("SMARTSPEND_LOG_LEVEL", "LOUD")
        with pytest.raises(ValueError):
            Settings().logging

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_validate_all_settings_reports_missing_credentials(self):
        """Test the sheets backend is reported unconfigured without credentials."""
        results = validate_all_settings()
        assert results["ledger"] is True
        assert results["logging"] is True
        assert results["google_sheets"] is False
        assert "google_sheets_error" in results


class TestCreateReplicaClient:
    """Tests for backend selection."""

    def test_apps_script_by_default(self):
        assert isinstance(create_replica_client(Settings()), AppsScriptReplicaClient)

    def test_google_sheets_backend(self, monkeypatch, tmp_path):
        credentials = tmp_path / "service-account.json"
        credentials.write_text("{}", encoding="utf-8")
        monkeypatch.setenv("SMARTSPEND_REPLICA_BACKEND", "google_sheets")
        monkeypatch.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", str(credentials))
        assert isinstance(create_replica_client(Settings()), GoogleSheetsReplica)


class TestCreateAppComponents:
    """Tests for the wiring factory."""

    @pytest.mark.asyncio
    async def test_wires_store_and_engine(self):
        storage = InMemoryStorage()
        replica = InMemoryReplica()
        scheduler = ManualScheduler()
        app = create_app_components(
            storage=storage,
            client=replica,
            monitor=ConnectivityMonitor(initially_online=True),
            scheduler=scheduler,
        )
        assert app.engine.state == SyncState.INACTIVE

        app.engine.set_config(SyncConfig(url=SYNC_URL))
        app.store.add_transaction(make_draft(account_id="cash"))
        scheduler.advance(2)
        await app.engine.wait_idle()

        assert len(replica.push_calls) == 1
        assert app.engine.state == SyncState.SYNCED
        app.engine.close()

    @pytest.mark.asyncio
    async def test_sync_url_seeds_config_once(self, monkeypatch):
        monkeypatch.setenv("SMARTSPEND_SYNC_URL", SYNC_URL)
        storage = InMemoryStorage()
        app = create_app_components(
            storage=storage,
            client=InMemoryReplica(),
            monitor=ConnectivityMonitor(initially_online=False),
            scheduler=ManualScheduler(),
        )
        assert app.engine.state == SyncState.SYNCED
        assert storage.load_sync_config().url == SYNC_URL
        app.engine.close()

    @pytest.mark.asyncio
    async def test_stored_config_wins_over_seed(self, monkeypatch):
        monkeypatch.setenv("SMARTSPEND_SYNC_URL", SYNC_URL)
        storage = InMemoryStorage(sync_config=SyncConfig(url="https://other"))
        app = create_app_components(
            storage=storage,
            client=InMemoryReplica(),
            monitor=ConnectivityMonitor(initially_online=True),
            scheduler=ManualScheduler(),
        )
        assert app.engine.config.url == "https://other"
        app.engine.close()

    def test_uses_json_storage_in_data_dir(self, tmp_path):
        app = create_app_components(
            client=InMemoryReplica(),
            monitor=ConnectivityMonitor(initially_online=True),
            scheduler=ManualScheduler(),
        )
        app.store.set_accounts([])
        assert list(tmp_path.glob("*.json"))
        app.engine.close()
