"""
Main Orchestrator for SmartSpend

Ties the components together:

    ConnectivityMonitor ──online edge──┐
                                       ▼
    LedgerStore ──dirty event──► SyncEngine ──push/pull──► RemoteReplicaClient
        │                              │
        ▼                              ▼
    JsonFileStorage (snapshot)    JsonFileStorage (SyncConfig)

DESIGN DECISION: Everything is built from settings but every collaborator
can be injected, so tests and embedding applications swap the pieces they
care about (storage, replica, connectivity, scheduler) and keep the rest.

Presentation (dashboards, reports screens, theme/menu state) is a consumer of
LedgerStore queries and smartspend.reports; it is not built here.
"""

from typing import NamedTuple, Optional, Union

import structlog

from smartspend.audit import AuditLogger, configure_logging
from smartspend.config import Settings, get_settings
from smartspend.ledger import LedgerStore
from smartspend.models.ledger import SyncConfig
from smartspend.services.replica import (
    AppsScriptReplicaClient,
    GoogleSheetsReplica,
    RemoteReplicaClient,
)
from smartspend.services.storage import InMemoryStorage, JsonFileStorage
from smartspend.sync import ConnectivityMonitor, Scheduler, SyncEngine


logger = structlog.get_logger(__name__)


class AppComponents(NamedTuple):
    """The wired-up core."""
    store: LedgerStore
    engine: SyncEngine
    monitor: ConnectivityMonitor
    audit_logger: AuditLogger


def create_replica_client(settings: Settings) -> RemoteReplicaClient:
    """Pick the remote replica backend named in settings."""
    ledger_settings = settings.ledger
    if ledger_settings.replica_backend == "google_sheets":
        sheets = settings.google_sheets
        return GoogleSheetsReplica(
            transactions_sheet_name=sheets.transactions_sheet_name,
            accounts_sheet_name=sheets.accounts_sheet_name,
        )
    return AppsScriptReplicaClient(
        timeout_seconds=ledger_settings.request_timeout_seconds,
        fire_and_forget=ledger_settings.fire_and_forget_push,
    )


def create_app_components(
    settings: Optional[Settings] = None,
    storage: Optional[Union[JsonFileStorage, InMemoryStorage]] = None,
    client: Optional[RemoteReplicaClient] = None,
    monitor: Optional[ConnectivityMonitor] = None,
    scheduler: Optional[Scheduler] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to build from (defaults to get_settings())
        storage: Local persistence for both the snapshot and the SyncConfig
        client: Remote replica (defaults to the configured backend)
        monitor: Connectivity signal (defaults to a one-off probe)
        scheduler: Debounce scheduler (defaults to the running loop)

    Returns:
        AppComponents(store, engine, monitor, audit_logger)
    """
    settings = settings or get_settings()
    ledger_settings = settings.ledger
    logging_settings = settings.logging

    configure_logging(logging_settings.level, logging_settings.json_output)
    audit_logger = AuditLogger(history_size=logging_settings.history_size)

    storage = storage or JsonFileStorage(ledger_settings.data_dir)

    # SMARTSPEND_SYNC_URL seeds the config only on first start
    if ledger_settings.sync_url and storage.load_sync_config() is None:
        storage.save_sync_config(SyncConfig(url=ledger_settings.sync_url))
        logger.info("sync_config_seeded_from_settings")

    if monitor is None:
        monitor = ConnectivityMonitor.probe(ledger_settings.probe_host, ledger_settings.probe_port)

    store = LedgerStore(storage, audit_logger=audit_logger)
    engine = SyncEngine(
        store=store,
        client=client or create_replica_client(settings),
        monitor=monitor,
        config_storage=storage,
        scheduler=scheduler,
        debounce_seconds=ledger_settings.debounce_seconds,
        audit_logger=audit_logger,
    )

    logger.info(
        "app_components_created",
        backend=ledger_settings.replica_backend,
        sync_state=engine.state.value,
        online=monitor.online,
    )
    return AppComponents(store=store, engine=engine, monitor=monitor, audit_logger=audit_logger)
