"""Sync engine, debounce timer and connectivity monitor."""

from smartspend.sync.connectivity import ConnectivityMonitor
from smartspend.sync.engine import (
    DEFAULT_DEBOUNCE_SECONDS,
    PullOutcome,
    SyncEngine,
    SyncError,
    SyncNotConfiguredError,
)
from smartspend.sync.scheduler import DebounceTimer, LoopScheduler, Scheduler

__all__ = [
    "ConnectivityMonitor",
    "DEFAULT_DEBOUNCE_SECONDS",
    "DebounceTimer",
    "LoopScheduler",
    "PullOutcome",
    "Scheduler",
    "SyncEngine",
    "SyncError",
    "SyncNotConfiguredError",
]
