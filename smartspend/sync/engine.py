"""
Sync Engine

Keeps the remote replica in step with the local ledger using full-replace
pushes, and applies confirmed pulls.

STATE MACHINE:
- INACTIVE: no SyncConfig. Dirty events are ignored.
- PENDING:  local changes not yet pushed (or offline when the timer fired).
- SYNCING:  a push or pull is in flight. At most one at any time.
- SYNCED:   the last push/pull succeeded and nothing newer exists locally.
- ERROR:    the last network operation failed.

DESIGN DECISION: Retries are never scheduled by the engine itself.
After a failure the next dirty event (through the debounce timer) or the
next offline -> online edge is what tries again. No backoff loop, no polling.

DESIGN DECISION: Every network operation captures the config epoch when it
starts. Changing or clearing the config bumps the epoch, so a result that
lands afterwards is logged and discarded instead of touching state.
"""

import asyncio
import inspect
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

import structlog

from smartspend.audit import AuditLogger, get_audit_logger
from smartspend.ledger import LedgerChange, LedgerStore
from smartspend.models.ledger import LedgerSnapshot, SyncConfig, SyncState
from smartspend.services.replica import RemoteReplicaClient, ReplicaError
from smartspend.services.storage import StorageError, SyncConfigStorageInterface
from smartspend.sync.connectivity import ConnectivityMonitor
from smartspend.sync.scheduler import DebounceTimer, Scheduler


logger = structlog.get_logger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 2.0

PullConfirmation = Callable[[LedgerSnapshot], Union[bool, Awaitable[bool]]]
StateListener = Callable[[SyncState], None]


class PullOutcome(str, Enum):
    """How a manual pull ended (failures raise instead)."""
    APPLIED = "applied"      # Confirmed and written to the local ledger
    DECLINED = "declined"    # The confirmation callback said no
    BUSY = "busy"            # Another network operation was in flight
    DISCARDED = "discarded"  # The config changed while the pull was running


class SyncError(Exception):
    """Base class for sync engine errors."""
    pass


class SyncNotConfiguredError(SyncError):
    """A network operation was requested without a SyncConfig."""
    pass


class SyncEngine:
    """
    Debounced push / confirmed pull over a RemoteReplicaClient.

    Must be created and driven from inside a running event loop: the
    debounce timer and the network tasks are scheduled on it.

    Usage:
        engine = SyncEngine(store, client, monitor, config_storage)
        engine.set_config(SyncConfig(url="https://script.google.com/..."))
        store.add_transaction(draft)       # -> PENDING, timer armed
        ...                                # quiet period -> push -> SYNCED
        outcome = await engine.pull(confirm=ask_user)
    """

    def __init__(
        self,
        store: LedgerStore,
        client: RemoteReplicaClient,
        monitor: ConnectivityMonitor,
        config_storage: SyncConfigStorageInterface,
        scheduler: Optional[Scheduler] = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._store = store
        self._client = client
        self._monitor = monitor
        self._config_storage = config_storage
        self._audit = audit_logger or get_audit_logger()
        self._clock = clock

        self._timer = DebounceTimer(debounce_seconds, self._on_timer, scheduler)
        self._state_listeners: list[StateListener] = []
        self._inflight: Optional[asyncio.Task] = None
        self._followup = False
        self._applying_pull = False
        self._generation = 0
        self._epoch = 0

        # Optimistic start: no round trip just to compute the initial state
        self._config = config_storage.load_sync_config()
        self._state = SyncState.SYNCED if self._config else SyncState.INACTIVE

        self._unsubscribers = [
            store.subscribe(self._on_ledger_change),
            monitor.on_became_online(self._on_became_online),
            monitor.on_became_offline(self._on_became_offline),
        ]

    # -------------------------------------------------------------------------
    # Observation
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def config(self) -> Optional[SyncConfig]:
        return self._config

    @property
    def is_active(self) -> bool:
        return self._config is not None

    @property
    def busy(self) -> bool:
        """True while a push or pull is in flight."""
        return self._inflight is not None

    def subscribe_state(self, listener: StateListener) -> Callable[[], None]:
        """Register a state-change listener. Returns an unsubscribe callable."""
        self._state_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._state_listeners:
                self._state_listeners.remove(listener)

        return unsubscribe

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def set_config(self, config: Optional[SyncConfig]) -> None:
        """
        Install, replace or clear (None) the sync configuration.

        Clearing goes INACTIVE immediately and cancels the debounce timer.
        A new config starts optimistic (SYNCED) with no automatic push, since
        the user may be about to pull from it. Any in-flight result is dropped.

        Raises:
            StorageError: If the config could not be persisted
        """
        if config is None:
            self._config_storage.clear_sync_config()
        else:
            self._config_storage.save_sync_config(config)

        self._epoch += 1
        self._timer.cancel()
        self._followup = False
        self._config = config
        self._audit.log_sync_config_changed(config is not None)
        self._set_state(SyncState.SYNCED if config else SyncState.INACTIVE)

    async def push_now(self) -> bool:
        """
        Push the current snapshot immediately, bypassing the debounce timer.

        Returns False without touching the network when no config exists or
        another operation is in flight.
        """
        if self._config is None:
            self._audit.log_push_rejected("sync is not configured")
            return False
        if self._inflight is not None:
            self._audit.log_push_rejected("another sync operation is in flight")
            return False

        self._timer.cancel()
        return await self._launch(self._run_push())

    async def pull(self, confirm: PullConfirmation) -> PullOutcome:
        """
        Fetch the remote snapshot and, if `confirm` agrees, replace the ledger.

        `confirm` receives the fetched snapshot and may be a plain function
        or a coroutine function. The ledger is never touched without it
        returning True.

        Raises:
            SyncNotConfiguredError: If there is no SyncConfig
            NetworkFailureError: If the remote could not be reached
            MalformedRemoteDataError: If the payload is unusable
        """
        if self._config is None:
            raise SyncNotConfiguredError("Configure a sync URL before pulling")
        if self._inflight is not None:
            logger.info("sync_pull_rejected_busy")
            return PullOutcome.BUSY

        return await self._launch(self._run_pull(confirm))

    async def wait_idle(self) -> None:
        """Wait until no network operation (including follow-ups) is in flight."""
        while self._inflight is not None:
            await asyncio.wait({self._inflight})

    def close(self) -> None:
        """Stop reacting to ledger and connectivity events."""
        self._timer.cancel()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self._state_listeners.clear()

    # -------------------------------------------------------------------------
    # Event handlers
    # -------------------------------------------------------------------------

    def _on_ledger_change(self, change: LedgerChange) -> None:
        if self._config is None or self._applying_pull:
            return

        self._generation += 1
        if self._inflight is None:
            self._set_state(SyncState.PENDING)
        self._timer.arm()

    def _on_timer(self) -> None:
        if self._config is None:
            return
        if self._inflight is not None:
            # Collapse into one follow-up once the current operation ends
            self._followup = True
            return
        if not self._monitor.online:
            logger.info("sync_push_deferred_offline")
            self._set_state(SyncState.PENDING)
            return
        self._launch(self._run_push())

    def _on_became_online(self) -> None:
        self._audit.log_connectivity_changed(True)
        if self._config is None or self._inflight is not None:
            return
        if self._state in (SyncState.PENDING, SyncState.ERROR):
            self._timer.cancel()
            self._launch(self._run_push())

    def _on_became_offline(self) -> None:
        self._audit.log_connectivity_changed(False)

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def _launch(self, operation) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(operation)
        self._inflight = task
        task.add_done_callback(self._operation_done)
        return task

    def _operation_done(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None

        followup, self._followup = self._followup, False
        if followup and self._config is not None and self._state == SyncState.PENDING:
            self._on_timer()

    async def _run_push(self) -> bool:
        if self._config is None:
            # Cleared between scheduling and start
            return False
        epoch = self._epoch
        generation = self._generation
        url = self._config.url
        snapshot = self._store.snapshot()

        self._set_state(SyncState.SYNCING)
        try:
            await self._client.push(url, snapshot)
        except ReplicaError as e:
            return self._push_failed(epoch, str(e))
        except Exception as e:
            logger.exception("sync_push_crashed")
            return self._push_failed(epoch, f"{type(e).__name__}: {e}")

        if epoch != self._epoch:
            self._audit.log_result_discarded("push")
            return False

        self._record_success()
        self._audit.log_push_succeeded(len(snapshot.transactions), len(snapshot.accounts))
        if self._generation != generation:
            # Changed while in flight; the armed timer (or follow-up) pushes again
            self._set_state(SyncState.PENDING)
        else:
            self._set_state(SyncState.SYNCED)
        return True

    def _push_failed(self, epoch: int, message: str) -> bool:
        if epoch != self._epoch:
            self._audit.log_result_discarded("push")
            return False
        self._audit.log_push_failed(message)
        self._set_state(SyncState.ERROR)
        return False

    async def _run_pull(self, confirm: PullConfirmation) -> PullOutcome:
        if self._config is None:
            return PullOutcome.DISCARDED
        epoch = self._epoch
        generation = self._generation
        previous = self._state
        url = self._config.url

        self._set_state(SyncState.SYNCING)
        try:
            snapshot = await self._client.pull(url)
        except ReplicaError as e:
            if epoch != self._epoch:
                self._audit.log_result_discarded("pull")
                return PullOutcome.DISCARDED
            self._audit.log_pull_failed(type(e).__name__, str(e))
            self._restore_state(previous, generation)
            raise

        if epoch != self._epoch:
            self._audit.log_result_discarded("pull")
            return PullOutcome.DISCARDED

        try:
            decision = confirm(snapshot)
            if inspect.isawaitable(decision):
                decision = await decision
        except Exception:
            if epoch == self._epoch:
                self._restore_state(previous, generation)
            raise

        if epoch != self._epoch:
            self._audit.log_result_discarded("pull")
            return PullOutcome.DISCARDED

        if not decision:
            self._audit.log_pull_declined()
            self._restore_state(previous, generation)
            return PullOutcome.DECLINED

        self._applying_pull = True
        try:
            self._store.replace_snapshot(list(snapshot.accounts), list(snapshot.transactions))
        except Exception:
            self._restore_state(previous, generation)
            raise
        finally:
            self._applying_pull = False

        # Local edits made during the pull were just replaced
        self._timer.cancel()
        self._followup = False
        self._record_success()
        self._audit.log_pull_applied(len(snapshot.transactions), len(snapshot.accounts))
        self._set_state(SyncState.SYNCED)
        return PullOutcome.APPLIED

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _restore_state(self, previous: SyncState, generation: int) -> None:
        if self._generation != generation:
            self._set_state(SyncState.PENDING)
        else:
            self._set_state(previous)

    def _record_success(self) -> None:
        """Stamp lastSynced and persist the config."""
        self._config = self._config.model_copy(update={"last_synced": self._clock()})
        try:
            self._config_storage.save_sync_config(self._config)
        except StorageError as e:
            # The sync itself succeeded; only the timestamp is stale on disk
            self._audit.log_storage_error(str(e))

    def _set_state(self, state: SyncState) -> None:
        if state == self._state:
            return
        previous, self._state = self._state, state
        self._audit.log_sync_state_changed(previous.value, state.value)

        for listener in list(self._state_listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("sync_state_listener_failed", state=state.value)
