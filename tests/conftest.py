"""
Shared fixtures and fakes.

No test touches the network, the filesystem outside tmp_path, or the
real clock: the debounce timer runs on ManualScheduler and time only moves
when a test calls advance().
"""

from datetime import datetime
from typing import Callable, Optional

import pytest

from smartspend.audit import AuditLogger
from smartspend.ledger import LedgerStore
from smartspend.models.ledger import (
    Account,
    LedgerSnapshot,
    SyncConfig,
    Transaction,
    TransactionDraft,
    TransactionType,
)
from smartspend.services.replica import InMemoryReplica
from smartspend.services.storage import InMemoryStorage
from smartspend.sync import ConnectivityMonitor, SyncEngine


SYNC_URL = "https://script.google.com/macros/s/test/exec"


class ManualHandle:
    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic stand-in for loop.call_later."""

    def __init__(self):
        self.now = 0.0
        self._handles: list[ManualHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(self.now + delay, callback)
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for h in self._handles if not h.cancelled)

    def advance(self, seconds: float) -> None:
        """Move time forward, running every callback that comes due in order."""
        target = self.now + seconds
        while True:
            due = [h for h in self._handles if not h.cancelled and h.when <= target + 1e-9]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self._handles.remove(handle)
            self.now = max(self.now, handle.when)
            handle.callback()
        self.now = target


def make_draft(
    tx_type: TransactionType = TransactionType.EXPENSE,
    amount: float = 10.0,
    account_id: str = "bank",
    target_account_id: Optional[str] = None,
    category: str = "",
    date: Optional[datetime] = None,
    description: str = "",
) -> TransactionDraft:
    return TransactionDraft(
        date=date or datetime(2024, 3, 15, 12, 0),
        amount=amount,
        type=tx_type,
        category=category,
        description=description,
        account_id=account_id,
        target_account_id=target_account_id,
    )


def make_tx(tx_id: str, tx_type: TransactionType, amount: float, account_id: str, **kwargs) -> Transaction:
    return Transaction.from_draft(
        make_draft(tx_type=tx_type, amount=amount, account_id=account_id, **kwargs),
        tx_id,
    )


class SequentialIds:
    """Predictable id factory: tx-1, tx-2, ..."""

    def __init__(self):
        self.count = 0

    def __call__(self) -> str:
        self.count += 1
        return f"tx-{self.count}"


@pytest.fixture
def accounts() -> list[Account]:
    return [
        Account(id="cash", name="Cash", emoji="💵"),
        Account(id="bank", name="Bank", emoji="🏦"),
    ]


@pytest.fixture
def audit_logger() -> AuditLogger:
    return AuditLogger(history_size=500)


@pytest.fixture
def storage(accounts) -> InMemoryStorage:
    return InMemoryStorage(snapshot=LedgerSnapshot(accounts=tuple(accounts)))


@pytest.fixture
def store(storage, audit_logger) -> LedgerStore:
    return LedgerStore(storage, id_factory=SequentialIds(), audit_logger=audit_logger)


@pytest.fixture
def replica() -> InMemoryReplica:
    return InMemoryReplica()


@pytest.fixture
def monitor() -> ConnectivityMonitor:
    return ConnectivityMonitor(initially_online=True)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def make_engine(store, replica, monitor, storage, scheduler, audit_logger):
    """Build a SyncEngine over the shared fakes, optionally pre-configured."""
    engines = []

    def factory(configured: bool = True, debounce_seconds: float = 2.0) -> SyncEngine:
        if configured:
            storage.save_sync_config(SyncConfig(url=SYNC_URL))
        engine = SyncEngine(
            store=store,
            client=replica,
            monitor=monitor,
            config_storage=storage,
            scheduler=scheduler,
            debounce_seconds=debounce_seconds,
            audit_logger=audit_logger,
        )
        engines.append(engine)
        return engine

    yield factory
    for engine in engines:
        engine.close()
