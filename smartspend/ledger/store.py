"""
Ledger Store

The single legal mutation path for accounts and transactions.

DESIGN DECISION: Every successful mutation
1. validates the write (errors raise, warnings are logged),
2. persists the FULL snapshot synchronously,
3. swaps the in-memory snapshot,
4. publishes a LedgerChange to subscribers (the sync engine listens here).

If persistence fails nothing is swapped and nothing is published, so the
in-memory ledger never runs ahead of what is on disk.

Reads need no locking: mutation and read happen on the same event-loop thread.
"""

from enum import Enum
from typing import Callable, NamedTuple, Optional
from uuid import uuid4

import structlog

from smartspend.audit import AuditLogger, get_audit_logger
from smartspend.models.ledger import (
    Account,
    LedgerSnapshot,
    Transaction,
    TransactionDraft,
    ValidationResult,
)
from smartspend.services.storage import LedgerStorageInterface, NotFoundError, StorageError
from smartspend.validation import LedgerValidator, issues_as_dicts


logger = structlog.get_logger(__name__)


class ChangeKind(str, Enum):
    """What kind of mutation produced a dirty event."""
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    ACCOUNTS_REPLACED = "accounts_replaced"
    SNAPSHOT_REPLACED = "snapshot_replaced"


class LedgerChange(NamedTuple):
    """Dirty notification published after a successful mutation."""
    kind: ChangeKind
    entity_ids: tuple[str, ...]
    snapshot: LedgerSnapshot


LedgerListener = Callable[[LedgerChange], None]


def _new_id() -> str:
    return str(uuid4())


class LedgerStore:
    """
    In-memory ledger backed by a LedgerStorageInterface.

    Usage:
        store = LedgerStore(JsonFileStorage("~/.smartspend"))
        tx = store.add_transaction(TransactionDraft(...))
        unsubscribe = store.subscribe(on_change)
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        validator: Optional[LedgerValidator] = None,
        id_factory: Callable[[], str] = _new_id,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._validator = validator or LedgerValidator()
        self._id_factory = id_factory
        self._audit = audit_logger or get_audit_logger()
        self._listeners: list[LedgerListener] = []
        self._snapshot = storage.load_snapshot() or LedgerSnapshot.empty()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def accounts(self) -> tuple[Account, ...]:
        return self._snapshot.accounts

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return self._snapshot.transactions

    def snapshot(self) -> LedgerSnapshot:
        """The current snapshot. Immutable, safe to hand to another task."""
        return self._snapshot

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        for tx in self._snapshot.transactions:
            if tx.id == transaction_id:
                return tx
        return None

    def get_account(self, account_id: str) -> Optional[Account]:
        for account in self._snapshot.accounts:
            if account.id == account_id:
                return account
        return None

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def subscribe(self, listener: LedgerListener) -> Callable[[], None]:
        """
        Register a dirty-event listener.

        Returns a callable that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add_transaction(self, draft: TransactionDraft) -> Transaction:
        """
        Add a new transaction. The store assigns the id.

        Raises:
            LedgerValidationError: If the draft breaks a ledger rule
            StorageError: If the snapshot could not be persisted
        """
        self._check(self._validator.validate_transaction(draft, self._snapshot.account_ids))

        transaction = Transaction.from_draft(draft, self._id_factory())
        # Newest first
        snapshot = LedgerSnapshot(
            accounts=self._snapshot.accounts,
            transactions=(transaction, *self._snapshot.transactions),
        )
        self._commit(snapshot, ChangeKind.TRANSACTION_ADDED, (transaction.id,))
        self._audit.log_transaction_added(
            transaction.id, transaction.type.value, transaction.amount
        )
        return transaction

    def update_transaction(self, transaction: Transaction) -> None:
        """
        Replace the transaction with the same id.

        Raises:
            NotFoundError: If no transaction has that id
            LedgerValidationError: If the new version breaks a ledger rule
        """
        if self.get_transaction(transaction.id) is None:
            raise NotFoundError(f"Transaction not found: {transaction.id}")

        self._check(self._validator.validate_transaction(transaction, self._snapshot.account_ids))

        snapshot = LedgerSnapshot(
            accounts=self._snapshot.accounts,
            transactions=tuple(
                transaction if tx.id == transaction.id else tx
                for tx in self._snapshot.transactions
            ),
        )
        self._commit(snapshot, ChangeKind.TRANSACTION_UPDATED, (transaction.id,))
        self._audit.log_transaction_updated(transaction.id)

    def delete_transaction(self, transaction_id: str) -> bool:
        """
        Remove a transaction.

        Deleting an unknown id is a no-op: nothing is persisted, no dirty
        event is published, and False is returned.
        """
        remaining = tuple(tx for tx in self._snapshot.transactions if tx.id != transaction_id)
        if len(remaining) == len(self._snapshot.transactions):
            return False

        snapshot = LedgerSnapshot(accounts=self._snapshot.accounts, transactions=remaining)
        self._commit(snapshot, ChangeKind.TRANSACTION_DELETED, (transaction_id,))
        self._audit.log_transaction_deleted(transaction_id)
        return True

    def set_accounts(self, accounts: list[Account]) -> None:
        """
        Replace the account list.

        Transactions referring to a removed account are kept; they simply
        stop contributing to any balance.
        """
        accounts = tuple(accounts)
        self._check(self._validator.validate_accounts(accounts))

        snapshot = LedgerSnapshot(accounts=accounts, transactions=self._snapshot.transactions)
        self._commit(snapshot, ChangeKind.ACCOUNTS_REPLACED, tuple(a.id for a in accounts))
        self._audit.log_accounts_replaced([a.id for a in accounts])

    def replace_snapshot(self, accounts: list[Account], transactions: list[Transaction]) -> None:
        """
        Replace everything at once (used when applying a pull).

        The whole snapshot is validated first; on any error nothing changes.
        """
        snapshot = LedgerSnapshot(accounts=tuple(accounts), transactions=tuple(transactions))
        self._check(self._validator.validate_snapshot(snapshot))

        self._commit(snapshot, ChangeKind.SNAPSHOT_REPLACED, ())
        self._audit.log_snapshot_replaced(len(snapshot.accounts), len(snapshot.transactions))

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _check(self, result: ValidationResult) -> None:
        if result.has_errors:
            self._audit.log_validation_failed(issues_as_dicts(result.errors))
        self._validator.raise_for_errors(result)
        if result.warnings:
            self._audit.log_validation_warning(issues_as_dicts(result.warnings))

    def _commit(self, snapshot: LedgerSnapshot, kind: ChangeKind, entity_ids: tuple[str, ...]) -> None:
        try:
            self._storage.save_snapshot(snapshot)
        except StorageError as e:
            self._audit.log_storage_error(str(e))
            raise

        self._snapshot = snapshot
        self._publish(LedgerChange(kind=kind, entity_ids=entity_ids, snapshot=snapshot))

    def _publish(self, change: LedgerChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                # A broken subscriber must not undo a committed mutation
                logger.exception("ledger_listener_failed", kind=change.kind.value)
