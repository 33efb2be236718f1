"""Ledger store package."""

from smartspend.ledger.store import ChangeKind, LedgerChange, LedgerListener, LedgerStore

__all__ = ["ChangeKind", "LedgerChange", "LedgerListener", "LedgerStore"]
