"""Ledger write validation package."""

from smartspend.validation.validator import (
    SYNTHETIC_ACCOUNT_IDS,
    LedgerValidationError,
    LedgerValidator,
    issues_as_dicts,
)

__all__ = [
    "SYNTHETIC_ACCOUNT_IDS",
    "LedgerValidationError",
    "LedgerValidator",
    "issues_as_dicts",
]
