"""
Core Data Models for the SmartSpend ledger

These models define the strict schemas for everything the ledger stores
and everything that crosses the wire to the remote replica.

DESIGN DECISION: All entities are frozen Pydantic models.
An edit never mutates a transaction in place; the store replaces it by id.
Python attributes are snake_case while the persisted/wire form keeps the
camelCase names the spreadsheet side expects (accountId, targetAccountId...).
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """
    Direction of a money movement.

    Direction is encoded here, never in the sign of the amount.
    """
    INCOME = "income"      # Credits accountId (boundary flow)
    EXPENSE = "expense"    # Debits accountId (boundary flow)
    TRANSFER = "transfer"  # Moves value from accountId to targetAccountId


class SyncState(str, Enum):
    """
    Observable state of the sync engine.

    None of these states is terminal.
    """
    INACTIVE = "inactive"  # No SyncConfig, local-only operation
    PENDING = "pending"    # Local changes not yet pushed, or offline
    SYNCING = "syncing"    # Push or pull in flight
    SYNCED = "synced"      # Last push/pull succeeded, nothing newer locally
    ERROR = "error"        # Last network operation failed


class _WireModel(BaseModel):
    """Base for models that persist/travel with camelCase keys."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        coerce_numbers_to_str=True,
    )

    def to_wire(self) -> dict:
        """Serialize to the JSON-ready camelCase form; absent optionals are omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# LEDGER ENTITIES
# =============================================================================

class Account(_WireModel):
    """A user-defined account (wallet, bank, card...)."""

    id: str = Field(
        ...,
        description="Unique, stable account id"
    )
    name: str = Field(
        default="",
        description="Display name"
    )
    emoji: str = Field(
        default="",
        description="Display emoji"
    )


class TransactionDraft(_WireModel):
    """
    A transaction as entered by the user, before the store assigns an id.

    Callers never supply ids; LedgerStore.add_transaction does.
    """

    date: datetime = Field(
        ...,
        description="When the money moved"
    )
    amount: float = Field(
        ...,
        ge=0,
        description="Always non-negative; direction comes from type"
    )
    type: TransactionType
    category: str = Field(default="")
    description: str = Field(default="")
    account_id: str = Field(
        ...,
        description="Account debited (expense/transfer) or credited (income)"
    )
    target_account_id: Optional[str] = Field(
        default=None,
        description="Account credited by a transfer"
    )


class Transaction(TransactionDraft):
    """A stored transaction. Identity is the id; everything else is replaceable."""

    id: str = Field(
        ...,
        description="Globally unique transaction id"
    )

    @classmethod
    def from_draft(cls, draft: TransactionDraft, transaction_id: str) -> "Transaction":
        return cls(id=transaction_id, **draft.model_dump())

    @property
    def is_transfer(self) -> bool:
        return self.type == TransactionType.TRANSFER


class LedgerSnapshot(_WireModel):
    """
    The full (accounts, transactions) pair.

    CRITICAL: This is the only unit that is ever persisted or synced.
    It is never partially serialized.
    """

    accounts: tuple[Account, ...] = Field(default_factory=tuple)
    transactions: tuple[Transaction, ...] = Field(default_factory=tuple)

    @classmethod
    def empty(cls) -> "LedgerSnapshot":
        return cls()

    @property
    def account_ids(self) -> set[str]:
        return {account.id for account in self.accounts}

    def to_push_payload(self) -> dict:
        """Body of the push request sent to the remote replica."""
        return {
            "action": "push",
            "transactions": [t.to_wire() for t in self.transactions],
            "accounts": [a.to_wire() for a in self.accounts],
        }


# =============================================================================
# SYNC CONFIGURATION
# =============================================================================

class SyncConfig(_WireModel):
    """
    Process-wide sync configuration.

    Its presence is what turns the sync engine on.
    """

    url: str = Field(
        ...,
        min_length=1,
        description="Remote replica endpoint (web app URL or spreadsheet URL)"
    )
    last_synced: Optional[datetime] = Field(
        default=None,
        description="When the last push/pull succeeded"
    )


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found on write."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing_target', 'dangling_reference')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning)$",
        description="Errors block the write, warnings are only flagged"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Id of the transaction/account the issue is about"
    )


class ValidationResult(BaseModel):
    """Outcome of validating a write against the ledger rules."""

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "error"]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        return ValidationResult(issues=[*self.issues, *other.issues])
