"""
Ledger Write Validation

DESIGN DECISION: Validation runs on every write to the ledger, never on read.

ERRORS (the write is rejected):
- A transfer without a target account
- A transfer whose target is its own source
- Duplicate or empty account ids
- Duplicate transaction ids inside a snapshot

WARNINGS (the write goes through, the issue is flagged and logged):
- accountId / targetAccountId pointing at an account that does not exist
  (the balance engine tolerates these; they simply contribute nothing)
- A non-transfer carrying a targetAccountId

IMPORTANT: Validation NEVER silently fixes issues.
It reports them; the caller decides.
"""

from collections import Counter
from typing import Iterable

from smartspend.models.ledger import (
    Account,
    LedgerSnapshot,
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)


# May be referenced without existing as an account
SYNTHETIC_ACCOUNT_IDS = frozenset({"cash"})


class LedgerValidationError(ValueError):
    """A write broke a ledger rule. Never retried automatically."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(issue.message for issue in result.errors)
        super().__init__(messages or "Ledger validation failed")

    @property
    def issues(self) -> list[ValidationIssue]:
        return self.result.errors


class LedgerValidator:
    """
    Validates transactions, account lists and whole snapshots.

    Stateless; the known account ids are passed in with every call.
    """

    def validate_transaction(
        self,
        transaction: TransactionDraft,
        account_ids: Iterable[str],
    ) -> ValidationResult:
        """
        Check one transaction (or draft) against the ledger rules.

        Returns: ValidationResult with errors and warnings
        """
        issues = []
        known = set(account_ids) | SYNTHETIC_ACCOUNT_IDS
        entity_id = getattr(transaction, "id", None)

        if transaction.type == TransactionType.TRANSFER:
            if not transaction.target_account_id:
                issues.append(ValidationIssue(
                    field="target_account_id",
                    issue_type="missing_target",
                    message="A transfer needs a target account",
                    severity="error",
                    entity_id=entity_id,
                ))
            elif transaction.target_account_id == transaction.account_id:
                issues.append(ValidationIssue(
                    field="target_account_id",
                    issue_type="self_transfer",
                    message=f"Cannot transfer from '{transaction.account_id}' to itself",
                    severity="error",
                    entity_id=entity_id,
                ))
        elif transaction.target_account_id:
            issues.append(ValidationIssue(
                field="target_account_id",
                issue_type="unexpected_target",
                message=f"A {transaction.type.value} has no target account; it will be ignored",
                severity="warning",
                entity_id=entity_id,
            ))

        if transaction.account_id not in known:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="dangling_reference",
                message=f"Account '{transaction.account_id}' does not exist",
                severity="warning",
                entity_id=entity_id,
            ))

        if (
            transaction.type == TransactionType.TRANSFER
            and transaction.target_account_id
            and transaction.target_account_id != transaction.account_id
            and transaction.target_account_id not in known
        ):
            issues.append(ValidationIssue(
                field="target_account_id",
                issue_type="dangling_reference",
                message=f"Account '{transaction.target_account_id}' does not exist",
                severity="warning",
                entity_id=entity_id,
            ))

        return ValidationResult(issues=issues)

    def validate_accounts(self, accounts: Iterable[Account]) -> ValidationResult:
        """Account ids must be present and unique."""
        issues = []
        counts = Counter(account.id for account in accounts)

        if counts.get("", 0):
            issues.append(ValidationIssue(
                field="id",
                issue_type="missing",
                message="Every account needs an id",
                severity="error",
            ))

        for account_id, count in sorted(counts.items()):
            if account_id and count > 1:
                issues.append(ValidationIssue(
                    field="id",
                    issue_type="duplicate",
                    message=f"Account id '{account_id}' is used {count} times",
                    severity="error",
                    entity_id=account_id,
                ))

        return ValidationResult(issues=issues)

    def validate_snapshot(self, snapshot: LedgerSnapshot) -> ValidationResult:
        """Validate a whole snapshot, as applied by a pull."""
        result = self.validate_accounts(snapshot.accounts)
        account_ids = snapshot.account_ids

        counts = Counter(tx.id for tx in snapshot.transactions)
        issues = [
            ValidationIssue(
                field="id",
                issue_type="duplicate",
                message=f"Transaction id '{tx_id}' is used {count} times",
                severity="error",
                entity_id=tx_id,
            )
            for tx_id, count in sorted(counts.items())
            if count > 1
        ]
        for transaction in snapshot.transactions:
            issues.extend(self.validate_transaction(transaction, account_ids).issues)

        return result.merge(ValidationResult(issues=issues))

    @staticmethod
    def raise_for_errors(result: ValidationResult) -> ValidationResult:
        """Raise LedgerValidationError if the result has errors, else return it."""
        if result.has_errors:
            raise LedgerValidationError(result)
        return result


def issues_as_dicts(issues: list[ValidationIssue]) -> list[dict]:
    return [
        {"field": i.field, "type": i.issue_type, "message": i.message, "entity_id": i.entity_id}
        for i in issues
    ]

