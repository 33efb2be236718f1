"""
Tests for SmartSpend

Test strategy:
1. Unit tests for individual components (models, validators, balance engine)
2. Behaviour tests for the store and the sync engine (with in-memory fakes)
3. No real network calls in tests (requests and gspread are faked)
"""

import pytest
from datetime import datetime

from smartspend.models.ledger import (
    Account,
    LedgerSnapshot,
    SyncConfig,
    Transaction,
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)
from smartspend.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestLedgerModels:
    """Tests for ledger Pydantic models."""

    def test_account_defaults(self):
        """Test Account only needs an id."""
        account = Account(id="cash")
        assert account.name == ""
        assert account.emoji == ""

    def test_account_strips_whitespace(self):
        """Test that whitespace is stripped from names."""
        account = Account(id="bank", name="  Main Bank  ")
        assert account.name == "Main Bank"

    def test_transaction_rejects_negative_amount(self):
        """Test that direction never comes from the sign."""
        with pytest.raises(ValueError):
            TransactionDraft(
                date=datetime(2024, 1, 1),
                amount=-5,
                type=TransactionType.EXPENSE,
                account_id="cash",
            )

    def test_transaction_rejects_unknown_type(self):
        """Test that only income/expense/transfer are accepted."""
        with pytest.raises(ValueError):
            TransactionDraft(
                date=datetime(2024, 1, 1),
                amount=5,
                type="refund",
                account_id="cash",
            )

    def test_transaction_is_frozen(self):
        """Test that a stored transaction cannot be edited in place."""
        tx = Transaction(
            id="t1",
            date=datetime(2024, 1, 1),
            amount=5,
            type=TransactionType.EXPENSE,
            account_id="cash",
        )
        with pytest.raises(ValueError):
            tx.amount = 10

    def test_from_draft_assigns_id(self):
        """Test Transaction.from_draft keeps every draft field."""
        draft = TransactionDraft(
            date=datetime(2024, 1, 1),
            amount=200,
            type=TransactionType.TRANSFER,
            account_id="bank",
            target_account_id="cash",
            category="Withdrawal",
        )
        tx = Transaction.from_draft(draft, "t-42")
        assert tx.id == "t-42"
        assert tx.target_account_id == "cash"
        assert tx.category == "Withdrawal"
        assert tx.is_transfer is True

    def test_wire_form_uses_camel_case(self):
        """Test the persisted/wire form matches the spreadsheet column names."""
        tx = Transaction(
            id="t1",
            date=datetime(2024, 1, 1, 9, 30),
            amount=12.5,
            type=TransactionType.TRANSFER,
            account_id="bank",
            target_account_id="cash",
        )
        wire = tx.to_wire()
        assert wire["accountId"] == "bank"
        assert wire["targetAccountId"] == "cash"
        assert wire["type"] == "transfer"
        assert wire["date"] == "2024-01-01T09:30:00"

    def test_wire_form_omits_absent_target(self):
        """Test targetAccountId is omitted, not null, when absent."""
        tx = Transaction(
            id="t1",
            date=datetime(2024, 1, 1),
            amount=1,
            type=TransactionType.INCOME,
            account_id="bank",
        )
        assert "targetAccountId" not in tx.to_wire()

    def test_wire_form_parses_back(self):
        """Test a camelCase record validates into the same model."""
        tx = Transaction.model_validate({
            "id": "t1",
            "date": "2024-01-01T00:00:00",
            "amount": 3,
            "type": "expense",
            "accountId": "cash",
        })
        assert tx.account_id == "cash"
        assert tx.target_account_id is None

    def test_snapshot_push_payload(self):
        """Test the push body shape."""
        snapshot = LedgerSnapshot(
            accounts=(Account(id="cash"),),
            transactions=(),
        )
        payload = snapshot.to_push_payload()
        assert payload["action"] == "push"
        assert payload["transactions"] == []
        assert payload["accounts"] == [{"id": "cash", "name": "", "emoji": ""}]

    def test_snapshot_account_ids(self):
        """Test account_ids is the set of known ids."""
        snapshot = LedgerSnapshot(accounts=(Account(id="a"), Account(id="b")))
        assert snapshot.account_ids == {"a", "b"}

    def test_sync_config_requires_url(self):
        """Test an empty URL is not a config."""
        with pytest.raises(ValueError):
            SyncConfig(url="")

    def test_sync_config_wire_keys(self):
        """Test lastSynced is stored camelCase and omitted until set."""
        assert SyncConfig(url="https://x").to_wire() == {"url": "https://x"}
        stamped = SyncConfig(url="https://x", last_synced=datetime(2024, 5, 1))
        assert stamped.to_wire()["lastSynced"] == "2024-05-01T00:00:00"


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            description="Transaction added",
        )
        assert event.event_type == AuditEventType.TRANSACTION_ADDED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.PUSH_SUCCEEDED,
            description="Pushed",
            details={"transactions": 3},
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "push_succeeded"
        assert log_dict["details"]["transactions"] == 3
        assert "timestamp" in log_dict

    def test_builder_transaction_added(self):
        """Test AuditEventBuilder.transaction_added."""
        event = AuditEventBuilder.transaction_added("t1", "expense", 50.0)
        assert event.event_type == AuditEventType.TRANSACTION_ADDED
        assert event.entity_type == "transaction"
        assert event.entity_id == "t1"
        assert event.details["amount"] == 50.0

    def test_builder_push_failed_is_error(self):
        """Test failed pushes are logged at error severity."""
        event = AuditEventBuilder.push_failed("connection refused")
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "connection refused"

    def test_builder_sync_state_changed(self):
        """Test AuditEventBuilder.sync_state_changed."""
        event = AuditEventBuilder.sync_state_changed("pending", "syncing")
        assert event.event_type == AuditEventType.SYNC_STATE_CHANGED
        assert event.details == {"previous": "pending", "current": "syncing"}


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(issues=[
            ValidationIssue(
                field="target_account_id",
                issue_type="missing_target",
                message="A transfer needs a target account",
                severity="error",
            ),
        ])
        assert result.has_errors is True
        assert result.is_valid is False
        assert len(result.errors) == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(issues=[
            ValidationIssue(
                field="account_id",
                issue_type="dangling_reference",
                message="Account 'x' does not exist",
                severity="warning",
            ),
        ])
        assert result.has_errors is False
        assert result.is_valid is True
        assert len(result.warnings) == 1

    def test_validation_issue_rejects_unknown_severity(self):
        """Test severity must be error or warning."""
        with pytest.raises(ValueError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")

    def test_merge(self):
        """Test merging keeps issues from both sides."""
        a = ValidationResult(issues=[
            ValidationIssue(field="a", issue_type="t", message="m", severity="warning"),
        ])
        b = ValidationResult(issues=[
            ValidationIssue(field="b", issue_type="t", message="m", severity="error"),
        ])
        merged = a.merge(b)
        assert [i.field for i in merged.issues] == ["a", "b"]
        assert merged.has_errors is True
