"""
Tests for Split Ledger models

Test strategy:
1. Unit tests for the Pydantic models and month-key helpers
2. Audit event construction through the builder
3. Storage-backed services are covered in their own modules
"""

import pytest
from datetime import date, datetime

from splitledger.models import (
    OWNER_ID,
    TEMPLATE_MONTH,
    AuditSeverity,
    Budget,
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventType,
    Person,
    PersonalSpend,
    Settlement,
    SharedExpense,
    month_bounds,
    month_key,
    validate_month_key,
)


class TestLedgerModels:
    """Tests for ledger Pydantic models."""

    def test_person_strips_whitespace(self):
        """Test that whitespace is stripped from display names."""
        person = Person(display_name="  Alice  ")
        assert person.display_name == "Alice"
        assert not person.is_owner

    def test_person_requires_name(self):
        """Test that a blank name is rejected."""
        with pytest.raises(ValueError):
            Person(display_name="   ")

    def test_person_blank_email_is_none(self):
        """Test that an empty email is stored as None."""
        assert Person(display_name="Bob", email="  ").email is None

    def test_owner_person(self):
        """Test the owner flag."""
        assert Person(id=OWNER_ID, display_name="Me").is_owner

    def test_shared_expense_defaults(self):
        """Test SharedExpense defaults."""
        expense = SharedExpense(amount=30.0, payer_id=OWNER_ID)
        assert expense.currency == "CAD"
        assert expense.created_by == OWNER_ID
        assert expense.description is None
        assert isinstance(expense.date, datetime)

    def test_shared_expense_rejects_zero_amount(self):
        """Test that the amount must be positive."""
        with pytest.raises(ValueError):
            SharedExpense(amount=0, payer_id=OWNER_ID)

    def test_ids_are_unique(self):
        """Test that ids are generated per instance."""
        assert SharedExpense(amount=1).id != SharedExpense(amount=1).id

    def test_settlement_requires_two_people(self):
        """Test that payer and payee must differ."""
        with pytest.raises(ValueError):
            Settlement(payer_id="alice", payee_id="alice", amount=10)

    def test_personal_spend_defaults_to_owner(self):
        """Test PersonalSpend defaults."""
        spend = PersonalSpend(amount=4.5, note="")
        assert spend.user_id == OWNER_ID
        assert spend.budget_id is None
        assert spend.note is None

    def test_budget_template(self):
        """Test that month 0 marks a template."""
        budget = Budget(name="Groceries", month=TEMPLATE_MONTH, amount=400)
        assert budget.is_template

    def test_budget_instance(self):
        """Test a month-bound budget."""
        budget = Budget(name="Groceries", month=202405, amount=0)
        assert not budget.is_template

    def test_budget_rejects_bad_month(self):
        """Test that a month must be YYYYMM."""
        with pytest.raises(ValueError):
            Budget(name="Groceries", month=202413, amount=100)

    def test_budget_rejects_negative_amount(self):
        """Test that budget caps can't be negative."""
        with pytest.raises(ValueError):
            Budget(name="Groceries", month=202405, amount=-1)


class TestMonthKeys:
    """Tests for YYYYMM helpers."""

    def test_month_key_from_date(self):
        """Test building a key from a date."""
        assert month_key(date(2024, 5, 17)) == 202405

    def test_month_key_defaults_to_now(self):
        """Test the default month."""
        assert month_key() == month_key(datetime.now())

    def test_validate_month_key(self):
        """Test valid and invalid keys."""
        assert validate_month_key(202412) == 202412
        with pytest.raises(ValueError):
            validate_month_key(202400)

    def test_month_bounds(self):
        """Test the half-open range for a month."""
        start, end = month_bounds(202405)
        assert start == datetime(2024, 5, 1)
        assert end == datetime(2024, 6, 1)

    def test_month_bounds_december(self):
        """Test the year rollover."""
        start, end = month_bounds(202412)
        assert end == datetime(2025, 1, 1)


class TestAuditModels:
    """Tests for audit-related models."""

    def test_ledger_event_creation(self):
        """Test LedgerEvent model creation."""
        event = LedgerEvent(
            event_type=LedgerEventType.EXPENSE_CREATED,
            description="Test event",
        )
        assert event.event_type == LedgerEventType.EXPENSE_CREATED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_expense_created_event(self):
        """Test the builder for new expenses."""
        event = LedgerEventBuilder.expense_created("e1", 30.0, OWNER_ID, 3, "equal")
        assert event.entity_type == "expense"
        assert event.entity_id == "e1"
        assert event.details["amount"] == "30.00"
        assert event.details["participant_count"] == 3

    def test_budget_created_event_for_template(self):
        """Test recurring budgets are described as such."""
        event = LedgerEventBuilder.budget_created("b1", "Rent", TEMPLATE_MONTH, 1200)
        assert event.description.startswith("Recurring budget")

    def test_validation_failed_event(self):
        """Test validation failures are warnings."""
        event = LedgerEventBuilder.validation_failed(
            operation="create_expense",
            error_type="InvalidSplitError",
            error_message="Percents must sum to 100",
        )
        assert event.event_type == LedgerEventType.VALIDATION_FAILED
        assert event.severity == AuditSeverity.WARNING
        assert event.error_code == "InvalidSplitError"

    def test_transaction_failed_event(self):
        """Test rolled-back transactions are errors."""
        event = LedgerEventBuilder.transaction_failed("delete_person", "disk I/O error", "p1")
        assert event.severity == AuditSeverity.ERROR
        assert event.entity_id == "p1"

    def test_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = LedgerEventBuilder.spend_added("s1", 12.5, None)
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "spend_added"
        assert log_dict["details"]["amount"] == "12.50"
        assert "timestamp" in log_dict
