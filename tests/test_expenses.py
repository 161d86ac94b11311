"""Tests for the expense ledger service against an in-memory database."""

import pytest
from datetime import datetime

from sqlalchemy import event

from splitledger.ledger import ExpenseLedgerService, PeopleService
from splitledger.models import OWNER_ID, AmountsSplit, PercentSplit, SharesSplit
from splitledger.services.allocation import (
    EmptyParticipantsError,
    InvalidSplitError,
    NonPositiveAmountError,
)
from splitledger.services.storage import NotFoundError, TransactionError


@pytest.fixture
def service(storage, audit_logger):
    return ExpenseLedgerService(storage, audit_logger)


@pytest.fixture
def people(storage):
    return PeopleService(storage)


class TestCreateExpense:
    """Tests for recording shared expenses."""

    @pytest.mark.asyncio
    async def test_equal_split_is_persisted(self, service, people):
        """Test the expense and one participant row per person are saved."""
        alice = await people.add_person("Alice")
        bob = await people.add_person("bob")

        expense = await service.create_expense(
            10.00, OWNER_ID, [alice.id, bob.id, OWNER_ID], description="Pizza"
        )

        detail = await service.get_expense_with_participants(expense.id)
        assert detail.expense.amount == 10.0
        assert detail.expense.description == "Pizza"
        assert detail.expense.currency == "CAD"
        assert [p.name for p in detail.participants] == ["Alice", "bob", "Me"]
        shares = {p.user_id: p.share for p in detail.participants}
        assert shares == {alice.id: 3.33, bob.id: 3.33, OWNER_ID: 3.34}

    @pytest.mark.asyncio
    async def test_shares_mode(self, service, people):
        """Test a weighted split."""
        alice = await people.add_person("Alice")
        expense = await service.create_expense(
            9.00, alice.id, [alice.id, OWNER_ID], split=SharesSplit(weights=[1, 2])
        )
        detail = await service.get_expense_with_participants(expense.id)
        shares = {p.user_id: p.share for p in detail.participants}
        assert shares == {alice.id: 3.0, OWNER_ID: 6.0}

    @pytest.mark.asyncio
    async def test_total_is_normalized_to_cents(self, service):
        """Test a sub-cent total is stored rounded."""
        expense = await service.create_expense(10.005, OWNER_ID, [OWNER_ID])
        assert expense.amount == 10.01

    @pytest.mark.asyncio
    async def test_no_participants(self, service, storage):
        """Test an empty participant list writes nothing."""
        with pytest.raises(EmptyParticipantsError):
            await service.create_expense(10.00, OWNER_ID, [])
        assert await storage.list_recent_expenses() == []

    @pytest.mark.asyncio
    async def test_zero_total(self, service, storage):
        """Test a zero total writes nothing."""
        with pytest.raises(NonPositiveAmountError):
            await service.create_expense(0, OWNER_ID, [OWNER_ID])
        assert await storage.list_recent_expenses() == []

    @pytest.mark.asyncio
    async def test_bad_percents(self, service, storage, audit_logger):
        """Test an invalid split is rejected and audited."""
        with pytest.raises(InvalidSplitError):
            await service.create_expense(
                10.00, OWNER_ID, [OWNER_ID], split=PercentSplit(percents=[99])
            )
        assert await storage.list_recent_expenses() == []
        assert audit_logger.event_count == 1

    @pytest.mark.asyncio
    async def test_sub_cent_amounts(self, service, storage, people):
        """Test explicit amounts with fractions of a cent write nothing."""
        alice = await people.add_person("Alice")
        with pytest.raises(InvalidSplitError) as exc_info:
            await service.create_expense(
                10.00, OWNER_ID, [OWNER_ID, alice.id], split=AmountsSplit(amounts=[3.335, 6.665])
            )
        assert exc_info.value.rule == "amount_precision"
        assert await storage.list_recent_expenses() == []

    @pytest.mark.asyncio
    async def test_duplicate_participant(self, service, people):
        """Test the same person can't be listed twice."""
        alice = await people.add_person("Alice")
        with pytest.raises(InvalidSplitError) as exc_info:
            await service.create_expense(10.00, OWNER_ID, [alice.id, alice.id])
        assert exc_info.value.rule == "duplicate_participant"

    @pytest.mark.asyncio
    async def test_unknown_participant_rolls_back(self, service, storage):
        """Test a failing participant row leaves no expense behind."""
        with pytest.raises(TransactionError):
            await service.create_expense(10.00, OWNER_ID, [OWNER_ID, "ghost"])
        assert await storage.list_recent_expenses() == []

    @pytest.mark.asyncio
    async def test_audited(self, service, audit_logger):
        """Test a successful create logs one event."""
        await service.create_expense(5.00, OWNER_ID, [OWNER_ID])
        assert audit_logger.event_count == 1


class TestUpdateExpense:
    """Tests for replacing an expense."""

    @pytest.mark.asyncio
    async def test_participants_are_replaced(self, service, people):
        """Test editing swaps the full participant set."""
        alice = await people.add_person("Alice")
        bob = await people.add_person("Bob")
        expense = await service.create_expense(30.00, OWNER_ID, [OWNER_ID, alice.id])

        updated = await service.update_expense(
            expense.id,
            12.00,
            OWNER_ID,
            [bob.id, OWNER_ID],
            split=AmountsSplit(amounts=[2.00, 10.00]),
            description="Taxi",
        )

        detail = await service.get_expense_with_participants(expense.id)
        assert updated.amount == 12.0
        assert detail.expense.description == "Taxi"
        assert set(detail.participant_ids) == {bob.id, OWNER_ID}
        shares = {p.user_id: p.share for p in detail.participants}
        assert shares == {bob.id: 2.0, OWNER_ID: 10.0}

    @pytest.mark.asyncio
    async def test_date_kept_when_not_given(self, service):
        """Test the original date survives an edit without a new one."""
        when = datetime(2024, 5, 1, 12, 0)
        expense = await service.create_expense(10.00, OWNER_ID, [OWNER_ID], date=when)

        await service.update_expense(expense.id, 20.00, OWNER_ID, [OWNER_ID])

        detail = await service.get_expense_with_participants(expense.id)
        assert detail.expense.date == when
        assert detail.expense.amount == 20.0

    @pytest.mark.asyncio
    async def test_missing_expense(self, service):
        """Test updating an unknown id."""
        with pytest.raises(NotFoundError):
            await service.update_expense("nope", 10.00, OWNER_ID, [OWNER_ID])

    @pytest.mark.asyncio
    async def test_invalid_update_keeps_old_state(self, service):
        """Test a rejected split changes nothing."""
        expense = await service.create_expense(10.00, OWNER_ID, [OWNER_ID])
        with pytest.raises(InvalidSplitError):
            await service.update_expense(
                expense.id, 10.00, OWNER_ID, [OWNER_ID], split=AmountsSplit(amounts=[9.99])
            )
        detail = await service.get_expense_with_participants(expense.id)
        assert [p.share for p in detail.participants] == [10.0]

    @pytest.mark.asyncio
    async def test_failure_mid_replace_rolls_back(self, service, storage, people):
        """Test a failure after the old rows were deleted restores them."""
        alice = await people.add_person("Alice")
        expense = await service.create_expense(10.00, OWNER_ID, [OWNER_ID, alice.id])

        @event.listens_for(storage.engine, "before_cursor_execute")
        def fail_on_participant_insert(conn, cursor, statement, params, context, executemany):
            if statement.startswith("INSERT INTO expense_participants"):
                raise RuntimeError("disk full")

        with pytest.raises(TransactionError):
            await service.update_expense(expense.id, 50.00, OWNER_ID, [OWNER_ID])

        event.remove(storage.engine, "before_cursor_execute", fail_on_participant_insert)
        detail = await service.get_expense_with_participants(expense.id)
        assert detail.expense.amount == 10.0
        assert set(detail.participant_ids) == {OWNER_ID, alice.id}


class TestDeleteAndList:
    """Tests for deleting and listing expenses."""

    @pytest.mark.asyncio
    async def test_delete_removes_participants(self, service, storage):
        """Test delete removes the expense and its shares."""
        expense = await service.create_expense(10.00, OWNER_ID, [OWNER_ID])

        assert await service.delete_expense(expense.id) is True
        assert await service.get_expense_with_participants(expense.id) is None
        assert await storage.list_participants(expense.id) == []

    @pytest.mark.asyncio
    async def test_delete_missing(self, service):
        """Test deleting an unknown id reports False."""
        assert await service.delete_expense("nope") is False

    @pytest.mark.asyncio
    async def test_delete_failure_keeps_participants(self, service, storage, people, audit_logger):
        """Test a failure on the expense row restores its already-deleted shares."""
        alice = await people.add_person("Alice")
        expense = await service.create_expense(10.00, OWNER_ID, [OWNER_ID, alice.id])
        events_before = audit_logger.event_count

        @event.listens_for(storage.engine, "before_cursor_execute")
        def fail_on_expense_delete(conn, cursor, statement, params, context, executemany):
            if statement.startswith("DELETE FROM expenses"):
                raise RuntimeError("simulated crash")

        with pytest.raises(TransactionError):
            await service.delete_expense(expense.id)

        event.remove(storage.engine, "before_cursor_execute", fail_on_expense_delete)
        detail = await service.get_expense_with_participants(expense.id)
        assert detail is not None
        assert {p.user_id: p.share for p in detail.participants} == {OWNER_ID: 5.0, alice.id: 5.0}
        # One transaction_failed event, no expense_deleted event
        assert audit_logger.event_count == events_before + 1

    @pytest.mark.asyncio
    async def test_recent_newest_first(self, service, storage):
        """Test recent expenses are sorted by date descending."""
        old = await service.create_expense(1.00, OWNER_ID, [OWNER_ID], date=datetime(2024, 1, 1))
        new = await service.create_expense(2.00, OWNER_ID, [OWNER_ID], date=datetime(2024, 3, 1))
        mid = await service.create_expense(3.00, OWNER_ID, [OWNER_ID], date=datetime(2024, 2, 1))

        recent = await storage.list_recent_expenses()
        assert [e.id for e in recent] == [new.id, mid.id, old.id]

    @pytest.mark.asyncio
    async def test_recent_for_person(self, service, people):
        """Test a person's view includes bills they paid but don't share."""
        alice = await people.add_person("Alice")
        shared = await service.create_expense(
            20.00, OWNER_ID, [OWNER_ID, alice.id], date=datetime(2024, 1, 1)
        )
        paid = await service.create_expense(
            8.00, alice.id, [OWNER_ID], date=datetime(2024, 2, 1)
        )
        await service.create_expense(5.00, OWNER_ID, [OWNER_ID], date=datetime(2024, 3, 1))

        lines = await service.list_recent_for_person(alice.id)

        assert [line.expense.id for line in lines] == [paid.id, shared.id]
        assert lines[0].person_share is None
        assert lines[1].person_share == 10.0
        assert lines[1].person_name == "Alice"
