"""Tests for balance aggregation and settlements."""

import pytest

from splitledger.ledger import (
    BalanceAggregator,
    ExpenseLedgerService,
    PeopleService,
    SettlementService,
)
from splitledger.models import OWNER_ID
from splitledger.services.allocation import NonPositiveAmountError


@pytest.fixture
def expenses(storage):
    return ExpenseLedgerService(storage)


@pytest.fixture
def settlements(storage, audit_logger):
    return SettlementService(storage, audit_logger)


@pytest.fixture
def balances(storage):
    return BalanceAggregator(storage)


@pytest.fixture
def people(storage):
    return PeopleService(storage)


class TestBalanceAggregator:
    """Tests for per-person nets."""

    @pytest.mark.asyncio
    async def test_no_activity(self, balances):
        """Test an empty ledger has no balances."""
        assert await balances.net_by_person() == {}

    @pytest.mark.asyncio
    async def test_owner_paid_equal_split(self, balances, expenses, people):
        """Test a $30 bill I paid split three ways."""
        alice = await people.add_person("Alice")
        bob = await people.add_person("Bob")
        await expenses.create_expense(30.00, OWNER_ID, [OWNER_ID, alice.id, bob.id])

        assert await balances.net_by_person() == {alice.id: 10.0, bob.id: 10.0}

    @pytest.mark.asyncio
    async def test_settlement_clears_balance(self, balances, expenses, settlements, people):
        """Test alice paying me back $10 brings her net to zero."""
        alice = await people.add_person("Alice")
        bob = await people.add_person("Bob")
        await expenses.create_expense(30.00, OWNER_ID, [OWNER_ID, alice.id, bob.id])

        await settlements.record_settlement(alice.id, OWNER_ID, 10.00)

        net = await balances.net_by_person()
        assert net[alice.id] == 0
        assert net[bob.id] == 10.0

    @pytest.mark.asyncio
    async def test_they_paid(self, balances, expenses, people):
        """Test a bill someone else paid makes me owe them."""
        alice = await people.add_person("Alice")
        await expenses.create_expense(10.00, alice.id, [OWNER_ID, alice.id])

        assert await balances.net_for_person(alice.id) == -5.0

    @pytest.mark.asyncio
    async def test_i_paid_them_back(self, balances, expenses, settlements, people):
        """Test a settlement I sent reduces what I owe."""
        alice = await people.add_person("Alice")
        await expenses.create_expense(10.00, alice.id, [OWNER_ID, alice.id])
        await settlements.record_settlement(OWNER_ID, alice.id, 2.50)

        assert await balances.net_for_person(alice.id) == -2.5

    @pytest.mark.asyncio
    async def test_overpayment_flips_balance(self, balances, expenses, settlements, people):
        """Test paying me back more than owed leaves me owing the difference."""
        alice = await people.add_person("Alice")
        await expenses.create_expense(20.00, OWNER_ID, [OWNER_ID, alice.id])
        await settlements.record_settlement(alice.id, OWNER_ID, 15.00)

        assert await balances.net_for_person(alice.id) == -5.0

    @pytest.mark.asyncio
    async def test_settlements_alone(self, balances, settlements, people):
        """Test settlements with no bills net in both directions."""
        alice = await people.add_person("Alice")
        bob = await people.add_person("Bob")
        await settlements.record_settlement(alice.id, OWNER_ID, 4.00)
        await settlements.record_settlement(OWNER_ID, bob.id, 3.00)

        assert await balances.net_by_person() == {alice.id: -4.0, bob.id: 3.0}

    @pytest.mark.asyncio
    async def test_nets_are_cent_exact(self, balances, expenses, people):
        """Test many odd shares add up without float drift."""
        alice = await people.add_person("Alice")
        for _ in range(10):
            await expenses.create_expense(0.11, OWNER_ID, [OWNER_ID, alice.id])

        # Equal split gives the odd cent to the last participant
        assert await balances.net_for_person(alice.id) == 0.6

    @pytest.mark.asyncio
    async def test_expenses_between_others_ignored(self, balances, expenses, people):
        """Test bills that don't involve me leave my balances alone."""
        alice = await people.add_person("Alice")
        bob = await people.add_person("Bob")
        await expenses.create_expense(10.00, alice.id, [alice.id, bob.id])

        assert await balances.net_by_person() == {}

    @pytest.mark.asyncio
    async def test_unknown_person_is_zero(self, balances):
        """Test a person with no activity nets to 0."""
        assert await balances.net_for_person("nobody") == 0.0

    @pytest.mark.asyncio
    async def test_summary(self, balances, expenses, people):
        """Test the totals for the owings view."""
        alice = await people.add_person("Alice")
        bob = await people.add_person("Bob")
        await expenses.create_expense(30.00, OWNER_ID, [OWNER_ID, alice.id, bob.id])
        await expenses.create_expense(8.00, bob.id, [OWNER_ID])

        summary = await balances.summarize()
        assert summary.owed_to_me == 12.0
        assert summary.i_owe == 0.0
        assert summary.net_by_person[bob.id] == 2.0

    @pytest.mark.asyncio
    async def test_summary_splits_signs(self, balances):
        """Test positive and negative nets are totalled separately."""
        summary = await balances.summarize({"a": 4.25, "b": -1.5, "c": 0.0})
        assert summary.owed_to_me == 4.25
        assert summary.i_owe == 1.5


class TestSettlementService:
    """Tests for recording settlements."""

    @pytest.mark.asyncio
    async def test_record_and_list(self, settlements, people, audit_logger):
        """Test a settlement is saved and audited."""
        alice = await people.add_person("Alice")
        settlement = await settlements.record_settlement(alice.id, OWNER_ID, 12.5, note="cash")

        listed = await settlements.list_settlements(alice.id)
        assert [s.id for s in listed] == [settlement.id]
        assert listed[0].note == "cash"
        assert audit_logger.event_count == 1

    @pytest.mark.asyncio
    async def test_non_positive_amount(self, settlements, people):
        """Test a zero settlement is rejected."""
        alice = await people.add_person("Alice")
        with pytest.raises(NonPositiveAmountError):
            await settlements.record_settlement(alice.id, OWNER_ID, 0)

    @pytest.mark.asyncio
    async def test_same_person(self, settlements):
        """Test paying yourself is rejected."""
        with pytest.raises(ValueError):
            await settlements.record_settlement(OWNER_ID, OWNER_ID, 5)

    @pytest.mark.asyncio
    async def test_delete_restores_balance(self, settlements, balances, expenses, people):
        """Test deleting a settlement undoes its effect."""
        alice = await people.add_person("Alice")
        await expenses.create_expense(20.00, OWNER_ID, [OWNER_ID, alice.id])
        settlement = await settlements.record_settlement(alice.id, OWNER_ID, 10.00)

        assert await settlements.delete_settlement(settlement.id) is True
        assert await settlements.delete_settlement(settlement.id) is False
        assert await balances.net_for_person(alice.id) == 10.0
