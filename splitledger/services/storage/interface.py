"""
Abstract Storage Interface

DESIGN DECISION: We define abstract interfaces for storage operations.
This allows us to:
1. Swap the embedded SQLite file for another relational store later
2. Use in-memory storage for testing
3. Keep ledger rules decoupled from SQL

The interfaces are intentionally narrow - we're not building a full ORM.
Just the operations the ledger services need.

CONTRACT: Every method documented as atomic runs in a single transaction.
If any statement fails the whole method is rolled back and TransactionError
(or DuplicateError / NotFoundError) is raised. Lookups return None for a
missing row; they never raise for normal absence.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

from splitledger.models.ledger import (
    Budget,
    BudgetUsage,
    ExpenseParticipant,
    ParticipantShare,
    Person,
    PersonalSpend,
    PersonExpenseLine,
    Settlement,
    SharedExpense,
)


class PeopleStorageInterface(ABC):
    """Storage for people, including the seeded owner row."""

    @abstractmethod
    async def add_person(self, person: Person) -> bool:
        """
        Save a new person.

        Raises:
            DuplicateError: If the id is already taken
        """
        pass

    @abstractmethod
    async def get_person(self, person_id: str) -> Optional[Person]:
        """Retrieve a person by id, None if absent."""
        pass

    @abstractmethod
    async def list_people(self, include_owner: bool = False) -> list[Person]:
        """
        List people sorted by display name (case-insensitive).

        Args:
            include_owner: If True the owner is included and listed first
        """
        pass

    @abstractmethod
    async def delete_person(self, person_id: str) -> bool:
        """
        Atomically delete a person with their expense participations and
        every settlement they paid or received.

        Returns:
            True if the person existed
        """
        pass


class ExpenseStorageInterface(ABC):
    """Storage for shared expenses, their participants and settlements."""

    @abstractmethod
    async def insert_expense(
        self,
        expense: SharedExpense,
        participants: list[ExpenseParticipant],
    ) -> bool:
        """
        Atomically insert an expense and all its participant rows
        (in list order).
        """
        pass

    @abstractmethod
    async def replace_expense(
        self,
        expense: SharedExpense,
        participants: list[ExpenseParticipant],
    ) -> bool:
        """
        Atomically update an expense's scalar fields and replace every
        participant row.

        Raises:
            NotFoundError: If the expense doesn't exist
        """
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: str) -> bool:
        """
        Atomically delete an expense's participants, then the expense.

        Returns:
            True if the expense existed
        """
        pass

    @abstractmethod
    async def get_expense(self, expense_id: str) -> Optional[SharedExpense]:
        """Retrieve an expense by id, None if absent."""
        pass

    @abstractmethod
    async def list_participants(self, expense_id: str) -> list[ParticipantShare]:
        """Participants with display names, sorted by name (case-insensitive)."""
        pass

    @abstractmethod
    async def list_recent_expenses(self, limit: int = 30) -> list[SharedExpense]:
        """Newest expenses first."""
        pass

    @abstractmethod
    async def list_expenses_for_person(
        self,
        person_id: str,
        limit: int = 20,
    ) -> list[PersonExpenseLine]:
        """Expenses the person participated in or paid, newest first."""
        pass

    @abstractmethod
    async def add_settlement(self, settlement: Settlement) -> bool:
        """Save a settlement."""
        pass

    @abstractmethod
    async def list_settlements(self, person_id: Optional[str] = None) -> list[Settlement]:
        """
        List settlements, newest first.

        Args:
            person_id: Only settlements this person paid or received
        """
        pass

    @abstractmethod
    async def delete_settlement(self, settlement_id: str) -> bool:
        """Delete a settlement. True if it existed."""
        pass

    # -- grouped sums used by the balance aggregator -------------------------

    @abstractmethod
    async def shares_owed_to(self, payer_id: str) -> dict[str, float]:
        """Sum of other participants' shares on expenses payer_id paid, by participant."""
        pass

    @abstractmethod
    async def shares_owed_by(self, participant_id: str) -> dict[str, float]:
        """Sum of participant_id's shares on expenses others paid, by payer."""
        pass

    @abstractmethod
    async def settlements_received_by(self, payee_id: str) -> dict[str, float]:
        """Sum of settlements paid to payee_id, by payer."""
        pass

    @abstractmethod
    async def settlements_sent_by(self, payer_id: str) -> dict[str, float]:
        """Sum of settlements payer_id paid, by payee."""
        pass


class BudgetStorageInterface(ABC):
    """Storage for budgets (templates and instances) and personal spend."""

    @abstractmethod
    async def add_budget(self, budget: Budget) -> bool:
        """
        Save a budget row.

        Raises:
            DuplicateError: If (user_id, name, month) already exists
        """
        pass

    @abstractmethod
    async def insert_budget_if_absent(self, budget: Budget) -> bool:
        """
        Insert unless a row with the same (user_id, name, month) exists.

        Returns:
            True if a row was inserted, False if it already existed
        """
        pass

    @abstractmethod
    async def get_budget(self, budget_id: str) -> Optional[Budget]:
        """Retrieve a budget by id, None if absent."""
        pass

    @abstractmethod
    async def update_budget(self, budget_id: str, fields: dict[str, Any]) -> Budget:
        """
        Update name and/or amount of any budget row.

        Raises:
            NotFoundError: If the budget doesn't exist
            DuplicateError: If the new name clashes within the same month
        """
        pass

    @abstractmethod
    async def delete_budget(self, budget_id: str) -> bool:
        """
        Atomically detach every personal spend from the budget, then delete it.

        Returns:
            True if the budget existed
        """
        pass

    @abstractmethod
    async def delete_budget_template(self, budget_id: str) -> bool:
        """Delete the row only if it is a template. True if one was deleted."""
        pass

    @abstractmethod
    async def list_budgets(self, user_id: str, month: int) -> list[Budget]:
        """Budgets for one month (or templates), sorted by name (case-insensitive)."""
        pass

    @abstractmethod
    async def add_personal_spend(self, spend: PersonalSpend) -> bool:
        """Save a personal spend."""
        pass

    @abstractmethod
    async def get_personal_spend(self, spend_id: str) -> Optional[PersonalSpend]:
        """Retrieve a personal spend by id, None if absent."""
        pass

    @abstractmethod
    async def update_personal_spend(self, spend_id: str, fields: dict[str, Any]) -> PersonalSpend:
        """
        Update amount, budget_id and/or note.

        Raises:
            NotFoundError: If the spend doesn't exist
        """
        pass

    @abstractmethod
    async def delete_personal_spend(self, spend_id: str) -> bool:
        """Delete a personal spend. True if it existed."""
        pass

    @abstractmethod
    async def list_personal_spend(
        self,
        user_id: str,
        date_from: datetime,
        date_to: datetime,
        budget_id: Optional[str] = None,
    ) -> list[PersonalSpend]:
        """Spends dated in [date_from, date_to), newest first."""
        pass

    @abstractmethod
    async def list_recent_personal_spend(
        self,
        limit: int = 30,
    ) -> list[tuple[PersonalSpend, Optional[str]]]:
        """Newest spends first, each paired with its budget's name (if any)."""
        pass

    @abstractmethod
    async def budget_usages(
        self,
        user_id: str,
        date_from: datetime,
        date_to: datetime,
    ) -> list[BudgetUsage]:
        """
        Sum of spend per budget_id (None included) for spends dated in
        [date_from, date_to). The budget's own month is not consulted.
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class TransactionError(StorageError):
    """A multi-statement write failed and was rolled back."""
    pass


class StorageConnectionError(StorageError):
    """Could not open or initialize the storage backend."""
    pass
