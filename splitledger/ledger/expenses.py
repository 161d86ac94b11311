"""
Expense Ledger Service

Creates, replaces and deletes shared expenses together with their participant
shares.

GUARANTEES:
- Input is validated (participants, total, split rule) before any write
- An expense and its participant rows are written in one transaction
- Editing is a full replace: every participant row is deleted and
  re-inserted from a fresh allocation
- The participant shares always add up to the expense amount to the cent
"""

from datetime import datetime
from typing import Optional, Sequence

from splitledger.audit import AuditLogger
from splitledger.config import get_settings
from splitledger.models.ledger import (
    OWNER_ID,
    ExpenseDetail,
    ExpenseParticipant,
    PersonExpenseLine,
    SharedExpense,
    new_id,
)
from splitledger.models.split import EqualSplit
from splitledger.services.allocation.allocator import (
    RULE_DUPLICATE_PARTICIPANT,
    AnySplit,
    InvalidSplitError,
    SplitError,
    allocate,
    from_cents,
    validate_total,
)
from splitledger.services.storage import (
    ExpenseStorageInterface,
    NotFoundError,
    StorageError,
)


class ExpenseLedgerService:
    """
    Orchestrates shared-expense writes.

    The storage layer owns atomicity; this service owns the rules that make
    a write valid in the first place.
    """

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._settings = get_settings().ledger

    def _build_rows(
        self,
        expense_id: str,
        total: float,
        participant_ids: Sequence[str],
        split: AnySplit,
    ) -> tuple[float, list[ExpenseParticipant]]:
        """
        Validate and allocate.

        Returns:
            (normalized_total, participant_rows_in_input_order)
        """
        shares = allocate(total, len(participant_ids), split)
        if len(set(participant_ids)) != len(participant_ids):
            raise InvalidSplitError(
                RULE_DUPLICATE_PARTICIPANT,
                "Each participant can only appear once",
            )

        rows = [
            ExpenseParticipant(expense_id=expense_id, user_id=user_id, share=share)
            for user_id, share in zip(participant_ids, shares)
        ]
        return from_cents(validate_total(total)), rows

    async def _reject(self, operation: str, error: Exception) -> None:
        if self._audit_logger:
            if isinstance(error, SplitError):
                await self._audit_logger.log_validation_failed(operation, error)
            else:
                await self._audit_logger.log_transaction_failed(operation, error)

    async def create_expense(
        self,
        total: float,
        payer_id: str,
        participant_ids: Sequence[str],
        split: Optional[AnySplit] = None,
        description: Optional[str] = None,
        date: Optional[datetime] = None,
        category: Optional[str] = None,
    ) -> SharedExpense:
        """
        Record a shared expense and everyone's share of it.

        Args:
            total: Total paid, > 0
            payer_id: Who paid the bill
            participant_ids: Who shares it; order matters for rounding and for
                             the per-participant values in `split`
            split: How to divide it (defaults to equal)
            description: Free text
            date: When it happened (defaults to now)
            category: Free-text category

        Returns:
            The saved expense

        Raises:
            EmptyParticipantsError, NonPositiveAmountError, InvalidSplitError:
                before anything is written
            TransactionError: If the write failed (nothing was saved)
        """
        split = split or EqualSplit()
        expense_id = new_id()
        try:
            amount, participants = self._build_rows(expense_id, total, participant_ids, split)
            expense = SharedExpense(
                id=expense_id,
                amount=amount,
                description=description,
                category=category,
                currency=self._settings.default_currency,
                date=date or datetime.now(),
                created_by=OWNER_ID,
                payer_id=payer_id,
            )
            await self._storage.insert_expense(expense, participants)
        except (SplitError, StorageError) as e:
            await self._reject("create_expense", e)
            raise

        if self._audit_logger:
            await self._audit_logger.log_expense_created(
                expense_id=expense.id,
                amount=expense.amount,
                payer_id=payer_id,
                participant_count=len(participants),
                mode=split.mode,
            )
        return expense

    async def update_expense(
        self,
        expense_id: str,
        total: float,
        payer_id: str,
        participant_ids: Sequence[str],
        split: Optional[AnySplit] = None,
        description: Optional[str] = None,
        date: Optional[datetime] = None,
        category: Optional[str] = None,
    ) -> SharedExpense:
        """
        Replace an expense: new scalar fields and a fresh set of participants.

        The original date is kept unless a new one is given; currency and
        creator never change.

        Raises:
            NotFoundError: If the expense doesn't exist
            EmptyParticipantsError, NonPositiveAmountError, InvalidSplitError:
                before anything is written
            TransactionError: If the write failed (the old state is intact)
        """
        split = split or EqualSplit()
        try:
            amount, participants = self._build_rows(expense_id, total, participant_ids, split)

            existing = await self._storage.get_expense(expense_id)
            if existing is None:
                raise NotFoundError(f"Expense not found: {expense_id}")

            expense = existing.model_copy(
                update={
                    "amount": amount,
                    "description": description,
                    "category": category,
                    "date": date or existing.date,
                    "payer_id": payer_id,
                }
            )
            await self._storage.replace_expense(expense, participants)
        except (SplitError, StorageError) as e:
            await self._reject("update_expense", e)
            raise

        if self._audit_logger:
            await self._audit_logger.log_expense_updated(
                expense_id=expense_id,
                amount=amount,
                participant_count=len(participants),
                mode=split.mode,
            )
        return expense

    async def delete_expense(self, expense_id: str) -> bool:
        """
        Delete an expense and all its participant rows.

        Returns:
            True if it existed
        """
        try:
            deleted = await self._storage.delete_expense(expense_id)
        except StorageError as e:
            await self._reject("delete_expense", e)
            raise

        if deleted and self._audit_logger:
            await self._audit_logger.log_expense_deleted(expense_id)
        return deleted

    async def get_expense_with_participants(self, expense_id: str) -> Optional[ExpenseDetail]:
        """
        Fetch an expense for the edit view.

        Participants are sorted by display name, case-insensitively.
        Returns None if the expense doesn't exist.
        """
        expense = await self._storage.get_expense(expense_id)
        if expense is None:
            return None
        participants = await self._storage.list_participants(expense_id)
        return ExpenseDetail(expense=expense, participants=participants)

    async def list_recent_for_person(
        self,
        person_id: str,
        limit: Optional[int] = None,
    ) -> list[PersonExpenseLine]:
        """Expenses a person took part in or paid for, newest first."""
        return await self._storage.list_expenses_for_person(
            person_id,
            limit=limit or self._settings.person_recent_limit,
        )
