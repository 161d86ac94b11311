"""
Personal Spend Service

The owner's own spending. It never touches balances with other people; it
only counts against budgets.
"""

from datetime import datetime
from typing import Any, Optional

from splitledger.audit import AuditLogger
from splitledger.models.ledger import OWNER_ID, PersonalSpend, month_bounds
from splitledger.services.allocation import NonPositiveAmountError, from_cents, to_cents, validate_total
from splitledger.services.storage import BudgetStorageInterface


# Distinguishes "leave as is" from an explicit None (e.g. detach from budget)
UNSET: Any = object()


class PersonalSpendService:
    """CRUD and monthly listing of personal spend."""

    def __init__(
        self,
        storage: BudgetStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        owner_id: str = OWNER_ID,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._owner_id = owner_id

    async def _validated_amount(self, operation: str, amount: float) -> float:
        try:
            return from_cents(validate_total(amount))
        except NonPositiveAmountError as e:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(operation, e)
            raise

    async def add_personal_spend(
        self,
        amount: float,
        budget_id: Optional[str] = None,
        note: Optional[str] = None,
        date: Optional[datetime] = None,
        category: Optional[str] = None,
    ) -> PersonalSpend:
        """
        Record a personal spend, optionally against a budget.

        Raises:
            NonPositiveAmountError: If amount <= 0
        """
        spend = PersonalSpend(
            user_id=self._owner_id,
            amount=await self._validated_amount("add_personal_spend", amount),
            budget_id=budget_id,
            category=category,
            date=date or datetime.now(),
            note=note,
        )
        await self._storage.add_personal_spend(spend)

        if self._audit_logger:
            await self._audit_logger.log_spend_added(spend.id, spend.amount, budget_id)
        return spend

    async def get_personal_spend(self, spend_id: str) -> Optional[PersonalSpend]:
        """None if it doesn't exist."""
        return await self._storage.get_personal_spend(spend_id)

    async def update_personal_spend(
        self,
        spend_id: str,
        amount: Any = UNSET,
        budget_id: Any = UNSET,
        note: Any = UNSET,
    ) -> PersonalSpend:
        """
        Change any of amount, budget and note. Fields left unset are kept;
        budget_id=None detaches the spend from its budget.

        Raises:
            NonPositiveAmountError: If a new amount is <= 0
            NotFoundError: If the spend doesn't exist
        """
        fields: dict[str, Any] = {}
        if amount is not UNSET:
            fields["amount"] = await self._validated_amount("update_personal_spend", amount)
        if budget_id is not UNSET:
            fields["budget_id"] = budget_id
        if note is not UNSET:
            fields["note"] = (note or "").strip() or None

        spend = await self._storage.update_personal_spend(spend_id, fields)
        if fields and self._audit_logger:
            await self._audit_logger.log_spend_updated(spend_id, sorted(fields))
        return spend

    async def delete_personal_spend(self, spend_id: str) -> bool:
        deleted = await self._storage.delete_personal_spend(spend_id)
        if deleted and self._audit_logger:
            await self._audit_logger.log_spend_deleted(spend_id)
        return deleted

    async def list_personal_spend_by_month(
        self,
        month: int,
        budget_id: Optional[str] = None,
    ) -> list[PersonalSpend]:
        """The owner's spends dated in a YYYYMM month, newest first."""
        start, end = month_bounds(month)
        return await self._storage.list_personal_spend(
            self._owner_id,
            start,
            end,
            budget_id=budget_id,
        )

    async def month_total(self, month: int, budget_id: Optional[str] = None) -> float:
        """Sum of the month's spends (the "Total this month" card)."""
        spends = await self.list_personal_spend_by_month(month, budget_id)
        return from_cents(sum(to_cents(s.amount) for s in spends))
