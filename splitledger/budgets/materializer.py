"""
Budget Materializer

Monthly budget caps, and the recurring templates they are projected from.

A template is a Budget row with month == TEMPLATE_MONTH. Materializing a
month inserts one instance row per template, keyed on (user_id, name, month):

GUARANTEES:
- Idempotent: an instance that already exists is never touched, so an
  amount edited by hand survives re-materialization
- Single-flight per month: overlapping calls for the same month share one
  unit of work and all observe its result
- Deleting a template never deletes the instances made from it
"""

import asyncio
from typing import Optional

from splitledger.audit import AuditLogger
from splitledger.models.ledger import (
    OWNER_ID,
    TEMPLATE_MONTH,
    Budget,
    BudgetUsage,
    month_bounds,
    month_key,
    validate_month_key,
)
from splitledger.services.allocation import NonPositiveAmountError, from_cents, to_cents
from splitledger.services.storage import BudgetStorageInterface, StorageError


def _retrieve_exception(task: asyncio.Task) -> None:
    # Marks the error as seen when every caller was cancelled before it landed
    if not task.cancelled():
        task.exception()


class BudgetMaterializer:
    """
    Budget CRUD plus on-demand materialization of recurring budgets.

    Holds the in-flight map for its own storage; use one instance per
    database.
    """

    def __init__(
        self,
        storage: BudgetStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        owner_id: str = OWNER_ID,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._owner_id = owner_id
        self._in_flight: dict[int, asyncio.Task] = {}

    # =========================================================================
    # Materialization
    # =========================================================================

    async def ensure_recurring_budgets(self, month: int) -> int:
        """
        Make sure every recurring template has an instance for `month`.

        Concurrent callers for the same month await the same task. The task
        is shielded, so cancelling one caller does not abort the shared
        write for the others.

        Returns:
            Number of instance rows inserted by the shared unit of work
            (0 when everything already existed)
        """
        month = validate_month_key(month)

        task = self._in_flight.get(month)
        if task is None:
            task = asyncio.ensure_future(self._run(month))
            task.add_done_callback(_retrieve_exception)
            self._in_flight[month] = task
        return await asyncio.shield(task)

    async def _run(self, month: int) -> int:
        try:
            return await self._materialize(month)
        finally:
            self._in_flight.pop(month, None)

    async def _materialize(self, month: int) -> int:
        try:
            templates = await self._storage.list_budgets(self._owner_id, TEMPLATE_MONTH)
            inserted = 0
            for template in templates:
                instance = Budget(
                    user_id=template.user_id,
                    name=template.name,
                    month=month,
                    amount=template.amount,
                )
                if await self._storage.insert_budget_if_absent(instance):
                    inserted += 1
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_transaction_failed(
                    "ensure_recurring_budgets", e, str(month)
                )
            raise

        if templates and self._audit_logger:
            await self._audit_logger.log_budgets_materialized(month, len(templates), inserted)
        return inserted

    def is_materializing(self, month: int) -> bool:
        return month in self._in_flight

    # =========================================================================
    # CRUD
    # =========================================================================

    async def _validated_amount(self, operation: str, amount: float) -> float:
        if amount < 0:
            error = NonPositiveAmountError(f"Budget amount must be >= 0, got {amount}")
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(operation, error)
            raise error
        return from_cents(to_cents(amount))

    async def _create(self, operation: str, name: str, amount: float, month: int) -> Budget:
        budget = Budget(
            user_id=self._owner_id,
            name=name,
            month=month,
            amount=await self._validated_amount(operation, amount),
        )
        await self._storage.add_budget(budget)

        if self._audit_logger:
            await self._audit_logger.log_budget_created(
                budget.id, budget.name, budget.month, budget.amount
            )
        return budget

    async def create_budget(
        self,
        name: str,
        amount: float,
        month: Optional[int] = None,
    ) -> Budget:
        """
        Create a one-off budget for a month (the current one by default).

        Raises:
            NonPositiveAmountError: If amount < 0
            DuplicateError: If the month already has a budget with that name
        """
        month = month_key() if month is None else validate_month_key(month)
        return await self._create("create_budget", name, amount, month)

    async def create_recurring_budget(self, name: str, amount: float) -> Budget:
        """Create a template; it shows up in each month once materialized."""
        return await self._create("create_recurring_budget", name, amount, TEMPLATE_MONTH)

    async def update_budget(
        self,
        budget_id: str,
        name: Optional[str] = None,
        amount: Optional[float] = None,
    ) -> Budget:
        """
        Rename and/or change the cap of a template or an instance.

        Editing a template does not reach months already materialized.

        Raises:
            NotFoundError: If the budget doesn't exist
            DuplicateError: If the new name is taken in the same month
            NonPositiveAmountError: If amount < 0
            ValueError: If the new name is blank
        """
        fields = {}
        if name is not None:
            name = name.strip()
            if not name:
                raise ValueError("Budget name cannot be empty")
            fields["name"] = name
        if amount is not None:
            fields["amount"] = await self._validated_amount("update_budget", amount)

        budget = await self._storage.update_budget(budget_id, fields)
        if fields and self._audit_logger:
            await self._audit_logger.log_budget_updated(budget_id, sorted(fields))
        return budget

    async def delete_budget(self, budget_id: str) -> bool:
        """
        Delete a budget row. Spends that pointed at it are kept and moved to
        "no budget" in the same transaction.
        """
        try:
            deleted = await self._storage.delete_budget(budget_id)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_transaction_failed("delete_budget", e, budget_id)
            raise

        if deleted and self._audit_logger:
            await self._audit_logger.log_budget_deleted(budget_id)
        return deleted

    async def delete_recurring_budget(self, budget_id: str) -> bool:
        """
        Delete a template only. Instances already materialized from it stay.

        Returns:
            False if no template has that id (including when the id is an
            instance)
        """
        deleted = await self._storage.delete_budget_template(budget_id)
        if deleted and self._audit_logger:
            await self._audit_logger.log_budget_deleted(budget_id, recurring=True)
        return deleted

    async def get_budget(self, budget_id: str) -> Optional[Budget]:
        return await self._storage.get_budget(budget_id)

    async def list_recurring_budgets(self) -> list[Budget]:
        return await self._storage.list_budgets(self._owner_id, TEMPLATE_MONTH)

    async def list_budgets_for_month(self, month: int) -> list[Budget]:
        """A month's instances by name. Does not materialize."""
        return await self._storage.list_budgets(self._owner_id, validate_month_key(month))

    async def budget_usages(self, month: int) -> list[BudgetUsage]:
        """
        Spend per budget id (None = no budget) for spends dated in `month`.

        Only the spend's date is filtered; a spend pointing at another
        month's instance is still counted here.
        """
        start, end = month_bounds(month)
        return await self._storage.budget_usages(self._owner_id, start, end)
