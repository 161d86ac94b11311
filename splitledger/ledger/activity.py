"""Unified recent-activity feed: shared expenses and personal spend together."""

from typing import Optional

from splitledger.config import get_settings
from splitledger.models.ledger import RecentItem, RecentItemType
from splitledger.services.storage import BudgetStorageInterface, ExpenseStorageInterface


SHARED_EXPENSE_TITLE = "Shared expense"
PERSONAL_SPEND_TITLE = "Personal spend"


class ActivityFeed:
    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        budget_storage: BudgetStorageInterface,
    ):
        self._expense_storage = expense_storage
        self._budget_storage = budget_storage
        self._settings = get_settings().ledger

    async def list_recent(self, limit: Optional[int] = None) -> list[RecentItem]:
        """
        Latest items of both kinds, newest first.

        Each source is capped at `limit` before merging, so the merged
        result is exact for the top `limit` items.
        """
        limit = limit or self._settings.recent_limit

        items = [
            RecentItem(
                type=RecentItemType.EXPENSE,
                id=expense.id,
                title=expense.description or SHARED_EXPENSE_TITLE,
                amount=expense.amount,
                date=expense.date,
            )
            for expense in await self._expense_storage.list_recent_expenses(limit)
        ]
        items.extend(
            RecentItem(
                type=RecentItemType.SPEND,
                id=spend.id,
                title=spend.note or budget_name or PERSONAL_SPEND_TITLE,
                amount=spend.amount,
                date=spend.date,
            )
            for spend, budget_name in await self._budget_storage.list_recent_personal_spend(limit)
        )

        items.sort(key=lambda item: item.date, reverse=True)
        return items[:limit]
