"""
Main Orchestrator for Split Ledger

Wires storage, audit logging and every ledger service together so the
presentation layer gets one object to call into.

The database is opened lazily on the first storage call; the schema and
the owner row are created then.
"""

from typing import Optional

from splitledger.audit import AuditLogger, configure_log_level
from splitledger.budgets import BudgetMaterializer
from splitledger.config import StorageSettings, get_settings
from splitledger.ledger import (
    ActivityFeed,
    BalanceAggregator,
    ExpenseLedgerService,
    PeopleService,
    PersonalSpendService,
    SettlementService,
)
from splitledger.services.storage import SQLiteLedgerClient, SQLiteLedgerStorage


class LedgerComponents:
    """Everything the UI needs, sharing one storage and one audit logger."""

    def __init__(
        self,
        client: SQLiteLedgerClient,
        storage: SQLiteLedgerStorage,
        audit_logger: AuditLogger,
    ):
        self.client = client
        self.storage = storage
        self.audit_logger = audit_logger

        self.people = PeopleService(storage, audit_logger)
        self.expenses = ExpenseLedgerService(storage, audit_logger)
        self.settlements = SettlementService(storage, audit_logger)
        self.balances = BalanceAggregator(storage)
        self.spending = PersonalSpendService(storage, audit_logger)
        self.budgets = BudgetMaterializer(storage, audit_logger)
        self.activity = ActivityFeed(storage, storage)

    async def open_month(self, month: int) -> int:
        """Called when a budgets screen for `month` is shown."""
        return await self.budgets.ensure_recurring_budgets(month)

    def close(self) -> None:
        self.client.dispose()


def create_app_components(
    storage_settings: Optional[StorageSettings] = None,
    owner_display_name: Optional[str] = None,
) -> LedgerComponents:
    """
    Factory function to create all application components.

    Args:
        storage_settings: Database settings; defaults to the environment
                          (LEDGER_DB_*). Pass url="sqlite://" for an
                          in-memory ledger.
        owner_display_name: Name seeded for the owner row on first open

    Returns:
        LedgerComponents
    """
    configure_log_level(get_settings().app.log_level)

    client = SQLiteLedgerClient(storage_settings, owner_display_name)
    storage = SQLiteLedgerStorage(client)
    audit_logger = AuditLogger()

    return LedgerComponents(client, storage, audit_logger)
