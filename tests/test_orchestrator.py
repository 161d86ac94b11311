"""End-to-end wiring and configuration tests."""

import pytest

from splitledger.config import LedgerSettings, StorageSettings
from splitledger.models import OWNER_ID
from splitledger.orchestrator import create_app_components


@pytest.fixture
def app():
    components = create_app_components(StorageSettings(url="sqlite://"), owner_display_name="Sam")
    yield components
    components.close()


class TestSettings:
    """Tests for configuration models."""

    def test_storage_defaults(self, monkeypatch):
        """Test the default database is a local SQLite file."""
        monkeypatch.delenv("LEDGER_DB_URL", raising=False)
        settings = StorageSettings()
        assert settings.url.startswith("sqlite")
        assert StorageSettings(url="sqlite://").is_memory

    def test_non_sqlite_url_rejected(self):
        """Test only SQLite URLs are accepted."""
        with pytest.raises(ValueError):
            StorageSettings(url="postgresql://localhost/ledger")

    def test_ledger_settings_from_env(self, monkeypatch):
        """Test the LEDGER_ prefix."""
        monkeypatch.setenv("LEDGER_DEFAULT_CURRENCY", "EUR")
        assert LedgerSettings().default_currency == "EUR"


class TestLedgerComponents:
    """Tests for the assembled application."""

    @pytest.mark.asyncio
    async def test_owner_seeded_with_name(self, app):
        """Test the owner row uses the configured name."""
        owner = await app.people.get_person(OWNER_ID)
        assert owner.display_name == "Sam"

    @pytest.mark.asyncio
    async def test_full_flow(self, app):
        """Test a shared bill, a settlement and a budgeted spend together."""
        alice = await app.people.add_person("Alice")
        await app.expenses.create_expense(30.00, OWNER_ID, [OWNER_ID, alice.id], description="Dinner")
        await app.settlements.record_settlement(alice.id, OWNER_ID, 5.00)
        await app.budgets.create_recurring_budget("Groceries", 400)

        assert await app.open_month(202405) == 1
        (groceries,) = await app.budgets.list_budgets_for_month(202405)
        await app.spending.add_personal_spend(25, budget_id=groceries.id, note="Market")

        assert await app.balances.net_for_person(alice.id) == 10.0
        titles = {item.title for item in await app.activity.list_recent()}
        assert titles == {"Dinner", "Market"}
        assert app.audit_logger.event_count == 6
