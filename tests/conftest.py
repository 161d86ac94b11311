"""Shared fixtures: every test gets its own in-memory ledger."""

import pytest

from splitledger.audit import AuditLogger
from splitledger.config import StorageSettings
from splitledger.services.storage import SQLiteLedgerClient, SQLiteLedgerStorage


@pytest.fixture
def client():
    client = SQLiteLedgerClient(StorageSettings(url="sqlite://"), owner_display_name="Me")
    yield client
    client.dispose()


@pytest.fixture
def storage(client):
    return SQLiteLedgerStorage(client)


@pytest.fixture
def audit_logger():
    return AuditLogger()
