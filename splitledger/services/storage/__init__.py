"""
Storage Services Package

Provides abstract interfaces and concrete implementations for ledger storage.
Currently implements an embedded SQLite database, but designed to be swappable.
"""

from splitledger.services.storage.interface import (
    BudgetStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    PeopleStorageInterface,
    StorageConnectionError,
    StorageError,
    TransactionError,
)
from splitledger.services.storage.sqlite import (
    SQLiteLedgerClient,
    SQLiteLedgerStorage,
)

__all__ = [
    # Interfaces
    "BudgetStorageInterface",
    "ExpenseStorageInterface",
    "PeopleStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    "TransactionError",
    # SQLite implementation
    "SQLiteLedgerClient",
    "SQLiteLedgerStorage",
]
