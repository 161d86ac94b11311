"""Services package."""

from splitledger.services.allocation import (
    EmptyParticipantsError,
    InvalidSplitError,
    NonPositiveAmountError,
    SplitError,
    allocate,
    allocate_cents,
)
from splitledger.services.storage import (
    BudgetStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    PeopleStorageInterface,
    SQLiteLedgerClient,
    SQLiteLedgerStorage,
    StorageConnectionError,
    StorageError,
    TransactionError,
)

__all__ = [
    # Allocation
    "EmptyParticipantsError",
    "InvalidSplitError",
    "NonPositiveAmountError",
    "SplitError",
    "allocate",
    "allocate_cents",
    # Storage
    "BudgetStorageInterface",
    "DuplicateError",
    "ExpenseStorageInterface",
    "NotFoundError",
    "PeopleStorageInterface",
    "SQLiteLedgerClient",
    "SQLiteLedgerStorage",
    "StorageConnectionError",
    "StorageError",
    "TransactionError",
]
