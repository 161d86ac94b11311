"""
Data Models Package

This package contains all Pydantic models used in the Split Ledger system.
All data flowing through the ledger must conform to these schemas.
"""

from splitledger.models.ledger import (
    OWNER_ID,
    TEMPLATE_MONTH,
    BalanceSummary,
    Budget,
    BudgetUsage,
    ExpenseDetail,
    ExpenseParticipant,
    ParticipantShare,
    Person,
    PersonalSpend,
    PersonExpenseLine,
    RecentItem,
    RecentItemType,
    Settlement,
    SharedExpense,
    month_bounds,
    month_key,
    new_id,
    validate_month_key,
)
from splitledger.models.split import (
    AmountsSplit,
    EqualSplit,
    PercentSplit,
    SharesSplit,
    SplitMode,
    SplitModeName,
    parse_split,
)
from splitledger.models.audit import (
    AuditSeverity,
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventType,
)

__all__ = [
    # Ledger models
    "OWNER_ID",
    "TEMPLATE_MONTH",
    "BalanceSummary",
    "Budget",
    "BudgetUsage",
    "ExpenseDetail",
    "ExpenseParticipant",
    "ParticipantShare",
    "Person",
    "PersonalSpend",
    "PersonExpenseLine",
    "RecentItem",
    "RecentItemType",
    "Settlement",
    "SharedExpense",
    "month_bounds",
    "month_key",
    "new_id",
    "validate_month_key",
    # Split modes
    "AmountsSplit",
    "EqualSplit",
    "PercentSplit",
    "SharesSplit",
    "SplitMode",
    "SplitModeName",
    "parse_split",
    # Audit models
    "AuditSeverity",
    "LedgerEvent",
    "LedgerEventBuilder",
    "LedgerEventType",
]
