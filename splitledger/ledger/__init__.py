"""
Ledger Services Package

Shared expenses, balances, settlements, people, personal spend and the
recent-activity feed.
"""

from splitledger.ledger.activity import ActivityFeed
from splitledger.ledger.balances import BalanceAggregator
from splitledger.ledger.expenses import ExpenseLedgerService
from splitledger.ledger.people import LedgerError, PeopleService, ProtectedPersonError
from splitledger.ledger.settlements import SettlementService
from splitledger.ledger.spending import UNSET, PersonalSpendService

__all__ = [
    "ActivityFeed",
    "BalanceAggregator",
    "ExpenseLedgerService",
    "LedgerError",
    "PeopleService",
    "PersonalSpendService",
    "ProtectedPersonError",
    "SettlementService",
    "UNSET",
]
