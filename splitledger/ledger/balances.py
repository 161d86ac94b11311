"""
Balance Aggregator

Who owes the owner, and whom the owner owes.

A person's net is folded from four independent grouped sums:
    + their shares of bills the owner paid
    - the owner's shares of bills they paid
    - settlements they paid the owner
    + settlements the owner paid them

Positive means "they owe me", negative means "I owe them". The fold is done
in integer cents so nets come back cent-exact.
"""

from typing import Optional

from splitledger.models.ledger import OWNER_ID, BalanceSummary
from splitledger.services.allocation import from_cents, to_cents
from splitledger.services.storage import ExpenseStorageInterface


class BalanceAggregator:
    """Read-only view of running balances between the owner and everyone else."""

    def __init__(self, storage: ExpenseStorageInterface, owner_id: str = OWNER_ID):
        self._storage = storage
        self._owner_id = owner_id

    async def net_by_person(self) -> dict[str, float]:
        """
        Net balance per person id.

        People with no expenses or settlements involving the owner are
        absent; callers treat a missing entry as 0.
        """
        owed_to_me = await self._storage.shares_owed_to(self._owner_id)
        i_owe = await self._storage.shares_owed_by(self._owner_id)
        paid_to_me = await self._storage.settlements_received_by(self._owner_id)
        paid_by_me = await self._storage.settlements_sent_by(self._owner_id)

        net_cents: dict[str, int] = {}
        for sums, sign in (
            (owed_to_me, 1),
            (i_owe, -1),
            (paid_to_me, -1),
            (paid_by_me, 1),
        ):
            for person_id, amount in sums.items():
                net_cents[person_id] = net_cents.get(person_id, 0) + sign * to_cents(amount)

        return {person_id: from_cents(cents) for person_id, cents in net_cents.items()}

    async def net_for_person(self, person_id: str) -> float:
        """Net balance with one person (0.0 if nothing links them to the owner)."""
        return (await self.net_by_person()).get(person_id, 0.0)

    async def summarize(self, net: Optional[dict[str, float]] = None) -> BalanceSummary:
        """
        Totals for the owings view: how much the owner is owed in total and
        how much they owe in total.
        """
        net = net if net is not None else await self.net_by_person()
        owed_cents = sum(to_cents(v) for v in net.values() if v > 0)
        owe_cents = sum(-to_cents(v) for v in net.values() if v < 0)
        return BalanceSummary(
            owed_to_me=from_cents(owed_cents),
            i_owe=from_cents(owe_cents),
            net_by_person=net,
        )
