"""Manual "paid X back" records."""

from datetime import datetime
from typing import Optional

from splitledger.audit import AuditLogger
from splitledger.models.ledger import Settlement
from splitledger.services.allocation import NonPositiveAmountError, from_cents, validate_total
from splitledger.services.storage import ExpenseStorageInterface


class SettlementService:
    """Record and remove settlements between two people."""

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def record_settlement(
        self,
        payer_id: str,
        payee_id: str,
        amount: float,
        date: Optional[datetime] = None,
        note: Optional[str] = None,
    ) -> Settlement:
        """
        Record that payer_id paid payee_id back.

        Raises:
            NonPositiveAmountError: If amount <= 0
            ValueError: If payer and payee are the same person
        """
        try:
            cents = validate_total(amount)
        except NonPositiveAmountError as e:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed("record_settlement", e)
            raise

        settlement = Settlement(
            payer_id=payer_id,
            payee_id=payee_id,
            amount=from_cents(cents),
            date=date or datetime.now(),
            note=note,
        )
        await self._storage.add_settlement(settlement)

        if self._audit_logger:
            await self._audit_logger.log_settlement_recorded(
                settlement_id=settlement.id,
                payer_id=payer_id,
                payee_id=payee_id,
                amount=settlement.amount,
            )
        return settlement

    async def list_settlements(self, person_id: Optional[str] = None) -> list[Settlement]:
        """Newest first; optionally only those involving one person."""
        return await self._storage.list_settlements(person_id)

    async def delete_settlement(self, settlement_id: str) -> bool:
        deleted = await self._storage.delete_settlement(settlement_id)
        if deleted and self._audit_logger:
            await self._audit_logger.log_settlement_deleted(settlement_id)
        return deleted
