"""
Audit Logger

DESIGN DECISION: Every ledger mutation is logged.
This provides:
1. Complete traceability of balance-affecting changes
2. Debugging capability when a split looks wrong
3. A record of rolled-back transactions

The audit logger:
- Is async so services can await it inline
- Never raises into the calling service
- Writes one structured JSON line per event
"""

import logging
from typing import Optional

import structlog

from splitledger.models.audit import LedgerEvent, LedgerEventBuilder


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


LOGGER_NAME = "splitledger.audit"


def configure_log_level(level: str) -> None:
    """Set the stdlib level that structlog's level filter consults."""
    logging.getLogger(LOGGER_NAME).setLevel(level.upper())


class AuditLogger:
    """
    Central audit logging service.

    Events are rendered through structlog onto the standard logging
    handler configured by the host application.
    """

    def __init__(self, logger_name: str = LOGGER_NAME):
        self._logger = structlog.get_logger(logger_name)
        self._event_count = 0

    @property
    def event_count(self) -> int:
        """Number of events logged by this instance."""
        return self._event_count

    async def log(self, event: LedgerEvent) -> bool:
        """
        Log an audit event.

        Returns False if the event could not be rendered; never raises.
        """
        log_dict = event.to_log_dict()
        try:
            if event.severity.value in ("error", "critical"):
                self._logger.error("audit_event", **log_dict)
            elif event.severity.value == "warning":
                self._logger.warning("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except (TypeError, ValueError) as e:
            logging.getLogger(LOGGER_NAME).error(
                "audit event %s could not be rendered: %s", event.event_id, e
            )
            return False

        self._event_count += 1
        return True

    async def log_person_added(self, person_id: str, display_name: str) -> None:
        await self.log(LedgerEventBuilder.person_added(person_id, display_name))

    async def log_person_deleted(self, person_id: str) -> None:
        await self.log(LedgerEventBuilder.person_deleted(person_id))

    async def log_expense_created(
        self,
        expense_id: str,
        amount: float,
        payer_id: str,
        participant_count: int,
        mode: str,
    ) -> None:
        """Log a new shared expense."""
        event = LedgerEventBuilder.expense_created(
            expense_id=expense_id,
            amount=amount,
            payer_id=payer_id,
            participant_count=participant_count,
            mode=mode,
        )
        await self.log(event)

    async def log_expense_updated(
        self,
        expense_id: str,
        amount: float,
        participant_count: int,
        mode: str,
    ) -> None:
        """Log a full replace of a shared expense."""
        event = LedgerEventBuilder.expense_updated(
            expense_id=expense_id,
            amount=amount,
            participant_count=participant_count,
            mode=mode,
        )
        await self.log(event)

    async def log_expense_deleted(self, expense_id: str) -> None:
        await self.log(LedgerEventBuilder.expense_deleted(expense_id))

    async def log_settlement_recorded(
        self,
        settlement_id: str,
        payer_id: str,
        payee_id: str,
        amount: float,
    ) -> None:
        event = LedgerEventBuilder.settlement_recorded(
            settlement_id=settlement_id,
            payer_id=payer_id,
            payee_id=payee_id,
            amount=amount,
        )
        await self.log(event)

    async def log_settlement_deleted(self, settlement_id: str) -> None:
        await self.log(LedgerEventBuilder.settlement_deleted(settlement_id))

    async def log_spend_added(
        self,
        spend_id: str,
        amount: float,
        budget_id: Optional[str],
    ) -> None:
        await self.log(LedgerEventBuilder.spend_added(spend_id, amount, budget_id))

    async def log_spend_updated(self, spend_id: str, fields: list[str]) -> None:
        await self.log(LedgerEventBuilder.spend_updated(spend_id, fields))

    async def log_spend_deleted(self, spend_id: str) -> None:
        await self.log(LedgerEventBuilder.spend_deleted(spend_id))

    async def log_budget_created(
        self,
        budget_id: str,
        name: str,
        month: int,
        amount: float,
    ) -> None:
        await self.log(LedgerEventBuilder.budget_created(budget_id, name, month, amount))

    async def log_budget_updated(self, budget_id: str, fields: list[str]) -> None:
        await self.log(LedgerEventBuilder.budget_updated(budget_id, fields))

    async def log_budget_deleted(self, budget_id: str, recurring: bool = False) -> None:
        await self.log(LedgerEventBuilder.budget_deleted(budget_id, recurring))

    async def log_budgets_materialized(
        self,
        month: int,
        template_count: int,
        inserted: int,
    ) -> None:
        """Log a materialization pass (including no-op passes)."""
        event = LedgerEventBuilder.budgets_materialized(
            month=month,
            template_count=template_count,
            inserted=inserted,
        )
        await self.log(event)

    async def log_validation_failed(self, operation: str, error: Exception) -> None:
        """Log input rejected before any write."""
        event = LedgerEventBuilder.validation_failed(
            operation=operation,
            error_type=type(error).__name__,
            error_message=str(error),
        )
        await self.log(event)

    async def log_transaction_failed(
        self,
        operation: str,
        error: Exception,
        entity_id: Optional[str] = None,
    ) -> None:
        """Log a mutation that was rolled back."""
        event = LedgerEventBuilder.transaction_failed(
            operation=operation,
            error_message=str(error),
            entity_id=entity_id,
        )
        await self.log(event)
