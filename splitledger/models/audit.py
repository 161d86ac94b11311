"""
Audit Models for Split Ledger

Every mutation of the ledger is logged for audit purposes.
This provides:
1. Complete traceability of who-owes-whom changes
2. Debugging information when things go wrong
3. Ability to reconstruct history

DESIGN DECISION: Audit events are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class LedgerEventType(str, Enum):
    """
    Types of events we audit.

    Every mutating ledger operation has its own event type.
    """
    # People
    PERSON_ADDED = "person_added"
    PERSON_DELETED = "person_deleted"

    # Shared expenses
    EXPENSE_CREATED = "expense_created"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"

    # Settlements
    SETTLEMENT_RECORDED = "settlement_recorded"
    SETTLEMENT_DELETED = "settlement_deleted"

    # Personal spend
    SPEND_ADDED = "spend_added"
    SPEND_UPDATED = "spend_updated"
    SPEND_DELETED = "spend_deleted"

    # Budgets
    BUDGET_CREATED = "budget_created"
    BUDGET_UPDATED = "budget_updated"
    BUDGET_DELETED = "budget_deleted"
    BUDGETS_MATERIALIZED = "budgets_materialized"

    # Failures
    VALIDATION_FAILED = "validation_failed"
    TRANSACTION_FAILED = "transaction_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class LedgerEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every ledger mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred (local time)"
    )

    # Event classification
    event_type: LedgerEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'budget', 'person')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


def _money(amount: float) -> str:
    return f"{amount:.2f}"


class LedgerEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = LedgerEventBuilder.expense_created(expense_id, 30.0, "me", 3, "equal")
        event = LedgerEventBuilder.budget_deleted(budget_id, recurring=True)
    """

    @staticmethod
    def person_added(person_id: str, display_name: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.PERSON_ADDED,
            entity_type="person",
            entity_id=person_id,
            description=f"Person added: {display_name}",
        )

    @staticmethod
    def person_deleted(person_id: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.PERSON_DELETED,
            entity_type="person",
            entity_id=person_id,
            description="Person deleted with their participations and settlements",
        )

    @staticmethod
    def expense_created(
        expense_id: str,
        amount: float,
        payer_id: str,
        participant_count: int,
        mode: str,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.EXPENSE_CREATED,
            entity_type="expense",
            entity_id=expense_id,
            description=f"Shared expense of {_money(amount)} split {mode} between {participant_count}",
            details={
                "amount": _money(amount),
                "payer_id": payer_id,
                "participant_count": participant_count,
                "mode": mode,
            },
        )

    @staticmethod
    def expense_updated(
        expense_id: str,
        amount: float,
        participant_count: int,
        mode: str,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.EXPENSE_UPDATED,
            entity_type="expense",
            entity_id=expense_id,
            description=f"Shared expense replaced: {_money(amount)} split {mode}",
            details={
                "amount": _money(amount),
                "participant_count": participant_count,
                "mode": mode,
            },
        )

    @staticmethod
    def expense_deleted(expense_id: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            description="Shared expense deleted",
        )

    @staticmethod
    def settlement_recorded(
        settlement_id: str,
        payer_id: str,
        payee_id: str,
        amount: float,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SETTLEMENT_RECORDED,
            entity_type="settlement",
            entity_id=settlement_id,
            description=f"Settlement of {_money(amount)} recorded",
            details={
                "payer_id": payer_id,
                "payee_id": payee_id,
                "amount": _money(amount),
            },
        )

    @staticmethod
    def settlement_deleted(settlement_id: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SETTLEMENT_DELETED,
            entity_type="settlement",
            entity_id=settlement_id,
            description="Settlement deleted",
        )

    @staticmethod
    def spend_added(spend_id: str, amount: float, budget_id: Optional[str]) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SPEND_ADDED,
            entity_type="personal_spend",
            entity_id=spend_id,
            description=f"Personal spend of {_money(amount)} added",
            details={
                "amount": _money(amount),
                "budget_id": budget_id,
            },
        )

    @staticmethod
    def spend_updated(spend_id: str, fields: list[str]) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SPEND_UPDATED,
            entity_type="personal_spend",
            entity_id=spend_id,
            description=f"Personal spend updated: {', '.join(fields)}",
            details={"fields": fields},
        )

    @staticmethod
    def spend_deleted(spend_id: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SPEND_DELETED,
            entity_type="personal_spend",
            entity_id=spend_id,
            description="Personal spend deleted",
        )

    @staticmethod
    def budget_created(budget_id: str, name: str, month: int, amount: float) -> LedgerEvent:
        kind = "Recurring budget" if month == 0 else "Budget"
        return LedgerEvent(
            event_type=LedgerEventType.BUDGET_CREATED,
            entity_type="budget",
            entity_id=budget_id,
            description=f"{kind} created: {name}",
            details={
                "name": name,
                "month": month,
                "amount": _money(amount),
            },
        )

    @staticmethod
    def budget_updated(budget_id: str, fields: list[str]) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.BUDGET_UPDATED,
            entity_type="budget",
            entity_id=budget_id,
            description=f"Budget updated: {', '.join(fields)}",
            details={"fields": fields},
        )

    @staticmethod
    def budget_deleted(budget_id: str, recurring: bool = False) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.BUDGET_DELETED,
            entity_type="budget",
            entity_id=budget_id,
            description="Recurring budget deleted" if recurring else "Budget deleted",
            details={"recurring": recurring},
        )

    @staticmethod
    def budgets_materialized(month: int, template_count: int, inserted: int) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.BUDGETS_MATERIALIZED,
            entity_type="budget",
            description=f"Recurring budgets ensured for {month}: {inserted} new",
            details={
                "month": month,
                "template_count": template_count,
                "inserted": inserted,
            },
        )

    @staticmethod
    def validation_failed(operation: str, error_type: str, error_message: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            description=f"{operation} rejected: {error_type}",
            error_code=error_type,
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def transaction_failed(
        operation: str,
        error_message: str,
        entity_id: Optional[str] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_id=entity_id,
            description=f"{operation} rolled back",
            error_message=error_message,
            details={"operation": operation},
        )
