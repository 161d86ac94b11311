"""
Core Data Models for Split Ledger

These models define the strict schemas for all data flowing through the ledger.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Support the audit trail

DESIGN DECISION: Money is a float at this boundary because that is what the
presentation layer hands us. Anything that must balance to the cent is done in
integer cents by the allocator and the balance aggregator.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# The device owner. Seeded on first run and never deletable.
OWNER_ID = "me"

# Recurring budget templates are stored as budget rows with this month.
TEMPLATE_MONTH = 0


def new_id() -> str:
    """Opaque entity identifier."""
    return str(uuid4())


# =============================================================================
# MONTH KEYS - integer YYYYMM
# =============================================================================

def month_key(when: Union[date, datetime, None] = None) -> int:
    """
    Month key for a date, e.g. 202405 for May 2024.

    Defaults to the current local month.
    """
    when = when or datetime.now()
    return when.year * 100 + when.month


def validate_month_key(month: int) -> int:
    """Raise ValueError unless month is a real YYYYMM key."""
    year, mon = divmod(month, 100)
    if year < 1 or not 1 <= mon <= 12:
        raise ValueError(f"Invalid month key: {month}. Expected YYYYMM")
    return month


def month_bounds(month: int) -> tuple[datetime, datetime]:
    """Half-open [start, end) datetime range covered by a month key."""
    year, mon = divmod(validate_month_key(month), 100)
    start = datetime(year, mon, 1)
    if mon == 12:
        end = datetime(year + 1, 1, 1)
    else:
        end = datetime(year, mon + 1, 1)
    return start, end


def _blank_to_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


# =============================================================================
# PEOPLE
# =============================================================================

class Person(BaseModel):
    """Someone the owner shares expenses with (or the owner themselves)."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    display_name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Name shown in lists"
    )
    email: Optional[str] = Field(
        default=None,
        max_length=320
    )

    @field_validator('email')
    @classmethod
    def blank_email_is_none(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)

    @property
    def is_owner(self) -> bool:
        return self.id == OWNER_ID


# =============================================================================
# SHARED EXPENSES
# =============================================================================

class SharedExpense(BaseModel):
    """
    One shared bill.

    `amount` is the ground truth total. The participant shares of an
    expense always add up to it exactly.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    description: Optional[str] = Field(default=None, max_length=500)
    category: Optional[str] = Field(default=None, max_length=100)
    amount: float = Field(
        ...,
        gt=0,
        description="Total of the bill"
    )
    currency: str = Field(
        default="CAD",
        min_length=3,
        max_length=3
    )
    date: datetime = Field(default_factory=datetime.now)
    created_by: Optional[str] = Field(
        default=OWNER_ID,
        description="Who entered the expense (null once that person is deleted)"
    )
    payer_id: Optional[str] = Field(
        default=None,
        description="Who actually paid (null once that person is deleted)"
    )

    @field_validator('description', 'category')
    @classmethod
    def blank_is_none(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class ExpenseParticipant(BaseModel):
    """What one person owes on one expense."""

    expense_id: str
    user_id: str
    share: float = Field(..., ge=0)


class ParticipantShare(BaseModel):
    """A participant joined with their display name."""

    user_id: str
    share: float
    name: str


class ExpenseDetail(BaseModel):
    """An expense together with everyone's share, for the edit view."""

    expense: SharedExpense
    participants: list[ParticipantShare] = Field(default_factory=list)

    @property
    def participant_ids(self) -> list[str]:
        return [p.user_id for p in self.participants]


class PersonExpenseLine(BaseModel):
    """An expense as seen from one person's detail view."""

    expense: SharedExpense
    person_share: Optional[float] = Field(
        default=None,
        description="The person's share, None if they paid but did not participate"
    )
    person_name: Optional[str] = None


class BalanceSummary(BaseModel):
    """
    Headline totals for the owings view.

    Positive nets mean "this person owes me", negative "I owe them".
    """

    owed_to_me: float = 0.0
    i_owe: float = 0.0
    net_by_person: dict[str, float] = Field(default_factory=dict)


# =============================================================================
# SETTLEMENTS & PERSONAL SPEND
# =============================================================================

class Settlement(BaseModel):
    """A manual record that payer paid payee back."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    payer_id: str
    payee_id: str
    amount: float = Field(..., gt=0)
    date: datetime = Field(default_factory=datetime.now)
    note: Optional[str] = Field(default=None, max_length=1000)

    @model_validator(mode='after')
    def validate_parties(self) -> 'Settlement':
        if self.payer_id == self.payee_id:
            raise ValueError("Payer and payee must be different people")
        return self


class PersonalSpend(BaseModel):
    """Spending that only affects the owner's budgets, never balances."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    user_id: str = OWNER_ID
    amount: float = Field(..., gt=0)
    budget_id: Optional[str] = None
    category: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Free-text tag for spends recorded without a budget"
    )
    date: datetime = Field(default_factory=datetime.now)
    note: Optional[str] = Field(default=None, max_length=1000)

    @field_validator('note', 'category')
    @classmethod
    def blank_is_none(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


# =============================================================================
# BUDGETS
# =============================================================================

class Budget(BaseModel):
    """
    A monthly spending cap.

    month == TEMPLATE_MONTH marks a recurring template; any other value is
    the YYYYMM the instance applies to.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    user_id: str = OWNER_ID
    name: str = Field(..., min_length=1, max_length=100)
    month: int = Field(..., ge=0)
    amount: float = Field(..., ge=0)

    @field_validator('month')
    @classmethod
    def validate_month(cls, v: int) -> int:
        if v == TEMPLATE_MONTH:
            return v
        return validate_month_key(v)

    @property
    def is_template(self) -> bool:
        return self.month == TEMPLATE_MONTH


class BudgetUsage(BaseModel):
    """Total personal spend against one budget (None = no budget) in a month."""

    budget_id: Optional[str] = None
    total: float = 0.0


# =============================================================================
# ACTIVITY FEED
# =============================================================================

class RecentItemType(str, Enum):
    EXPENSE = "expense"
    SPEND = "spend"


class RecentItem(BaseModel):
    """One row of the unified recent-activity feed."""

    type: RecentItemType
    id: str
    title: str
    amount: float
    date: datetime
