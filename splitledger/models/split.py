"""
Split Modes

How a shared total is divided among participants. Each mode carries only the
values it needs, so a percent split can never arrive without percents.

Values are given per participant, in the same order as the participant list.
"""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class SplitModeName(str, Enum):
    """Supported split strategies."""
    EQUAL = "equal"
    PERCENT = "percent"
    SHARES = "shares"
    AMOUNTS = "amounts"


class EqualSplit(BaseModel):
    """Everyone pays the same; the last participant absorbs the odd cents."""
    mode: Literal["equal"] = "equal"


class PercentSplit(BaseModel):
    """One percentage per participant, summing to 100."""
    mode: Literal["percent"] = "percent"
    percents: list[float] = Field(..., description="Percent per participant")


class SharesSplit(BaseModel):
    """One relative weight per participant, e.g. [1, 2] pays a third / two thirds."""
    mode: Literal["shares"] = "shares"
    weights: list[float] = Field(..., description="Relative weight per participant")


class AmountsSplit(BaseModel):
    """Explicit dollar amounts per participant, summing to the total."""
    mode: Literal["amounts"] = "amounts"
    amounts: list[float] = Field(..., description="Dollar amount per participant")


SplitMode = Annotated[
    Union[EqualSplit, PercentSplit, SharesSplit, AmountsSplit],
    Field(discriminator="mode"),
]

_split_adapter = TypeAdapter(SplitMode)


def parse_split(data: dict) -> Union[EqualSplit, PercentSplit, SharesSplit, AmountsSplit]:
    """
    Build a split mode from a plain dict such as a form submission.

    Example:
        parse_split({"mode": "percent", "percents": [50, 50]})
    """
    return _split_adapter.validate_python(data)
