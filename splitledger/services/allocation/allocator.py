"""
Split Allocator

Turns a total, a participant count and a split mode into one share per
participant, in participant order.

DESIGN DECISION: All arithmetic happens in integer cents.
- The total is converted once: round-half-up of total * 100, computed on the
  decimal text of the number so 10.01 is exactly 1001 cents.
- Percent mode floors p/100 * cents for each participant. Shares mode floors
  weight/total_weight * cents. Both then hand the leftover cents out one at a
  time from the FRONT of the list.
- Percents that round to 100 but floor to more than the total are rejected.
- Explicit amounts must be whole cents.
- Equal mode gives the leftover to the LAST participant.

These tie-breaks are part of the stored data's history: changing them would
make re-saved expenses disagree with the originals by a cent.
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from fractions import Fraction
from typing import Sequence, Union

from splitledger.models.split import (
    AmountsSplit,
    EqualSplit,
    PercentSplit,
    SharesSplit,
)


Number = Union[int, float, Decimal]
AnySplit = Union[EqualSplit, PercentSplit, SharesSplit, AmountsSplit]


class SplitError(Exception):
    """Base exception for inputs rejected before anything is written."""
    pass


class EmptyParticipantsError(SplitError):
    """A shared expense needs at least one participant."""
    pass


class NonPositiveAmountError(SplitError):
    """An amount that must be positive is zero or negative."""
    pass


class InvalidSplitError(SplitError):
    """Split values don't satisfy their mode's rule."""

    def __init__(self, rule: str, message: str):
        self.rule = rule
        super().__init__(message)


# Rule identifiers carried by InvalidSplitError.rule
RULE_VALUE_COUNT = "value_count"
RULE_NEGATIVE_VALUE = "negative_value"
RULE_PERCENT_SUM = "percent_sum"
RULE_SHARE_WEIGHTS = "share_weights"
RULE_AMOUNT_SUM = "amount_sum"
RULE_AMOUNT_PRECISION = "amount_precision"
RULE_DUPLICATE_PARTICIPANT = "duplicate_participant"


def _decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_half_up(value: Number) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(_decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def to_cents(amount: Number) -> int:
    """Dollars to integer cents, e.g. 10.005 -> 1001."""
    return round_half_up(_decimal(amount) * 100)


def from_cents(cents: int) -> float:
    """Integer cents back to dollars."""
    return cents / 100


def _require_values(values: Sequence[Number], count: int, label: str) -> list[Decimal]:
    if len(values) != count:
        raise InvalidSplitError(
            RULE_VALUE_COUNT,
            f"Provide {label} for each participant: got {len(values)} for {count}",
        )
    converted = [_decimal(v) for v in values]
    if any(v < 0 for v in converted):
        raise InvalidSplitError(RULE_NEGATIVE_VALUE, f"{label.capitalize()} must be non-negative")
    return converted


def _hand_out_leftover(raw: list[int], cents: int) -> list[int]:
    """Give the cents the floors dropped one by one, in list order."""
    leftover = cents - sum(raw)
    for i in range(leftover):
        raw[i % len(raw)] += 1
    return raw


def _distribute(weights: Sequence[Decimal], cents: int) -> list[int]:
    """Floor each weight's proportion of cents, then hand out the leftover."""
    total_weight = sum(Fraction(w) for w in weights)
    raw = [math.floor(Fraction(w) * cents / total_weight) for w in weights]
    return _hand_out_leftover(raw, cents)


def _equal(cents: int, n: int) -> list[int]:
    base = cents // n
    shares = [base] * n
    shares[-1] += cents - base * n
    return shares


def _percent(split: PercentSplit, cents: int, n: int) -> list[int]:
    percents = _require_values(split.percents, n, "percents")
    if round_half_up(sum(percents)) != 100:
        raise InvalidSplitError(RULE_PERCENT_SUM, "Percents must sum to 100")

    raw = [math.floor(Fraction(p) * cents / 100) for p in percents]
    # Percents like [50.4, 50] round to 100 but would hand out more than the total
    if sum(raw) > cents:
        raise InvalidSplitError(RULE_PERCENT_SUM, "Percents must sum to 100")
    return _hand_out_leftover(raw, cents)


def _shares(split: SharesSplit, cents: int, n: int) -> list[int]:
    weights = _require_values(split.weights, n, "shares")
    if sum(w for w in weights if w > 0) <= 0:
        raise InvalidSplitError(RULE_SHARE_WEIGHTS, "Shares must sum to more than 0")
    return _distribute(weights, cents)


def _amounts(split: AmountsSplit, cents: int, n: int) -> list[int]:
    amounts = _require_values(split.amounts, n, "amounts")
    if any(a * 100 != to_cents(a) for a in amounts):
        raise InvalidSplitError(RULE_AMOUNT_PRECISION, "Amounts must be whole cents")
    shares = [to_cents(a) for a in amounts]
    if sum(shares) != cents:
        raise InvalidSplitError(RULE_AMOUNT_SUM, "Explicit amounts must equal total")
    return shares


def validate_total(total: Number) -> int:
    """
    Check a total and return it in cents.

    Raises:
        NonPositiveAmountError: If total <= 0 or rounds to zero cents
    """
    if _decimal(total) <= 0:
        raise NonPositiveAmountError(f"Total must be > 0, got {total}")
    cents = to_cents(total)
    if cents <= 0:
        raise NonPositiveAmountError(f"Total rounds to zero cents: {total}")
    return cents


def allocate_cents(
    total: Number,
    participant_count: int,
    split: AnySplit = EqualSplit(),
) -> list[int]:
    """
    Allocate a total among participants, in integer cents.

    Args:
        total: Total in dollars
        participant_count: Number of participants
        split: How to divide the total

    Returns:
        One share in cents per participant; the shares sum to the total's cents

    Raises:
        EmptyParticipantsError: participant_count <= 0 (checked first)
        NonPositiveAmountError: total <= 0
        InvalidSplitError: The mode's values are missing or break its rule
    """
    if participant_count <= 0:
        raise EmptyParticipantsError("Need at least one participant")
    cents = validate_total(total)

    if isinstance(split, EqualSplit):
        return _equal(cents, participant_count)
    if isinstance(split, PercentSplit):
        return _percent(split, cents, participant_count)
    if isinstance(split, SharesSplit):
        return _shares(split, cents, participant_count)
    if isinstance(split, AmountsSplit):
        return _amounts(split, cents, participant_count)

    raise InvalidSplitError("mode", f"Unknown split mode: {split!r}")


def allocate(
    total: Number,
    participant_count: int,
    split: AnySplit = EqualSplit(),
) -> list[float]:
    """
    Allocate a total among participants, in dollars.

    Example:
        allocate(10.00, 3)  # [3.33, 3.33, 3.34]
        allocate(9.00, 2, SharesSplit(weights=[1, 2]))  # [3.0, 6.0]

    Explicit amounts are returned exactly as given.
    """
    shares = allocate_cents(total, participant_count, split)
    if isinstance(split, AmountsSplit):
        return [float(a) for a in split.amounts]
    return [from_cents(c) for c in shares]
