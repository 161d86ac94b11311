"""Split allocation package."""

from splitledger.services.allocation.allocator import (
    EmptyParticipantsError,
    InvalidSplitError,
    NonPositiveAmountError,
    SplitError,
    allocate,
    allocate_cents,
    from_cents,
    to_cents,
    validate_total,
)

__all__ = [
    "EmptyParticipantsError",
    "InvalidSplitError",
    "NonPositiveAmountError",
    "SplitError",
    "allocate",
    "allocate_cents",
    "from_cents",
    "to_cents",
    "validate_total",
]
