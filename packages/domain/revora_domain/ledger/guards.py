"""Input guards shared by ledger operations."""

import re

from ..errors import AmountTooLarge, InvalidAddress, InvalidBasisPoints, ZeroAmount
from ..schemas import MAX_AMOUNT, MAX_BPS
from ..schemas.base import ADDRESS_PATTERN

_ADDRESS_RE = re.compile(ADDRESS_PATTERN)


def require_address(value: str, label: str = "address") -> str:
    if not isinstance(value, str) or not _ADDRESS_RE.match(value):
        raise InvalidAddress(f"Malformed {label}: {value!r}")
    return value


def require_amount(amount: int, label: str = "amount") -> int:
    """Amounts must be positive integers no larger than MAX_AMOUNT."""
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise ZeroAmount(f"{label} must be an integer, got {amount!r}")
    if amount <= 0:
        raise ZeroAmount(f"{label} must be positive, got {amount}")
    if amount > MAX_AMOUNT:
        raise AmountTooLarge(f"{label} exceeds the maximum amount")
    return amount


def require_bps(value: int, label: str) -> int:
    if value < 0 or value > MAX_BPS:
        raise InvalidBasisPoints(f"{label} must be between 0 and {MAX_BPS} bps, got {value}")
    return value
