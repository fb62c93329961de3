"""
shared/utils/validation.py
Pure input-normalisation helpers shared by the managers.
"""

from typing import Any, Iterable, Optional, TypeVar

T = TypeVar("T")

BOOKING_STATUSES = ("pending", "confirmed", "cancelled")
DEFAULT_BOOKING_STATUS = "confirmed"

# partially_paid is deliberately absent: only a deposit payment may set it
WRITABLE_PAYMENT_STATUSES = ("unpaid", "paid", "refunded")
DEFAULT_PAYMENT_STATUS = "unpaid"


def clamp_enum(value: Any, allowed: Iterable[T], default: T) -> T:
    """Return `value` if it is one of `allowed`, otherwise `default`. Never raises."""
    allowed = tuple(allowed)
    try:
        return value if value in allowed else default
    except TypeError:
        # Unhashable / incomparable input (lists, dicts, ...)
        return default


def clamp_booking_status(value: Any) -> str:
    return clamp_enum(value, BOOKING_STATUSES, DEFAULT_BOOKING_STATUS)


def clamp_payment_status(value: Any) -> str:
    return clamp_enum(value, WRITABLE_PAYMENT_STATUSES, DEFAULT_PAYMENT_STATUS)


def is_blank(value: Optional[Any]) -> bool:
    """True for None, empty strings and whitespace-only strings."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()
