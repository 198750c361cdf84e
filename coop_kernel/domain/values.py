"""
Values -- Cash modes and Decimal coercion.

Responsibility:
    Classifies payment channel labels into the two cash pools and converts
    raw amounts into ``Decimal`` without passing through binary floats.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by records, editing, codec and the engines.

Failure modes:
    - InvalidAmountError when a value cannot be read as a finite Decimal.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum

from coop_kernel.exceptions import InvalidAmountError

ZERO = Decimal("0")


class CashMode(str, Enum):
    """
    The two independent cash pools.

    Payment channels are recorded by their label ("Google Pay", "Paytm",
    "BHIM", "PhonePe", "Offline"); only "Offline" is physical cash.
    """

    ONLINE = "Online"
    OFFLINE = "Offline"

    @classmethod
    def from_label(cls, label: str | CashMode | None) -> CashMode:
        """Classify a channel label. Anything but 'Offline' is online."""
        if isinstance(label, CashMode):
            return label
        if label == cls.OFFLINE.value:
            return cls.OFFLINE
        return cls.ONLINE


# Channel labels offered for data entry
PAYMENT_CHANNELS: tuple[str, ...] = (
    "Google Pay",
    "Paytm",
    "BHIM",
    "PhonePe",
    "Offline",
)


def to_decimal(value: Decimal | int | float | str | None, field: str = "amount") -> Decimal:
    """
    Convert a raw value to Decimal.

    Floats go through ``str()`` so 0.1 becomes Decimal("0.1"), not the
    binary expansion.

    Raises:
        InvalidAmountError: value is None, non-numeric, NaN or infinite.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or value is None:
        raise InvalidAmountError(field, value)
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as e:
            raise InvalidAmountError(field, value) from e
    if not result.is_finite():
        raise InvalidAmountError(field, value)
    return result
