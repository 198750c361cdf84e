"""
Rate policy -- interest and late-fee parameters.

All rates are simple (non-compounding) and apply per accrual month.
``coop_config`` builds instances from YAML; the kernel only consumes them.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class RatePolicy:
    """
    Interest and fee rates in force for a cooperative.

    Contract:
        Frozen value; every engine and editing call receives one explicitly.
    Guarantees:
        - Rates are Decimal fractions (0.02 == 2% per accrual month).
        - ``due_day`` is the day of month a contribution falls due.
    """

    loan_rate: Decimal = Decimal("0.02")
    fd_rate: Decimal = Decimal("0.015")
    late_fee_rate: Decimal = Decimal("0.05")
    due_day: int = 16
    name: str = "default"

    def as_dict(self) -> dict[str, str | int]:
        return {
            "name": self.name,
            "loan_rate": str(self.loan_rate),
            "fd_rate": str(self.fd_rate),
            "late_fee_rate": str(self.late_fee_rate),
            "due_day": self.due_day,
        }


DEFAULT_POLICY = RatePolicy()
