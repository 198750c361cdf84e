"""
Pure domain layer.

This module contains immutable records and domain rules
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock
- I/O

All domain objects are immutable and deterministic.
"""

from coop_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from coop_kernel.domain.financial_year import MONTHS, FinancialYear, due_date
from coop_kernel.domain.policy import DEFAULT_POLICY, RatePolicy
from coop_kernel.domain.records import (
    Active,
    Closed,
    ContributionRecord,
    Dataset,
    FixedDeposit,
    InstrumentStatus,
    Loan,
    Member,
    OpeningBalances,
)
from coop_kernel.domain.values import CashMode, to_decimal

__all__ = [
    # Values
    "CashMode",
    "to_decimal",
    # Records
    "Member",
    "Loan",
    "FixedDeposit",
    "Active",
    "Closed",
    "InstrumentStatus",
    "ContributionRecord",
    "OpeningBalances",
    "Dataset",
    # Financial year
    "FinancialYear",
    "MONTHS",
    "due_date",
    # Policy
    "RatePolicy",
    "DEFAULT_POLICY",
    # Clock
    "Clock",
    "SystemClock",
    "DeterministicClock",
]
