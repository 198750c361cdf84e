"""
Module: coop_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    coop_services and the CLI.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import coop_kernel (domain values, records, logging).
    MUST NOT import coop_services or coop_config.

Invariants enforced:
    - Purity: engines never read the clock; dates come in as parameters.
    - Decimal-only arithmetic for all monetary amounts.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from coop_engines import compute_financials, months_between, rollover
"""

from coop_kernel.logging_config import get_logger

logger = get_logger("engines")

from coop_engines.accrual import (  # noqa: E402
    FinancialSummary,
    MemberShare,
    compute_financials,
    fiscal_year_interest,
    lifetime_interest,
    member_shares,
    top_contributors,
)
from coop_engines.periods import clip_to_window, months_between  # noqa: E402
from coop_engines.rollover import RolloverResult, rollover, rollover_with_summary  # noqa: E402

__all__ = [
    # Periods
    "months_between",
    "clip_to_window",
    # Accrual
    "FinancialSummary",
    "compute_financials",
    "lifetime_interest",
    "fiscal_year_interest",
    "MemberShare",
    "member_shares",
    "top_contributors",
    # Rollover
    "RolloverResult",
    "rollover",
    "rollover_with_summary",
]
