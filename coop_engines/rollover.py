"""
Module: coop_engines.rollover
Responsibility:
    Close one financial year's books and seed the next year's Dataset.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Loading the previous
    year, rejecting duplicates and saving the result belong to
    ``coop_services.year_service``.

Invariants enforced:
    - The new year's opening balances equal the previous year's closing
      online / offline balances exactly.
    - Every member is carried forward; membership is permanent.
    - Only active loans and deposits are carried forward.
    - Contributions always start empty.
    - The previous Dataset is not mutated (records are immutable values, so
      the carried records are safely shared).

Failure modes:
    - InvalidFinancialYearLabelError for malformed labels.
    - Never raises StateConflictError; duplicate-year and missing-source
      checks happen in the year service.
"""

from __future__ import annotations

from dataclasses import dataclass

from coop_engines.accrual import FinancialSummary, compute_financials
from coop_engines.tracer import traced_engine
from coop_kernel.domain.financial_year import FinancialYear
from coop_kernel.domain.policy import DEFAULT_POLICY, RatePolicy
from coop_kernel.domain.records import Dataset, OpeningBalances
from coop_kernel.logging_config import get_logger

logger = get_logger("engines.rollover")


@dataclass(frozen=True)
class RolloverResult:
    """The seeded dataset together with the closing figures it came from."""

    new_label: str
    dataset: Dataset
    previous_summary: FinancialSummary


@traced_engine("rollover", "1.0", fingerprint_fields=("previous_label", "new_label"))
def rollover_with_summary(
    previous_label: str,
    new_label: str,
    previous_dataset: Dataset,
    policy: RatePolicy = DEFAULT_POLICY,
) -> RolloverResult:
    """Build the next year's Dataset and return the previous year's summary too."""
    FinancialYear.parse(new_label)
    closing = compute_financials(previous_dataset, previous_label, policy)

    loans = tuple(loan for loan in previous_dataset.loans if loan.is_active)
    fds = tuple(fd for fd in previous_dataset.fds if fd.is_active)

    new_dataset = Dataset(
        members=previous_dataset.members,
        loans=loans,
        fds=fds,
        contributions={},
        opening_balances=OpeningBalances(
            online=closing.online_balance,
            offline=closing.offline_balance,
        ),
    )

    logger.info("year_rolled_over", extra={
        "previous_year": previous_label,
        "new_year": new_label,
        "members_carried": len(new_dataset.members),
        "loans_carried": len(loans),
        "loans_dropped": len(previous_dataset.loans) - len(loans),
        "fds_carried": len(fds),
        "fds_dropped": len(previous_dataset.fds) - len(fds),
        "opening_online": str(closing.online_balance),
        "opening_offline": str(closing.offline_balance),
    })

    return RolloverResult(new_label=new_label, dataset=new_dataset, previous_summary=closing)


def rollover(
    previous_label: str,
    new_label: str,
    previous_dataset: Dataset,
    policy: RatePolicy = DEFAULT_POLICY,
) -> Dataset:
    """
    Seed ``new_label`` from ``previous_label``'s closing state.

    Runs the accrual calculator over the whole previous dataset, then
    carries members, active instruments and the closing balances.
    """
    return rollover_with_summary(previous_label, new_label, previous_dataset, policy).dataset
