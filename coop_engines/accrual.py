"""
Module: coop_engines.accrual
Responsibility:
    Derive one financial year's figures from its Dataset: the two cash
    balances, accrued loan and deposit interest, late fees, net profit,
    active-position totals and per-member contribution totals.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import coop_kernel.domain (and sibling engine modules).

Invariants enforced:
    - Purity: the Dataset is never mutated; identical inputs always give
      identical results.
    - Decimal-only arithmetic; no rounding is applied inside the engine.
    - Cash balances use *lifetime* interest (issue/start to actual close);
      profit uses interest *clipped to the financial year*.  An instrument
      open across a year boundary earns P/L in both years while its cash
      settles once.  Summed P/L over an instrument's life can therefore
      exceed its lifetime interest.
    - Contribution records for members no longer in the dataset are
      skipped.  Loans and deposits are counted regardless of membership.

Failure modes:
    - InvalidFinancialYearLabelError for a malformed label.

Usage:
    from coop_engines.accrual import compute_financials

    summary = compute_financials(dataset, "2024-2025")
    summary.online_balance, summary.net_profit
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from coop_engines.periods import clip_to_window, months_between
from coop_engines.tracer import traced_engine
from coop_kernel.domain.financial_year import FinancialYear
from coop_kernel.domain.policy import DEFAULT_POLICY, RatePolicy
from coop_kernel.domain.records import Closed, Dataset, FixedDeposit, Loan
from coop_kernel.domain.values import ZERO, CashMode
from coop_kernel.logging_config import get_logger

logger = get_logger("engines.accrual")

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class FinancialSummary:
    """
    Computed figures for one financial year.

    Contract:
        Frozen result of ``compute_financials``; plain values only.
    Guarantees:
        - ``net_profit == loan_interest + late_fees - fd_interest``.
        - ``total_contributions`` equals the sum of
          ``member_contributions`` and excludes late fees.
    """

    online_balance: Decimal
    offline_balance: Decimal
    net_profit: Decimal
    active_loans_value: Decimal
    active_fds_value: Decimal
    total_contributions: Decimal
    member_contributions: Mapping[str, Decimal] = field(default_factory=dict)
    loan_interest: Decimal = ZERO
    fd_interest: Decimal = ZERO
    late_fees: Decimal = ZERO

    @property
    def total_balance(self) -> Decimal:
        return self.online_balance + self.offline_balance


class _CashPools:
    """Running online / offline balances."""

    def __init__(self, online: Decimal, offline: Decimal):
        self.online = online
        self.offline = offline

    def add(self, mode: str | CashMode, amount: Decimal) -> None:
        if CashMode.from_label(mode) is CashMode.OFFLINE:
            self.offline += amount
        else:
            self.online += amount


def lifetime_interest(principal: Decimal, rate: Decimal, instrument: Loan | FixedDeposit) -> Decimal:
    """Interest from opening to actual close; zero while still active."""
    if not isinstance(instrument.status, Closed):
        return ZERO
    months = months_between(instrument.opened_on, instrument.status.close_date)
    return principal * rate * months


def fiscal_year_interest(
    principal: Decimal,
    rate: Decimal,
    instrument: Loan | FixedDeposit,
    fy: FinancialYear,
) -> Decimal:
    """Interest earned inside ``fy`` only."""
    period = clip_to_window(instrument.opened_on, instrument.close_date, fy.start, fy.end)
    if period is None:
        return ZERO
    return principal * rate * months_between(*period)


@traced_engine("accrual", "1.0", fingerprint_fields=("dataset", "label"))
def compute_financials(
    dataset: Dataset,
    label: str,
    policy: RatePolicy = DEFAULT_POLICY,
) -> FinancialSummary:
    """
    Compute balances, accruals and profit for financial year ``label``.

    Three independent passes, all seeded from the opening balances:

    1. Contributions: ``monthly + late_fee`` into the record's pool.
    2. Loans: principal out at issue (any status); principal plus lifetime
       interest back in at closure via the repayment mode; clipped interest
       to P/L.
    3. Fixed deposits: principal in at start; principal plus lifetime
       interest out at closure via the payout mode; clipped interest is a
       cost.
    """
    fy = FinancialYear.parse(label)
    pools = _CashPools(dataset.opening_balances.online, dataset.opening_balances.offline)

    total_contributions = ZERO
    total_late_fees = ZERO
    member_contributions: dict[str, Decimal] = {}
    skipped = 0

    # 1. Contributions
    for member_id, _month_index, record in dataset.iter_contributions():
        member = dataset.member(member_id)
        if member is None:
            skipped += 1
            continue
        monthly = member.monthly_contribution
        pools.add(record.mode, monthly + record.late_fee)
        total_contributions += monthly
        member_contributions[member_id] = member_contributions.get(member_id, ZERO) + monthly
        if record.late_fee > ZERO:
            total_late_fees += record.late_fee

    if skipped:
        logger.debug("contributions_skipped_unknown_member", extra={
            "financial_year": fy.label,
            "skipped_count": skipped,
        })

    # 2. Loans
    total_loan_interest = ZERO
    active_loans_value = ZERO
    for loan in dataset.loans:
        pools.add(loan.disbursement_mode, -loan.amount)
        if isinstance(loan.status, Closed):
            repayment = loan.amount + lifetime_interest(loan.amount, policy.loan_rate, loan)
            pools.add(loan.status.settlement_mode, repayment)
        else:
            active_loans_value += loan.amount
        total_loan_interest += fiscal_year_interest(loan.amount, policy.loan_rate, loan, fy)

    # 3. Fixed deposits
    total_fd_interest = ZERO
    active_fds_value = ZERO
    for fd in dataset.fds:
        pools.add(fd.investment_mode, fd.amount)
        if isinstance(fd.status, Closed):
            payout = fd.amount + lifetime_interest(fd.amount, policy.fd_rate, fd)
            pools.add(fd.status.settlement_mode, -payout)
        else:
            active_fds_value += fd.amount
        total_fd_interest += fiscal_year_interest(fd.amount, policy.fd_rate, fd, fy)

    net_profit = (total_loan_interest + total_late_fees) - total_fd_interest

    logger.info("financials_computed", extra={
        "financial_year": fy.label,
        "member_count": len(dataset.members),
        "loan_count": len(dataset.loans),
        "fd_count": len(dataset.fds),
        "online_balance": str(pools.online),
        "offline_balance": str(pools.offline),
        "net_profit": str(net_profit),
    })

    return FinancialSummary(
        online_balance=pools.online,
        offline_balance=pools.offline,
        net_profit=net_profit,
        active_loans_value=active_loans_value,
        active_fds_value=active_fds_value,
        total_contributions=total_contributions,
        member_contributions=member_contributions,
        loan_interest=total_loan_interest,
        fd_interest=total_fd_interest,
        late_fees=total_late_fees,
    )


# ---------------------------------------------------------------------------
# Profit shares
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MemberShare:
    """A member's slice of the year's contributions and profit."""

    member_id: str
    name: str
    contribution: Decimal
    percentage: Decimal
    profit_share: Decimal


def member_shares(dataset: Dataset, summary: FinancialSummary) -> tuple[MemberShare, ...]:
    """
    Split ``summary.net_profit`` across members pro rata to contributions.

    Every member in the dataset gets a row, in dataset order.  With no
    contributions at all, every percentage and share is zero.
    """
    total = summary.total_contributions
    shares: list[MemberShare] = []
    for member in dataset.members:
        contribution = summary.member_contributions.get(member.id, ZERO)
        if total > ZERO:
            percentage = contribution / total * HUNDRED
            profit_share = summary.net_profit * contribution / total
        else:
            percentage = ZERO
            profit_share = ZERO
        shares.append(MemberShare(
            member_id=member.id,
            name=member.name,
            contribution=contribution,
            percentage=percentage,
            profit_share=profit_share,
        ))
    return tuple(shares)


def top_contributors(shares: Sequence[MemberShare], limit: int = 10) -> tuple[MemberShare, ...]:
    """Largest contributors first; ties keep dataset order."""
    ranked = sorted(shares, key=lambda s: s.contribution, reverse=True)
    return tuple(ranked[:limit])
