"""
Editing -- record-level changes to a year's Dataset.

Responsibility:
    Every add / update / delete an operator makes to the current year.
    Each function validates its input, then returns a NEW Dataset; the
    input Dataset is never touched, so a rejected edit leaves no partial
    change behind.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  The year service
    persists the returned Dataset.

Invariants enforced:
    - Deleting a member removes that member's loans, deposits and
      contribution records.
    - Loans, deposits and contributions may only reference existing
      members.
    - A payment on or after its due date is late; the fee is
      ``monthly_contribution * late_fee_rate`` unless forgiven.

Failure modes:
    - MissingFieldError / InvalidAmountError for bad member fields.
    - MemberNotFoundError for edits referencing an unknown member.
    - RecordNotFoundError when deleting an unknown loan or deposit.
    - InvalidMonthIndexError for month indices outside 0..11.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from coop_kernel.domain.financial_year import FinancialYear, check_month_index
from coop_kernel.domain.policy import DEFAULT_POLICY, RatePolicy
from coop_kernel.domain.records import (
    ContributionRecord,
    Dataset,
    FixedDeposit,
    Loan,
    Member,
)
from coop_kernel.domain.values import ZERO, to_decimal
from coop_kernel.exceptions import (
    InvalidAmountError,
    MemberNotFoundError,
    MissingFieldError,
    RecordNotFoundError,
)
from coop_kernel.logging_config import get_logger

logger = get_logger("domain.editing")

_UNSET = object()


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


def _validated_member_fields(name: str, monthly_contribution: object) -> tuple[str, Decimal]:
    clean_name = (name or "").strip()
    if not clean_name:
        raise MissingFieldError("Member", "name")
    amount = to_decimal(monthly_contribution, "monthly_contribution")
    if amount <= ZERO:
        raise InvalidAmountError("monthly_contribution", monthly_contribution)
    return clean_name, amount


def _require_member(dataset: Dataset, member_id: str) -> Member:
    member = dataset.member(member_id)
    if member is None:
        raise MemberNotFoundError(member_id)
    return member


def add_member(
    dataset: Dataset,
    member_id: str,
    name: str,
    monthly_contribution: Decimal | int | str,
) -> Dataset:
    """Append a new member."""
    clean_name, amount = _validated_member_fields(name, monthly_contribution)
    member = Member(id=member_id, name=clean_name, monthly_contribution=amount)
    logger.info("member_added", extra={"member_id": member_id})
    return dataset.with_changes(members=dataset.members + (member,))


def update_member(
    dataset: Dataset,
    member_id: str,
    name: str | object = _UNSET,
    monthly_contribution: Decimal | int | str | object = _UNSET,
) -> Dataset:
    """Change a member's name and/or monthly contribution."""
    current = _require_member(dataset, member_id)
    new_name = current.name if name is _UNSET else name
    new_amount = current.monthly_contribution if monthly_contribution is _UNSET else monthly_contribution
    clean_name, amount = _validated_member_fields(new_name, new_amount)
    updated = Member(id=member_id, name=clean_name, monthly_contribution=amount)
    members = tuple(updated if m.id == member_id else m for m in dataset.members)
    logger.info("member_updated", extra={"member_id": member_id})
    return dataset.with_changes(members=members)


def delete_member(dataset: Dataset, member_id: str) -> Dataset:
    """Remove a member together with their loans, deposits and contributions."""
    _require_member(dataset, member_id)
    contributions = dataset.contributions_as_dict()
    contributions.pop(member_id, None)
    result = dataset.with_changes(
        members=tuple(m for m in dataset.members if m.id != member_id),
        loans=tuple(loan for loan in dataset.loans if loan.member_id != member_id),
        fds=tuple(fd for fd in dataset.fds if fd.member_id != member_id),
        contributions=contributions,
    )
    logger.info("member_deleted", extra={
        "member_id": member_id,
        "loans_removed": len(dataset.loans) - len(result.loans),
        "fds_removed": len(dataset.fds) - len(result.fds),
    })
    return result


# ---------------------------------------------------------------------------
# Loans and fixed deposits
# ---------------------------------------------------------------------------


def save_loan(dataset: Dataset, loan: Loan) -> Dataset:
    """Insert ``loan``, or replace the loan with the same id."""
    _require_member(dataset, loan.member_id)
    if dataset.loan(loan.id) is None:
        loans = dataset.loans + (loan,)
        logger.info("loan_added", extra={"loan_id": loan.id, "member_id": loan.member_id})
    else:
        loans = tuple(loan if existing.id == loan.id else existing for existing in dataset.loans)
        logger.info("loan_updated", extra={"loan_id": loan.id, "member_id": loan.member_id})
    return dataset.with_changes(loans=loans)


def delete_loan(dataset: Dataset, loan_id: str) -> Dataset:
    if dataset.loan(loan_id) is None:
        raise RecordNotFoundError("Loan", loan_id)
    logger.info("loan_deleted", extra={"loan_id": loan_id})
    return dataset.with_changes(loans=tuple(loan for loan in dataset.loans if loan.id != loan_id))


def save_fixed_deposit(dataset: Dataset, fd: FixedDeposit) -> Dataset:
    """Insert ``fd``, or replace the deposit with the same id."""
    _require_member(dataset, fd.member_id)
    if dataset.fd(fd.id) is None:
        fds = dataset.fds + (fd,)
        logger.info("fd_added", extra={"fd_id": fd.id, "member_id": fd.member_id})
    else:
        fds = tuple(fd if existing.id == fd.id else existing for existing in dataset.fds)
        logger.info("fd_updated", extra={"fd_id": fd.id, "member_id": fd.member_id})
    return dataset.with_changes(fds=fds)


def delete_fixed_deposit(dataset: Dataset, fd_id: str) -> Dataset:
    if dataset.fd(fd_id) is None:
        raise RecordNotFoundError("FixedDeposit", fd_id)
    logger.info("fd_deleted", extra={"fd_id": fd_id})
    return dataset.with_changes(fds=tuple(fd for fd in dataset.fds if fd.id != fd_id))


# ---------------------------------------------------------------------------
# Contributions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LateFeeAssessment:
    """Outcome of checking one payment against its due date."""

    due_date: date
    is_late: bool
    late_fee: Decimal
    forgiven: bool


def assess_late_fee(
    monthly_contribution: Decimal,
    month_index: int,
    label: str,
    payment_date: date,
    forgive: bool = False,
    policy: RatePolicy = DEFAULT_POLICY,
) -> LateFeeAssessment:
    """
    Late-fee outcome for a payment.

    A payment ON the due date is already late.  ``forgiven`` is only true
    when the payment was actually late and forgiveness was requested.
    """
    due = FinancialYear.parse(label).due_date(month_index, policy.due_day)
    is_late = payment_date >= due
    fee = ZERO
    if is_late and not forgive:
        fee = to_decimal(monthly_contribution, "monthly_contribution") * policy.late_fee_rate
    return LateFeeAssessment(
        due_date=due,
        is_late=is_late,
        late_fee=fee,
        forgiven=is_late and forgive,
    )


def record_contribution(
    dataset: Dataset,
    label: str,
    member_id: str,
    month_index: int,
    payment_date: date,
    mode: str,
    remarks: str = "",
    forgive_late_fee: bool = False,
    policy: RatePolicy = DEFAULT_POLICY,
) -> Dataset:
    """Log (or overwrite) the payment for one member-month."""
    member = _require_member(dataset, member_id)
    check_month_index(month_index)
    if not isinstance(payment_date, date):
        raise MissingFieldError("Contribution", "date")

    assessment = assess_late_fee(
        member.monthly_contribution,
        month_index,
        label,
        payment_date,
        forgive=forgive_late_fee,
        policy=policy,
    )
    record = ContributionRecord(
        date=payment_date,
        mode=mode,
        remarks=(remarks or "").strip(),
        late_fee=assessment.late_fee,
        late_fee_forgiven=assessment.forgiven,
    )

    contributions = dataset.contributions_as_dict()
    existed = month_index in contributions.get(member_id, {})
    contributions.setdefault(member_id, {})[month_index] = record

    logger.info("contribution_updated" if existed else "contribution_logged", extra={
        "member_id": member_id,
        "month_index": month_index,
        "is_late": assessment.is_late,
        "late_fee": str(assessment.late_fee),
        "late_fee_forgiven": assessment.forgiven,
    })
    return dataset.with_changes(contributions=contributions)


def delete_contribution(dataset: Dataset, member_id: str, month_index: int) -> Dataset:
    """Clear a member-month back to unpaid.  Absent records are a no-op."""
    if dataset.contribution(member_id, month_index) is None:
        return dataset
    contributions = dataset.contributions_as_dict()
    del contributions[member_id][month_index]
    logger.info("contribution_deleted", extra={
        "member_id": member_id,
        "month_index": month_index,
    })
    return dataset.with_changes(contributions=contributions)


def contribution_status(dataset: Dataset, member_id: str) -> tuple[ContributionRecord | None, ...]:
    """The member's twelve month slots, Sep..Aug; None marks unpaid."""
    _require_member(dataset, member_id)
    return tuple(dataset.contribution(member_id, i) for i in range(12))
