"""
Records -- Members, instruments, contributions and the yearly Dataset.

Responsibility:
    Immutable record types for one financial year's books.  A ``Dataset``
    is the unit of persistence; members, loans, fixed deposits and
    contribution records are only reachable through it.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Loan / deposit amounts are Decimal and strictly positive.
    - Status is a tagged variant: ``Active()`` carries nothing;
      ``Closed(close_date, settlement_mode)`` always carries both.
    - At most one contribution record per (member, month index).
    - Records reference members by id only; deleting a member must cascade
      explicitly (see ``coop_kernel.domain.editing``).

Failure modes:
    - InvalidAmountError, MissingFieldError, IncompleteClosureError and
      InvalidMonthIndexError on construction with bad data.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from types import MappingProxyType
from typing import Union

from coop_kernel.domain.values import ZERO, CashMode, to_decimal
from coop_kernel.exceptions import (
    IncompleteClosureError,
    InvalidAmountError,
    InvalidMonthIndexError,
    MissingFieldError,
)

STATUS_ACTIVE = "active"
STATUS_CLOSED = "closed"


@dataclass(frozen=True)
class Member:
    """A cooperative member and the contribution they owe each month."""

    id: str
    name: str
    monthly_contribution: Decimal

    def __post_init__(self) -> None:
        if not self.id:
            raise MissingFieldError("Member", "id")
        amount = to_decimal(self.monthly_contribution, "monthly_contribution")
        if amount < ZERO:
            raise InvalidAmountError("monthly_contribution", self.monthly_contribution)
        object.__setattr__(self, "monthly_contribution", amount)


@dataclass(frozen=True)
class Active:
    """Instrument still open; no settlement has happened."""

    name = STATUS_ACTIVE


@dataclass(frozen=True)
class Closed:
    """
    Instrument settled on ``close_date`` through ``settlement_mode``.

    For a loan the settlement is the repayment; for a fixed deposit it is
    the payout.
    """

    close_date: date
    settlement_mode: str

    name = STATUS_CLOSED

    def __post_init__(self) -> None:
        if not isinstance(self.close_date, date):
            raise MissingFieldError("Closed status", "close_date")
        if not self.settlement_mode:
            raise MissingFieldError("Closed status", "settlement_mode")

    @property
    def settlement_cash_mode(self) -> CashMode:
        return CashMode.from_label(self.settlement_mode)


InstrumentStatus = Union[Active, Closed]


def status_from_fields(
    record_type: str,
    record_id: str,
    status: str,
    close_date: date | None,
    settlement_mode: str | None,
) -> InstrumentStatus:
    """
    Build the tagged status from the flat form/JSON fields.

    Active instruments drop any close fields; closed ones must have both.
    """
    if status == STATUS_ACTIVE:
        return Active()
    if status != STATUS_CLOSED:
        raise MissingFieldError(record_type, "status")
    if close_date is None:
        raise IncompleteClosureError(record_type, record_id, "close date")
    if not settlement_mode:
        raise IncompleteClosureError(record_type, record_id, "settlement mode")
    return Closed(close_date=close_date, settlement_mode=settlement_mode)


def _positive_amount(value: object, field_name: str) -> Decimal:
    amount = to_decimal(value, field_name)
    if amount <= ZERO:
        raise InvalidAmountError(field_name, value)
    return amount


@dataclass(frozen=True, kw_only=True)
class _Instrument:
    id: str
    member_id: str
    amount: Decimal
    status: InstrumentStatus

    record_type = "instrument"

    def __post_init__(self) -> None:
        if not self.id:
            raise MissingFieldError(self.record_type, "id")
        if not self.member_id:
            raise MissingFieldError(self.record_type, "member_id")
        object.__setattr__(self, "amount", _positive_amount(self.amount, "amount"))
        if not isinstance(self.status, (Active, Closed)):
            raise MissingFieldError(self.record_type, "status")

    @property
    def is_active(self) -> bool:
        return isinstance(self.status, Active)

    @property
    def is_closed(self) -> bool:
        return isinstance(self.status, Closed)

    @property
    def close_date(self) -> date | None:
        return self.status.close_date if isinstance(self.status, Closed) else None


@dataclass(frozen=True, kw_only=True)
class Loan(_Instrument):
    """Money lent to a member: cash out at issue, principal plus interest in at closure."""

    issue_date: date
    disbursement_mode: str

    record_type = "Loan"

    def __post_init__(self) -> None:
        super().__post_init__()
        if not isinstance(self.issue_date, date):
            raise MissingFieldError(self.record_type, "issue_date")
        if not self.disbursement_mode:
            raise MissingFieldError(self.record_type, "disbursement_mode")

    @property
    def opened_on(self) -> date:
        return self.issue_date

    @property
    def repayment_mode(self) -> str | None:
        return self.status.settlement_mode if isinstance(self.status, Closed) else None


@dataclass(frozen=True, kw_only=True)
class FixedDeposit(_Instrument):
    """Money a member deposits: cash in at start, principal plus interest out at closure."""

    start_date: date
    investment_mode: str

    record_type = "FixedDeposit"

    def __post_init__(self) -> None:
        super().__post_init__()
        if not isinstance(self.start_date, date):
            raise MissingFieldError(self.record_type, "start_date")
        if not self.investment_mode:
            raise MissingFieldError(self.record_type, "investment_mode")

    @property
    def opened_on(self) -> date:
        return self.start_date

    @property
    def payout_mode(self) -> str | None:
        return self.status.settlement_mode if isinstance(self.status, Closed) else None


@dataclass(frozen=True)
class ContributionRecord:
    """
    Payment of one month's contribution.

    ``late_fee`` is the fee actually charged; ``late_fee_forgiven`` marks a
    late payment whose fee was waived.
    """

    date: date
    mode: str
    remarks: str = ""
    late_fee: Decimal = ZERO
    late_fee_forgiven: bool = False

    def __post_init__(self) -> None:
        if not self.mode:
            raise MissingFieldError("Contribution", "mode")
        fee = to_decimal(self.late_fee, "late_fee")
        if fee < ZERO:
            raise InvalidAmountError("late_fee", self.late_fee)
        object.__setattr__(self, "late_fee", fee)

    @property
    def cash_mode(self) -> CashMode:
        return CashMode.from_label(self.mode)


@dataclass(frozen=True)
class OpeningBalances:
    """Cash on hand in each pool when the year opens."""

    online: Decimal = ZERO
    offline: Decimal = ZERO

    def __post_init__(self) -> None:
        object.__setattr__(self, "online", to_decimal(self.online, "online"))
        object.__setattr__(self, "offline", to_decimal(self.offline, "offline"))


ContributionMap = Mapping[str, Mapping[int, ContributionRecord]]


def _freeze_contributions(raw: ContributionMap) -> ContributionMap:
    frozen: dict[str, Mapping[int, ContributionRecord]] = {}
    for member_id, months in raw.items():
        slots: dict[int, ContributionRecord] = {}
        for month_index, record in months.items():
            if isinstance(month_index, bool) or not isinstance(month_index, int):
                raise InvalidMonthIndexError(month_index)
            if not 0 <= month_index <= 11:
                raise InvalidMonthIndexError(month_index)
            slots[month_index] = record
        frozen[member_id] = MappingProxyType(slots)
    return MappingProxyType(frozen)


@dataclass(frozen=True)
class Dataset:
    """
    One financial year's books.

    Contract:
        Immutable snapshot.  Edits produce a new Dataset (see
        ``coop_kernel.domain.editing``); the caller owns the single live
        reference for the current year.
    Guarantees:
        - ``members``, ``loans`` and ``fds`` are tuples in insertion order.
        - ``contributions`` is a read-only mapping
          ``member_id -> {month_index -> ContributionRecord}``.
    """

    members: tuple[Member, ...] = ()
    loans: tuple[Loan, ...] = ()
    fds: tuple[FixedDeposit, ...] = ()
    contributions: ContributionMap = field(default_factory=dict)
    opening_balances: OpeningBalances = field(default_factory=OpeningBalances)

    def __post_init__(self) -> None:
        object.__setattr__(self, "members", tuple(self.members))
        object.__setattr__(self, "loans", tuple(self.loans))
        object.__setattr__(self, "fds", tuple(self.fds))
        object.__setattr__(self, "contributions", _freeze_contributions(self.contributions))

    @classmethod
    def empty(cls, opening_balances: OpeningBalances | None = None) -> Dataset:
        return cls(opening_balances=opening_balances or OpeningBalances())

    def member(self, member_id: str) -> Member | None:
        for member in self.members:
            if member.id == member_id:
                return member
        return None

    def has_member(self, member_id: str) -> bool:
        return self.member(member_id) is not None

    def loan(self, loan_id: str) -> Loan | None:
        return next((loan for loan in self.loans if loan.id == loan_id), None)

    def fd(self, fd_id: str) -> FixedDeposit | None:
        return next((fd for fd in self.fds if fd.id == fd_id), None)

    def contribution(self, member_id: str, month_index: int) -> ContributionRecord | None:
        return self.contributions.get(member_id, {}).get(month_index)

    def iter_contributions(self) -> Iterator[tuple[str, int, ContributionRecord]]:
        """Every recorded (member_id, month_index, record) triple."""
        for member_id, months in self.contributions.items():
            for month_index, record in months.items():
                yield member_id, month_index, record

    def with_changes(self, **changes) -> Dataset:
        return replace(self, **changes)

    def contributions_as_dict(self) -> dict[str, dict[int, ContributionRecord]]:
        """Mutable copy of the contribution map, for building an edited Dataset."""
        return {member_id: dict(months) for member_id, months in self.contributions.items()}
