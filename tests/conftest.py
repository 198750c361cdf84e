"""
Pytest fixtures for the cooperative ledger test suite.

Provides:
- Structured-logging fixtures (captured JSON log records)
- Dataset builders for members, loans, fixed deposits and contributions
- An in-memory SQLite session factory for store tests
- A deterministic clock
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from coop_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from coop_kernel.domain.clock import DeterministicClock
from coop_kernel.domain.records import (
    Active,
    Closed,
    ContributionRecord,
    Dataset,
    FixedDeposit,
    Loan,
    Member,
    OpeningBalances,
)
from coop_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

FY = "2024-2025"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _json_logging():
    """Route coop_kernel logs through the JSON formatter for the whole run."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _fresh_log_context():
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Returns a callable giving every coop_kernel record logged since the
    fixture started, each parsed from its JSON line::

        compute_financials(dataset, FY)
        events = [r["message"] for r in captured_logs()]
    """
    buffer = StringIO()
    capture = logging.StreamHandler(buffer)
    capture.setFormatter(StructuredFormatter())
    tree = logging.getLogger("coop_kernel")
    saved_level = tree.level
    tree.setLevel(logging.DEBUG)
    tree.addHandler(capture)

    yield lambda: [json.loads(raw) for raw in buffer.getvalue().splitlines() if raw]

    tree.removeHandler(capture)
    tree.setLevel(saved_level)


# =============================================================================
# Builders
# =============================================================================


def make_member(member_id="m1", name="Asha", monthly="1000"):
    return Member(id=member_id, name=name, monthly_contribution=Decimal(monthly))


def make_loan(
    loan_id="l1",
    member_id="m1",
    amount="10000",
    issue_date=date(2024, 9, 5),
    disbursement_mode="Google Pay",
    close_date=None,
    repayment_mode="Google Pay",
):
    status = Active() if close_date is None else Closed(close_date, repayment_mode)
    return Loan(
        id=loan_id,
        member_id=member_id,
        amount=Decimal(amount),
        issue_date=issue_date,
        disbursement_mode=disbursement_mode,
        status=status,
    )


def make_fd(
    fd_id="f1",
    member_id="m1",
    amount="20000",
    start_date=date(2024, 9, 1),
    investment_mode="Offline",
    close_date=None,
    payout_mode="Offline",
):
    status = Active() if close_date is None else Closed(close_date, payout_mode)
    return FixedDeposit(
        id=fd_id,
        member_id=member_id,
        amount=Decimal(amount),
        start_date=start_date,
        investment_mode=investment_mode,
        status=status,
    )


def make_contribution(day=date(2024, 9, 10), mode="Google Pay", late_fee="0", forgiven=False):
    return ContributionRecord(
        date=day,
        mode=mode,
        late_fee=Decimal(late_fee),
        late_fee_forgiven=forgiven,
    )


def make_dataset(members=(), loans=(), fds=(), contributions=None, online="0", offline="0"):
    return Dataset(
        members=members,
        loans=loans,
        fds=fds,
        contributions=contributions or {},
        opening_balances=OpeningBalances(Decimal(online), Decimal(offline)),
    )


@pytest.fixture
def member():
    return make_member()


@pytest.fixture
def populated_dataset():
    """
    Two members, one closed and one active loan, one active deposit and
    a mix of on-time, late and offline payments.
    """
    return make_dataset(
        members=(make_member("m1", "Asha", "1000"), make_member("m2", "Ravi", "500")),
        loans=(
            make_loan("l1", "m1", "10000", date(2024, 9, 5)),
            make_loan(
                "l2", "m2", "5000", date(2024, 10, 1),
                close_date=date(2025, 1, 1), repayment_mode="Offline",
            ),
        ),
        fds=(make_fd("f1", "m2", "20000", date(2024, 9, 1)),),
        contributions={
            "m1": {
                0: make_contribution(date(2024, 9, 10)),
                1: make_contribution(date(2024, 10, 20), late_fee="50"),
            },
            "m2": {0: make_contribution(date(2024, 9, 12), mode="Offline")},
        },
        online="5000",
        offline="1000",
    )


# =============================================================================
# Infrastructure
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock(date(2024, 10, 1))


@pytest.fixture
def session_factory():
    """Session factory over a fresh in-memory SQLite database."""
    engine = init_engine_from_url("sqlite:///:memory:")
    create_tables(engine)
    yield get_session_factory()
    reset_engine()
