"""
Tests for FinancialYearService.

Covers:
- Bootstrapping an empty store from the clock
- Year selection and creation (rollover) preconditions
- Edits applied to the current year
- Backup export / restore
"""

from datetime import date
from decimal import Decimal

import pytest

from coop_engines.accrual import compute_financials
from coop_kernel.domain.clock import DeterministicClock
from coop_kernel.domain.codec import export_dataset
from coop_kernel.domain.editing import add_member, delete_loan, save_loan
from coop_kernel.domain.policy import RatePolicy
from coop_kernel.exceptions import (
    DatasetNotFoundError,
    FinancialYearExistsError,
    InvalidDatasetFormatError,
    MemberNotFoundError,
    SourceYearMissingError,
)
from coop_services.dataset_store import InMemoryDatasetStore, SqlDatasetStore
from coop_services.year_service import FinancialYearService, generate_id
from tests.conftest import FY, make_loan

NEXT_FY = "2025-2026"


@pytest.fixture
def store():
    return InMemoryDatasetStore()


@pytest.fixture
def service(store, clock):
    svc = FinancialYearService(store, clock=clock)
    svc.bootstrap()
    return svc


@pytest.fixture
def seeded_service(store, clock, populated_dataset):
    store.save(FY, populated_dataset)
    svc = FinancialYearService(store, clock=clock)
    svc.bootstrap()
    return svc


class TestBootstrap:
    """Tests for bootstrap."""

    def test_empty_store_gets_year_of_today(self, store, clock):
        svc = FinancialYearService(store, clock=clock)

        labels = svc.bootstrap()

        assert labels == ["2024-2025"]
        assert svc.current_label == "2024-2025"
        assert store.load("2024-2025").members == ()

    def test_year_follows_clock(self, store):
        clock = DeterministicClock(date(2025, 6, 30))

        assert FinancialYearService(store, clock=clock).bootstrap() == ["2024-2025"]

    def test_newest_year_becomes_current(self, store, clock, populated_dataset):
        store.save("2023-2024", populated_dataset)
        store.save("2025-2026", populated_dataset)
        svc = FinancialYearService(store, clock=clock)

        assert svc.bootstrap() == ["2025-2026", "2023-2024"]
        assert svc.current_label == "2025-2026"

    def test_current_label_requires_bootstrap(self, store):
        with pytest.raises(RuntimeError):
            FinancialYearService(store).current_label


class TestSelect:
    """Tests for select."""

    def test_select_existing(self, seeded_service, populated_dataset):
        assert seeded_service.select(FY) == populated_dataset

    def test_select_unknown_creates_empty(self, service, store):
        dataset = service.select("2030-2031")

        assert dataset.members == ()
        assert "2030-2031" in store.labels()
        assert service.current_label == "2030-2031"


class TestCreateYear:
    """Tests for create_year."""

    def test_rolls_over_from_newest(self, seeded_service, store, populated_dataset):
        result = seeded_service.create_year(NEXT_FY)

        closing = compute_financials(populated_dataset, FY)
        new = store.load(NEXT_FY)
        assert new.opening_balances.online == closing.online_balance
        assert new.opening_balances.offline == closing.offline_balance
        assert [loan.id for loan in new.loans] == ["l1"]
        assert result.previous_summary == closing
        assert seeded_service.current_label == NEXT_FY

    def test_existing_year_rejected(self, seeded_service):
        with pytest.raises(FinancialYearExistsError) as exc_info:
            seeded_service.create_year(FY)

        assert exc_info.value.code == "FINANCIAL_YEAR_EXISTS"

    def test_existing_year_not_overwritten(self, seeded_service, store, populated_dataset):
        seeded_service.create_year(NEXT_FY)

        with pytest.raises(FinancialYearExistsError):
            seeded_service.create_year(NEXT_FY, previous_label=FY)

        assert store.load(FY) == populated_dataset

    def test_missing_source_year(self, seeded_service):
        with pytest.raises(SourceYearMissingError) as exc_info:
            seeded_service.create_year("2031-2032", previous_label="2030-2031")

        assert exc_info.value.previous_label == "2030-2031"
        assert isinstance(exc_info.value.__cause__, DatasetNotFoundError)

    def test_uses_stored_snapshot_not_current_edits(self, seeded_service, store):
        """Rollover reads the previous year from the store."""
        seeded_service.apply(delete_loan, "l1")

        seeded_service.create_year(NEXT_FY)

        assert store.load(NEXT_FY).loans == ()

    def test_next_label(self, seeded_service):
        assert seeded_service.next_label() == NEXT_FY
        seeded_service.create_year(seeded_service.next_label())
        assert seeded_service.next_label() == "2026-2027"

    def test_rollover_chain_carries_balances(self, seeded_service, store):
        seeded_service.create_year(NEXT_FY)
        second = seeded_service.create_year("2026-2027")

        closing = compute_financials(store.load(NEXT_FY), NEXT_FY)
        assert second.dataset.opening_balances.online == closing.online_balance

    def test_logs_with_year_context(self, seeded_service, captured_logs):
        seeded_service.create_year(NEXT_FY)

        record = next(r for r in captured_logs() if r["message"] == "financial_year_created")
        assert record["financial_year"] == NEXT_FY
        assert record["previous_year"] == FY


class TestEdits:
    """Tests for apply and log_contribution."""

    def test_apply_persists(self, service, store):
        service.apply(add_member, "m1", "Asha", "1000")

        assert store.load(service.current_label).member("m1").name == "Asha"

    def test_failed_edit_leaves_store_unchanged(self, seeded_service, store, populated_dataset):
        with pytest.raises(MemberNotFoundError):
            seeded_service.apply(save_loan, make_loan("l9", member_id="nobody"))

        assert store.load(FY) == populated_dataset

    def test_log_contribution_uses_policy(self, store, clock):
        svc = FinancialYearService(store, policy=RatePolicy(late_fee_rate=Decimal("0.1")), clock=clock)
        svc.bootstrap()
        svc.apply(add_member, "m1", "Asha", "1000")

        dataset = svc.log_contribution("m1", 0, date(2024, 9, 16), "Offline")

        assert dataset.contribution("m1", 0).late_fee == Decimal("100")
        assert svc.summary().late_fees == Decimal("100")


class TestReads:
    """Tests for summary and shares."""

    def test_summary_of_current_year(self, seeded_service, populated_dataset):
        assert seeded_service.summary() == compute_financials(populated_dataset, FY)

    def test_summary_of_missing_year(self, seeded_service):
        with pytest.raises(DatasetNotFoundError):
            seeded_service.summary("2019-2020")

    def test_shares_and_top(self, seeded_service):
        shares = seeded_service.shares()

        assert [s.member_id for s in shares] == ["m1", "m2"]
        assert seeded_service.top_contributors(limit=1)[0].member_id == "m1"


class TestBackup:
    """Tests for export and restore, by label and for the current year."""

    def test_export_matches_codec(self, seeded_service, populated_dataset):
        assert seeded_service.export_current() == export_dataset(populated_dataset)

    def test_restore_replaces_current_year(self, service, store, populated_dataset):
        service.restore_current(export_dataset(populated_dataset))

        assert store.load(service.current_label) == populated_dataset

    def test_bad_restore_leaves_year_intact(self, seeded_service, store, populated_dataset):
        with pytest.raises(InvalidDatasetFormatError):
            seeded_service.restore_current('{"members": []}')

        assert store.load(FY) == populated_dataset

    def test_restore_into_new_year(self, seeded_service, store, populated_dataset):
        seeded_service.restore("2030-2031", export_dataset(populated_dataset))

        assert seeded_service.current_label == "2030-2031"
        assert store.load("2030-2031") == populated_dataset

    def test_rejected_restore_creates_no_year(self, seeded_service, store):
        with pytest.raises(InvalidDatasetFormatError):
            seeded_service.restore("2030-2031", '{"members": []}')

        assert "2030-2031" not in store.labels()
        assert seeded_service.current_label == FY

    def test_export_does_not_create_year(self, seeded_service, store):
        with pytest.raises(DatasetNotFoundError):
            seeded_service.export("2031-2032")

        assert "2031-2032" not in store.labels()


class TestSqlBackedService:
    """The service over the SQL store."""

    def test_full_cycle(self, session_factory, clock, populated_dataset):
        store = SqlDatasetStore(session_factory)
        svc = FinancialYearService(store, clock=clock)
        svc.bootstrap()
        svc.restore_current(export_dataset(populated_dataset))

        svc.create_year(NEXT_FY)

        assert svc.labels() == [NEXT_FY, FY]
        assert svc.summary().total_contributions == Decimal("0")


def test_generate_id():
    first = generate_id("loan")

    assert first.startswith("loan-")
    assert first != generate_id("loan")
