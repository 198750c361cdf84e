"""
Tests for the dataset stores.

Both implementations must behave identically, so most tests run against
each of them.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select

from coop_kernel.db.engine import drop_tables, get_engine, session_scope
from coop_kernel.domain.editing import add_member
from coop_kernel.exceptions import (
    DatasetNotFoundError,
    DatasetWriteError,
    InvalidFinancialYearLabelError,
)
from coop_kernel.models.year_dataset import YearDataset
from coop_services.dataset_store import DatasetStore, InMemoryDatasetStore, SqlDatasetStore
from tests.conftest import FY, make_dataset, make_member


@pytest.fixture(params=["memory", "sql"])
def store(request):
    if request.param == "memory":
        return InMemoryDatasetStore()
    return SqlDatasetStore(request.getfixturevalue("session_factory"))


class TestDatasetStore:
    """Behaviour shared by every store."""

    def test_satisfies_protocol(self, store):
        assert isinstance(store, DatasetStore)

    def test_save_then_load(self, store, populated_dataset):
        store.save(FY, populated_dataset)

        assert store.load(FY) == populated_dataset

    def test_load_missing(self, store):
        with pytest.raises(DatasetNotFoundError) as exc_info:
            store.load(FY)

        assert exc_info.value.code == "DATASET_NOT_FOUND"

    def test_labels(self, store, populated_dataset):
        store.save("2024-2025", populated_dataset)
        store.save("2023-2024", populated_dataset)

        assert store.labels() == frozenset({"2024-2025", "2023-2024"})

    def test_save_overwrites(self, store, populated_dataset):
        store.save(FY, populated_dataset)
        store.save(FY, populated_dataset.with_changes(members=()))

        assert store.load(FY).members == ()
        assert store.labels() == frozenset({FY})

    def test_loads_are_independent_snapshots(self, store, populated_dataset):
        store.save(FY, populated_dataset)

        first = store.load(FY)
        add_member(first, "m3", "Neha", "200")

        assert store.load(FY) == populated_dataset
        assert store.load(FY) is not first

    def test_rejects_bad_label(self, store, populated_dataset):
        with pytest.raises(InvalidFinancialYearLabelError):
            store.save("2024", populated_dataset)


class TestSqlDatasetStore:
    """SQL-specific behaviour."""

    def test_one_row_per_year(self, session_factory, populated_dataset):
        store = SqlDatasetStore(session_factory)
        store.save(FY, populated_dataset)
        store.save(FY, populated_dataset)

        with session_scope(session_factory) as session:
            rows = session.scalars(select(YearDataset)).all()
            assert [row.label for row in rows] == [FY]
            assert '"monthlyContribution": "1000"' in rows[0].payload

    def test_missing_year_is_not_a_failed_transaction(self, session_factory, captured_logs):
        store = SqlDatasetStore(session_factory)

        with pytest.raises(DatasetNotFoundError):
            store.load(FY)

        assert not any(r["message"] == "transaction_rolled_back" for r in captured_logs())

    def test_write_failure_is_wrapped(self, session_factory, populated_dataset, captured_logs):
        store = SqlDatasetStore(session_factory)
        drop_tables(get_engine())

        with pytest.raises(DatasetWriteError) as exc_info:
            store.save(FY, populated_dataset)

        assert exc_info.value.code == "DATASET_WRITE_FAILED"
        assert exc_info.value.label == FY
        assert any(r["message"] == "dataset_save_failed" for r in captured_logs())

    def test_amounts_survive_exactly(self, session_factory):
        store = SqlDatasetStore(session_factory)
        store.save(FY, make_dataset(members=(make_member("m1", monthly="1000.10"),)))

        assert store.load(FY).member("m1").monthly_contribution == Decimal("1000.10")
