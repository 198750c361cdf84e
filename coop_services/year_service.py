"""
FinancialYearService -- orchestrates the yearly datasets of one cooperative.

Responsibility:
    Tracks which financial year is current, loads and saves year datasets
    through a DatasetStore, applies record edits to the current year,
    opens new years via the rollover engine and serves computed summaries.

Architecture position:
    Services -- stateful orchestration over coop_engines + coop_kernel.
    The only place that reads the clock (to pick the default year when
    nothing is stored yet).

Invariants enforced:
    - A year label is never overwritten by ``create_year``.
    - A new year is seeded from a freshly loaded snapshot of the previous
      year, never from an in-flight object.
    - An edit that raises leaves the stored dataset unchanged: the edit
      function builds a new Dataset and only a successful result is saved.

Failure modes:
    - FinancialYearExistsError when the requested new year is already
      stored.
    - SourceYearMissingError when the rollover source year is not stored.
    - InvalidDatasetFormatError from ``restore_current`` (the current year
      is left untouched).
    - Any CoopLedgerError raised by an edit function passes through.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import date
from typing import Any

from coop_engines.accrual import (
    FinancialSummary,
    MemberShare,
    compute_financials,
    member_shares,
    top_contributors,
)
from coop_engines.rollover import RolloverResult, rollover_with_summary
from coop_kernel.domain.clock import Clock, SystemClock
from coop_kernel.domain.codec import export_dataset, import_dataset
from coop_kernel.domain.editing import record_contribution
from coop_kernel.domain.financial_year import FinancialYear, sort_labels
from coop_kernel.domain.policy import DEFAULT_POLICY, RatePolicy
from coop_kernel.domain.records import Dataset
from coop_kernel.exceptions import (
    DatasetNotFoundError,
    FinancialYearExistsError,
    SourceYearMissingError,
)
from coop_kernel.logging_config import LogContext, get_logger
from coop_services.dataset_store import DatasetStore

logger = get_logger("services.year_service")


def generate_id(prefix: str) -> str:
    """New record id such as ``loan-3f2a9c1b7d4e``."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class FinancialYearService:
    """
    Current-year bookkeeping over a DatasetStore.

    Contract:
        Receives its store, rate policy and clock by injection.  Call
        ``bootstrap()`` once before using ``current_label``.

    Non-goals:
        - Does NOT cache datasets; every read goes through the store.
        - Does NOT decide ids for callers beyond ``generate_id``.
    """

    def __init__(
        self,
        store: DatasetStore,
        policy: RatePolicy = DEFAULT_POLICY,
        clock: Clock | None = None,
    ):
        self._store = store
        self._policy = policy
        self._clock = clock or SystemClock()
        self._current: str | None = None

    @property
    def policy(self) -> RatePolicy:
        return self._policy

    @property
    def current_label(self) -> str:
        if self._current is None:
            raise RuntimeError("No financial year selected. Call bootstrap() first.")
        return self._current

    # ------------------------------------------------------------------
    # Year management
    # ------------------------------------------------------------------

    def labels(self) -> list[str]:
        """Stored year labels, newest first."""
        return sort_labels(self._store.labels())

    def bootstrap(self) -> list[str]:
        """
        Make sure at least one year exists and one is current.

        With an empty store, an empty dataset is created for the financial
        year containing today.  The newest stored year becomes current
        unless a year was already selected.
        """
        labels = self.labels()
        if not labels:
            label = FinancialYear.for_date(self._clock.today()).label
            self._store.save(label, Dataset.empty())
            logger.info("financial_year_initialized", extra={"financial_year": label})
            labels = [label]
        if self._current is None:
            self._current = labels[0]
        return labels

    def select(self, label: str) -> Dataset:
        """Make ``label`` current, creating an empty year if none is stored."""
        FinancialYear.parse(label)
        try:
            dataset = self._store.load(label)
        except DatasetNotFoundError:
            dataset = Dataset.empty()
            self._store.save(label, dataset)
            logger.info("financial_year_initialized", extra={"financial_year": label})
        self._current = label
        return dataset

    def next_label(self) -> str:
        """Label following the newest stored year."""
        labels = self.labels()
        if not labels:
            return FinancialYear.for_date(self._clock.today()).label
        return FinancialYear.parse(labels[0]).next().label

    def create_year(self, new_label: str, previous_label: str | None = None) -> RolloverResult:
        """
        Open ``new_label`` seeded from ``previous_label`` (default: newest year).

        The new year becomes current.
        """
        FinancialYear.parse(new_label)
        labels = self.labels()
        if new_label in labels:
            raise FinancialYearExistsError(new_label)
        if previous_label is None:
            if not labels:
                raise SourceYearMissingError(FinancialYear.parse(new_label).previous().label, new_label)
            previous_label = labels[0]

        try:
            previous = self._store.load(previous_label)
        except DatasetNotFoundError as e:
            raise SourceYearMissingError(previous_label, new_label) from e

        with LogContext.bind(financial_year=new_label):
            result = rollover_with_summary(previous_label, new_label, previous, self._policy)
            self._store.save(new_label, result.dataset)
            logger.info("financial_year_created", extra={
                "previous_year": previous_label,
                "new_year": new_label,
            })
        self._current = new_label
        return result

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def load(self, label: str | None = None) -> Dataset:
        """A fresh snapshot of ``label`` (default: the current year)."""
        return self._store.load(label or self.current_label)

    def summary(self, label: str | None = None) -> FinancialSummary:
        label = label or self.current_label
        with LogContext.bind(financial_year=label):
            return compute_financials(self._store.load(label), label, self._policy)

    def shares(self, label: str | None = None) -> tuple[MemberShare, ...]:
        """Per-member contribution percentage and profit share."""
        label = label or self.current_label
        dataset = self._store.load(label)
        return member_shares(dataset, compute_financials(dataset, label, self._policy))

    def top_contributors(self, label: str | None = None, limit: int = 10) -> tuple[MemberShare, ...]:
        return top_contributors(self.shares(label), limit)

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def apply(self, edit: Callable[..., Dataset], *args: Any, **kwargs: Any) -> Dataset:
        """
        Run ``edit(dataset, *args, **kwargs)`` on the current year and save it.

        ``edit`` is any function from ``coop_kernel.domain.editing``.
        """
        label = self.current_label
        with LogContext.bind(financial_year=label):
            updated = edit(self._store.load(label), *args, **kwargs)
            self._store.save(label, updated)
        return updated

    def log_contribution(
        self,
        member_id: str,
        month_index: int,
        payment_date: date,
        mode: str,
        remarks: str = "",
        forgive_late_fee: bool = False,
    ) -> Dataset:
        """Record a payment in the current year under the service's policy."""
        return self.apply(
            record_contribution,
            self.current_label,
            member_id,
            month_index,
            payment_date,
            mode,
            remarks=remarks,
            forgive_late_fee=forgive_late_fee,
            policy=self._policy,
        )

    # ------------------------------------------------------------------
    # Backup
    # ------------------------------------------------------------------

    def export(self, label: str | None = None) -> str:
        """Backup document for ``label`` (default: the current year).  Read-only."""
        return export_dataset(self._store.load(label or self.current_label))

    def export_current(self) -> str:
        return self.export()

    def restore(self, label: str, text: str) -> Dataset:
        """
        Replace (or create) year ``label`` from a backup document.

        The document is decoded before anything is stored, so a rejected
        backup leaves both the store and the current year as they were.
        The restored year becomes current.
        """
        FinancialYear.parse(label)
        dataset = import_dataset(text)
        self._store.save(label, dataset)
        self._current = label
        logger.info("dataset_restored", extra={"financial_year": label})
        return dataset

    def restore_current(self, text: str) -> Dataset:
        """Replace the current year with a backup document."""
        return self.restore(self.current_label, text)
