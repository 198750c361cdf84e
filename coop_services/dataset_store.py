"""
Dataset stores -- load / save a year's Dataset by its label.

Responsibility:
    The persistence boundary.  A store keeps one Dataset per financial-year
    label as an opaque JSON document (see ``coop_kernel.domain.codec``) and
    hands out freshly decoded snapshots on every ``load``, so a caller
    computing over a loaded Dataset can never observe another caller's
    edits.

Architecture position:
    Services -- the only layer that holds database sessions.

Invariants enforced:
    - ``load`` never returns a shared object: each call decodes anew.
    - A failed ``save`` leaves the previously stored document intact
      (the SQL store writes inside one transaction).

Failure modes:
    - DatasetNotFoundError when no document is stored for the label.
    - DatasetWriteError when the database rejects the write.
    - InvalidDatasetFormatError when a stored document is corrupt.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from coop_kernel.db.engine import session_scope
from coop_kernel.domain.codec import export_dataset, import_dataset
from coop_kernel.domain.financial_year import FinancialYear
from coop_kernel.domain.records import Dataset
from coop_kernel.exceptions import DatasetNotFoundError, DatasetWriteError
from coop_kernel.logging_config import get_logger
from coop_kernel.models.year_dataset import YearDataset

logger = get_logger("services.dataset_store")


@runtime_checkable
class DatasetStore(Protocol):
    """Persistence contract for yearly datasets."""

    def load(self, label: str) -> Dataset:
        """Return the stored Dataset; raise DatasetNotFoundError if absent."""
        ...

    def save(self, label: str, dataset: Dataset) -> None:
        """Store ``dataset`` under ``label``, replacing any previous one."""
        ...

    def labels(self) -> frozenset[str]:
        """Every label that has a stored Dataset."""
        ...


class InMemoryDatasetStore:
    """
    Dict-backed store.

    Documents are kept encoded, so loads return independent copies just
    like the SQL store.
    """

    def __init__(self) -> None:
        self._documents: dict[str, str] = {}

    def load(self, label: str) -> Dataset:
        try:
            document = self._documents[label]
        except KeyError:
            raise DatasetNotFoundError(label) from None
        return import_dataset(document)

    def save(self, label: str, dataset: Dataset) -> None:
        FinancialYear.parse(label)
        self._documents[label] = export_dataset(dataset)
        logger.debug("dataset_saved", extra={"financial_year": label, "backend": "memory"})

    def labels(self) -> frozenset[str]:
        return frozenset(self._documents)


class SqlDatasetStore:
    """
    SQLAlchemy-backed store: one ``coop_year_datasets`` row per year.

    Each operation runs in its own ``session_scope`` transaction.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def load(self, label: str) -> Dataset:
        with session_scope(self._session_factory) as session:
            row = session.get(YearDataset, label)
            document = None if row is None else row.payload
        if document is None:
            raise DatasetNotFoundError(label)
        return import_dataset(document)

    def save(self, label: str, dataset: Dataset) -> None:
        FinancialYear.parse(label)
        document = export_dataset(dataset)
        try:
            with session_scope(self._session_factory) as session:
                row = session.get(YearDataset, label)
                if row is None:
                    session.add(YearDataset(label=label, payload=document))
                else:
                    row.payload = document
        except SQLAlchemyError as e:
            logger.error("dataset_save_failed", extra={"financial_year": label}, exc_info=True)
            raise DatasetWriteError(label, type(e).__name__) from e
        logger.debug("dataset_saved", extra={"financial_year": label, "backend": "sql"})

    def labels(self) -> frozenset[str]:
        with session_scope(self._session_factory) as session:
            return frozenset(session.scalars(select(YearDataset.label)).all())
