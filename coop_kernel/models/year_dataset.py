"""
YearDataset -- one stored financial year.

Responsibility:
    Persists a year's Dataset as an opaque JSON document keyed by its
    financial-year label.  Members, loans, deposits and contributions have
    no tables of their own; they only exist inside the document.

Architecture position:
    Kernel > Models.  Imports only from coop_kernel.db.base.
"""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from coop_kernel.db.base import TimestampedBase


class YearDataset(TimestampedBase):
    """A financial year's dataset document."""

    __tablename__ = "coop_year_datasets"

    label: Mapped[str] = mapped_column(String(9), primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<YearDataset {self.label}>"
