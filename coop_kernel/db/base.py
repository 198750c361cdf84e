"""
Module: coop_kernel.db.base
Responsibility: Declarative base for the SQLAlchemy ORM models that back the
    persistent dataset store.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel DB layer.  MUST NOT import from models/, domain/ or
    outer layers.

Invariants enforced:
    - Timestamps are timezone-aware.
    - Money never gets a column: amounts live inside the JSON payload as
      decimal strings, so no float or Numeric rounding can touch them.
"""

from datetime import datetime
from typing import ClassVar

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - datetime maps to DateTime(timezone=True).
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
    }


class TimestampedBase(Base):
    """
    Abstract base recording when a row was created and last written.

    Guarantees:
        - created_at is set on INSERT and never changes.
        - updated_at is set on INSERT and refreshed on every UPDATE.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
