"""
Financial year -- labels, month slots and contribution due dates.

Responsibility:
    A financial year runs from September 1 of its start year through
    August 31 of its end year and is labelled ``"<start>-<end>"``.  Its
    twelve contribution slots are, in order: Sep, Oct, Nov, Dec, Jan, Feb,
    Mar, Apr, May, Jun, Jul, Aug (month indices 0..11).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - ``end_year == start_year + 1`` for every parsed label.
    - Month index 0..3 resolves to the start year, 4..11 to the end year.

Failure modes:
    - InvalidFinancialYearLabelError for a malformed label.
    - InvalidMonthIndexError for a month index outside 0..11.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

from coop_kernel.exceptions import (
    InvalidFinancialYearLabelError,
    InvalidMonthIndexError,
)

MONTHS: tuple[str, ...] = (
    "Sep", "Oct", "Nov", "Dec", "Jan", "Feb",
    "Mar", "Apr", "May", "Jun", "Jul", "Aug",
)

FIRST_MONTH = 9  # September
DEFAULT_DUE_DAY = 16

_LABEL_RE = re.compile(r"^(\d{4})-(\d{4})$")


def check_month_index(month_index: int) -> int:
    if isinstance(month_index, bool) or not isinstance(month_index, int):
        raise InvalidMonthIndexError(month_index)
    if not 0 <= month_index < len(MONTHS):
        raise InvalidMonthIndexError(month_index)
    return month_index


@dataclass(frozen=True, order=True)
class FinancialYear:
    """
    A September-to-August accounting year.

    Contract:
        Frozen and ordered by start year, so sorting instances sorts
        chronologically.
    Guarantees:
        - ``start`` is Sep 1 of ``start_year``; ``end`` is Aug 31 of
          ``end_year``.
    """

    start_year: int

    @classmethod
    def parse(cls, label: str) -> FinancialYear:
        """Parse ``"2024-2025"``; the second year must follow the first."""
        match = _LABEL_RE.match(label.strip()) if isinstance(label, str) else None
        if match is None:
            raise InvalidFinancialYearLabelError(label)
        start, end = int(match.group(1)), int(match.group(2))
        if end != start + 1:
            raise InvalidFinancialYearLabelError(label)
        return cls(start)

    @classmethod
    def for_date(cls, day: date) -> FinancialYear:
        """The financial year containing ``day``."""
        if day.month >= FIRST_MONTH:
            return cls(day.year)
        return cls(day.year - 1)

    @property
    def end_year(self) -> int:
        return self.start_year + 1

    @property
    def label(self) -> str:
        return f"{self.start_year}-{self.end_year}"

    @property
    def start(self) -> date:
        return date(self.start_year, FIRST_MONTH, 1)

    @property
    def end(self) -> date:
        return date(self.end_year, 8, 31)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def next(self) -> FinancialYear:
        return FinancialYear(self.start_year + 1)

    def previous(self) -> FinancialYear:
        return FinancialYear(self.start_year - 1)

    def month_slot(self, month_index: int) -> tuple[int, int]:
        """Calendar (year, month) for a slot index."""
        check_month_index(month_index)
        if month_index <= 3:
            return self.start_year, FIRST_MONTH + month_index
        return self.end_year, month_index - 3

    def month_name(self, month_index: int) -> str:
        return MONTHS[check_month_index(month_index)]

    def due_date(self, month_index: int, due_day: int = DEFAULT_DUE_DAY) -> date:
        """Contribution for ``month_index`` is due on ``due_day`` of its month."""
        year, month = self.month_slot(month_index)
        return date(year, month, due_day)

    def __str__(self) -> str:
        return self.label


def due_date(month_index: int, label: str, due_day: int = DEFAULT_DUE_DAY) -> date:
    """
    Due date of the contribution for ``month_index`` in financial year ``label``.

    Indices 0-3 are Sep-Dec of the start year; 4-11 are Jan-Aug of the
    end year.  Payment on this date or later is late.
    """
    return FinancialYear.parse(label).due_date(month_index, due_day)


def sort_labels(labels) -> list[str]:
    """Year labels newest first."""
    years = sorted((FinancialYear.parse(label) for label in labels), reverse=True)
    return [fy.label for fy in years]
