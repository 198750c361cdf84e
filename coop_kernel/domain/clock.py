"""
Injectable source of "today".

The ledger only needs the calendar date, and only in one place: choosing
the financial year to open when the store is empty.  Services take a
``Clock`` so tests can pin that date.
"""

from abc import ABC, abstractmethod
from datetime import date, timedelta


class Clock(ABC):
    @abstractmethod
    def today(self) -> date: ...


class SystemClock(Clock):
    """The host's local calendar date."""

    def today(self) -> date:
        return date.today()


class DeterministicClock(Clock):
    """A clock that stays on ``fixed_date`` until moved by the test."""

    def __init__(self, fixed_date: date = date(2024, 10, 1)):
        self._today = fixed_date

    def today(self) -> date:
        return self._today

    def set_date(self, new_date: date) -> None:
        self._today = new_date

    def advance(self, days: int = 1) -> None:
        self._today += timedelta(days=days)
