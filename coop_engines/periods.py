"""
Module: coop_engines.periods
Responsibility:
    Accrual-month arithmetic shared by every interest calculation.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - ``months_between(d, d) == 1``: a same-day event is one full month.
    - ``months_between(a, b) == 0`` whenever ``b < a``.
    - Any partial month counts as a whole one (round up, minimum one).
      Short periods are deliberately overcounted in the cooperative's
      favour; the trailing ``+ 1`` is part of the rule.
    - Monotonically non-decreasing in ``end`` for a fixed ``start``.
"""

from __future__ import annotations

from datetime import date


def months_between(start: date | None, end: date | None) -> int:
    """
    Number of accrual months from ``start`` to ``end``.

    Computes the calendar-month difference, drops one month when the end
    day-of-month is before the start day-of-month, then adds one.

    Examples:
        months_between(date(2024, 9, 5), date(2024, 9, 5))  -> 1
        months_between(date(2024, 9, 5), date(2024, 9, 6))  -> 1
        months_between(date(2024, 9, 5), date(2024, 10, 5)) -> 2
        months_between(date(2024, 9, 5), date(2025, 8, 31)) -> 12
    """
    if start is None or end is None or end < start:
        return 0
    if start == end:
        return 1

    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return months + 1


def clip_to_window(
    opened_on: date,
    closed_on: date | None,
    window_start: date,
    window_end: date,
) -> tuple[date, date] | None:
    """
    Portion of an instrument's life inside a financial-year window.

    The period starts at the later of ``opened_on`` and ``window_start``
    and ends at ``closed_on`` when that falls before ``window_end``,
    otherwise at ``window_end``.  Returns None when the period is empty.
    """
    period_start = opened_on if opened_on > window_start else window_start
    period_end = closed_on if closed_on is not None and closed_on < window_end else window_end
    if period_end < period_start:
        return None
    return period_start, period_end
