"""
app/services/month_windows.py

Calendar-month windows for a lookback period.
"""

from __future__ import annotations

import calendar
from datetime import date

from app.domain.pull import MonthWindow


def month_window(year: int, month: int) -> MonthWindow:
    """
    Build the window covering the whole of ``year``-``month``.
    """

    last_day = calendar.monthrange(year, month)[1]
    return MonthWindow(
        key=f"{year:04d}-{month:02d}",
        start=date(year, month, 1),
        end=date(year, month, last_day),
    )


def month_windows(months_back: int, today: date | None = None) -> list[MonthWindow]:
    """
    Return ``months_back`` complete months, oldest first.

    The most recent window is the month before ``today``'s month; the
    in-progress month is never included.
    """

    if months_back < 1:
        raise ValueError(f"months_back must be >= 1, got {months_back}")

    reference = today or date.today()
    # Months since year 0, counted from the reference month.
    anchor = reference.year * 12 + (reference.month - 1)

    windows: list[MonthWindow] = []
    for offset in range(months_back, 0, -1):
        year, month_index = divmod(anchor - offset, 12)
        windows.append(month_window(year, month_index + 1))
    return windows
