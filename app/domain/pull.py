"""
app/domain/pull.py

Domain models for the monthly KPI pull.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum


@dataclass(frozen=True)
class MonthWindow:
    """
    One calendar month used as the filter boundary for a pull.

    ``key`` (``YYYY-MM``) identifies the month for caching and merging.
    """

    key: str
    start: date
    end: date


class MonthOutcome(str, Enum):
    """
    How a month ended up in (or out of) the output dataset.
    """

    COMPUTED = "computed"
    CACHED = "cached"
    STALE_FALLBACK = "stale_fallback"
    DROPPED = "dropped"


@dataclass(frozen=True)
class MonthPullSummary:
    """
    Outcome of one month of a pull run.
    """

    month: str
    outcome: MonthOutcome
    error: str | None = None


@dataclass(frozen=True)
class PullRunSummary:
    """
    End-of-run summary for a pull.
    """

    output_path: str
    last_updated: str
    months: list[MonthPullSummary] = field(default_factory=list)

    @property
    def dropped_months(self) -> list[str]:
        return [m.month for m in self.months if m.outcome is MonthOutcome.DROPPED]
