"""
app/services/refresh_planner.py

Incremental refresh policy for the dashboard dataset.

Policy
------
- The two most recent windows are always recomputed: late ledger postings
  and in-flight CRM records can still change them.
- Every older window is reused when the previous dataset already holds a
  record for its month key, and recomputed otherwise.
- A failed recompute falls back to the previous record when one exists;
  otherwise the month is omitted from the new dataset.

The new dataset replaces the previous one in full. Months outside the
current windows are dropped.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from app.domain.pull import MonthWindow
from app.schemas.dashboard_dataset import DashboardDataset, KPIValues

ALWAYS_RECOMPUTE_COUNT = 2


class RefreshDecision(str, Enum):
    REUSE = "reuse"
    RECOMPUTE = "recompute"


@dataclass(frozen=True)
class PlannedWindow:
    window: MonthWindow
    decision: RefreshDecision


@dataclass(frozen=True)
class CachedMonth:
    """
    A month's records copied from the previous dataset.
    """

    data: dict[str, KPIValues]
    totals: KPIValues


def plan_refresh(
    existing: DashboardDataset | None,
    windows: Sequence[MonthWindow],
    *,
    always_recompute: int = ALWAYS_RECOMPUTE_COUNT,
) -> list[PlannedWindow]:
    """
    Decide per window whether to reuse the cached month or recompute it.
    """

    recent_from = max(0, len(windows) - always_recompute)
    plan: list[PlannedWindow] = []
    for index, window in enumerate(windows):
        cached = existing is not None and existing.has_month(window.key)
        if index < recent_from and cached:
            decision = RefreshDecision.REUSE
        else:
            decision = RefreshDecision.RECOMPUTE
        plan.append(PlannedWindow(window=window, decision=decision))
    return plan


def cached_month(existing: DashboardDataset | None, key: str) -> CachedMonth | None:
    """
    Return a copy of the previous records for ``key``, if any.
    """

    if existing is None or not existing.has_month(key):
        return None
    return CachedMonth(
        data=copy.deepcopy(existing.data[key]),
        totals=copy.deepcopy(existing.totals.get(key, {})),
    )


class DatasetBuilder:
    """
    Accumulates months, in window order, into a new dashboard dataset.
    """

    def __init__(self, locations: Sequence[str]) -> None:
        self._locations = list(locations)
        self._months: list[str] = []
        self._data: dict[str, dict[str, KPIValues]] = {}
        self._totals: dict[str, KPIValues] = {}

    def add_month(self, key: str, data: dict[str, KPIValues], totals: KPIValues) -> None:
        if key in self._data:
            raise ValueError(f"month {key} already added")
        self._months.append(key)
        self._data[key] = data
        self._totals[key] = totals

    def add_cached(self, key: str, cached: CachedMonth) -> None:
        self.add_month(key, cached.data, cached.totals)

    @property
    def months(self) -> list[str]:
        return list(self._months)

    def build(self, last_updated: str) -> DashboardDataset:
        return DashboardDataset(
            last_updated=last_updated,
            months=list(self._months),
            locations=list(self._locations),
            data=dict(self._data),
            totals=dict(self._totals),
        )
