"""
tests/test_refresh_planner.py

Pytest unit tests for the incremental refresh policy and dataset builder.
"""

from __future__ import annotations

import pytest

from app.schemas.dashboard_dataset import DashboardDataset
from app.services.month_windows import month_window
from app.services.refresh_planner import (
    DatasetBuilder,
    RefreshDecision,
    cached_month,
    plan_refresh,
)


def _dataset(*keys: str) -> DashboardDataset:
    return DashboardDataset(
        last_updated="2024-12-01T00:00:00+00:00",
        months=list(keys),
        locations=["A"],
        data={key: {"A": {"cac": 10.0, "ltv": None}} for key in keys},
        totals={key: {"cac": 10.0, "ltv": None} for key in keys},
    )


def _windows(first_month: int, last_month: int):
    return [month_window(2024, m) for m in range(first_month, last_month + 1)]


def _decisions(plan) -> dict[str, RefreshDecision]:
    return {p.window.key: p.decision for p in plan}


class TestPlanRefresh:
    def test_baseline_m1_to_m10_with_windows_m2_to_m11(self) -> None:
        baseline = _dataset(*(f"2024-{m:02d}" for m in range(1, 11)))
        decisions = _decisions(plan_refresh(baseline, _windows(2, 11)))

        for m in range(2, 10):
            assert decisions[f"2024-{m:02d}"] is RefreshDecision.REUSE
        assert decisions["2024-10"] is RefreshDecision.RECOMPUTE
        assert decisions["2024-11"] is RefreshDecision.RECOMPUTE

    def test_oldest_window_recomputed_when_missing_from_baseline(self) -> None:
        baseline = _dataset(*(f"2024-{m:02d}" for m in range(3, 11)))
        decisions = _decisions(plan_refresh(baseline, _windows(2, 11)))
        assert decisions["2024-02"] is RefreshDecision.RECOMPUTE
        assert decisions["2024-03"] is RefreshDecision.REUSE

    def test_gap_in_baseline_is_recomputed(self) -> None:
        baseline = _dataset("2024-01", "2024-03")
        decisions = _decisions(plan_refresh(baseline, _windows(1, 6)))
        assert decisions["2024-01"] is RefreshDecision.REUSE
        assert decisions["2024-02"] is RefreshDecision.RECOMPUTE
        assert decisions["2024-03"] is RefreshDecision.REUSE
        assert decisions["2024-04"] is RefreshDecision.RECOMPUTE

    def test_two_most_recent_recomputed_even_when_cached(self) -> None:
        baseline = _dataset("2024-05", "2024-06")
        decisions = _decisions(plan_refresh(baseline, _windows(5, 6)))
        assert set(decisions.values()) == {RefreshDecision.RECOMPUTE}

    def test_no_baseline_recomputes_everything(self) -> None:
        plan = plan_refresh(None, _windows(1, 12))
        assert [p.decision for p in plan] == [RefreshDecision.RECOMPUTE] * 12

    def test_plan_preserves_window_order(self) -> None:
        windows = _windows(1, 6)
        plan = plan_refresh(_dataset("2024-01"), windows)
        assert [p.window for p in plan] == windows


class TestCachedMonth:
    def test_returns_copy_of_previous_records(self) -> None:
        baseline = _dataset("2024-01")
        cached = cached_month(baseline, "2024-01")
        assert cached is not None
        assert cached.data == {"A": {"cac": 10.0, "ltv": None}}
        assert cached.totals == {"cac": 10.0, "ltv": None}

        cached.data["A"]["cac"] = 999.0
        assert baseline.data["2024-01"]["A"]["cac"] == 10.0

    def test_missing_month_returns_none(self) -> None:
        assert cached_month(_dataset("2024-01"), "2024-02") is None
        assert cached_month(None, "2024-01") is None


class TestDatasetBuilder:
    def test_build_contains_only_added_months_in_order(self) -> None:
        builder = DatasetBuilder(["A", "B"])
        builder.add_month("2024-02", {"A": {"cac": 1.0}}, {"cac": 1.0})
        builder.add_month("2024-03", {"A": {"cac": 2.0}}, {"cac": 2.0})

        dataset = builder.build("2024-04-01T00:00:00+00:00")

        assert dataset.months == ["2024-02", "2024-03"]
        assert dataset.locations == ["A", "B"]
        assert set(dataset.data) == {"2024-02", "2024-03"}
        assert dataset.last_updated == "2024-04-01T00:00:00+00:00"

    def test_rejects_duplicate_month(self) -> None:
        builder = DatasetBuilder(["A"])
        builder.add_month("2024-02", {}, {})
        with pytest.raises(ValueError):
            builder.add_month("2024-02", {}, {})

    def test_add_cached_copies_previous_month(self) -> None:
        builder = DatasetBuilder(["A"])
        builder.add_cached("2024-01", cached_month(_dataset("2024-01"), "2024-01"))
        dataset = builder.build("now")
        assert dataset.totals["2024-01"] == {"cac": 10.0, "ltv": None}
