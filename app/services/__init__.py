"""
app/services package marker.
"""

from app.services.month_windows import month_window, month_windows
from app.services.pull_orchestrator import PullOrchestrator, build_pull_orchestrator
from app.services.refresh_planner import (
    DatasetBuilder,
    RefreshDecision,
    cached_month,
    plan_refresh,
)

__all__ = [
    "DatasetBuilder",
    "PullOrchestrator",
    "RefreshDecision",
    "build_pull_orchestrator",
    "cached_month",
    "month_window",
    "month_windows",
    "plan_refresh",
]
