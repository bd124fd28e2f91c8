"""
app/domain package marker.
"""

from app.domain.pull import MonthOutcome, MonthPullSummary, MonthWindow, PullRunSummary

__all__ = [
    "MonthOutcome",
    "MonthPullSummary",
    "MonthWindow",
    "PullRunSummary",
]
