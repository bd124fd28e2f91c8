"""
app/schemas package marker.
"""

from app.schemas.dashboard_dataset import DashboardDataset

__all__ = [
    "DashboardDataset",
]
