"""
app/schemas/dashboard_dataset.py

Persisted dashboard dataset contract.

The JSON file keeps camelCase keys (``lastUpdated``) for the dashboard
front end; Python code uses snake_case attribute names.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

KPIValues = dict[str, float | int | None]


class DashboardDataset(BaseModel):
    """
    Per-location, per-month KPI table written at the end of every pull.
    """

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
    )

    last_updated: str | None = Field(default=None, alias="lastUpdated")
    months: list[str] = Field(default_factory=list)
    locations: list[str] = Field(default_factory=list)
    data: dict[str, dict[str, KPIValues]] = Field(default_factory=dict)
    totals: dict[str, KPIValues] = Field(default_factory=dict)

    def has_month(self, key: str) -> bool:
        return key in self.data

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True)
