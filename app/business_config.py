"""
app/business_config.py

Manually maintained business tables: location codes, CRM location names,
central marketing payroll and average member tenure.

The tables are loaded once from JSON and validated against the location
enumeration. Unknown location keys are rejected.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from kpi.marketing import CORP_LOCATION, KPIConfig

logger = logging.getLogger(__name__)


class BusinessConfigError(ValueError):
    """
    Raised when the business configuration file is missing or invalid.
    """


class BusinessConfig(BaseModel):
    """Immutable, validated business configuration."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        str_strip_whitespace=True,
    )

    locations: tuple[str, ...] = Field(min_length=1)
    hubspot_location_map: dict[str, str] = Field(default_factory=dict)
    marketing_payroll_total: float = Field(default=0.0, ge=0.0)
    avg_tenure_months: dict[str, float] = Field(default_factory=dict)

    @field_validator("locations")
    @classmethod
    def _unique_locations(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if any(not code for code in value):
            raise ValueError("location codes must be non-empty")
        duplicates = sorted({code for code in value if value.count(code) > 1})
        if duplicates:
            raise ValueError(f"duplicate location codes: {duplicates}")
        if CORP_LOCATION in value:
            raise ValueError(f"'{CORP_LOCATION}' is reserved for unallocated spend")
        return value

    @field_validator("avg_tenure_months")
    @classmethod
    def _non_negative_tenure(cls, value: dict[str, float]) -> dict[str, float]:
        negative = sorted(code for code, months in value.items() if months < 0)
        if negative:
            raise ValueError(f"negative tenure for locations: {negative}")
        return value

    @model_validator(mode="after")
    def _known_locations(self) -> "BusinessConfig":
        known = set(self.locations)
        unknown_tenure = sorted(set(self.avg_tenure_months) - known)
        if unknown_tenure:
            raise ValueError(f"avg_tenure_months has unknown locations: {unknown_tenure}")
        unknown_mapped = sorted(set(self.hubspot_location_map.values()) - known)
        if unknown_mapped:
            raise ValueError(f"hubspot_location_map targets unknown locations: {unknown_mapped}")
        return self

    def kpi_config(self) -> KPIConfig:
        return KPIConfig(
            locations=self.locations,
            payroll_total=self.marketing_payroll_total,
            avg_tenure_months=MappingProxyType(dict(self.avg_tenure_months)),
        )

    def location_for_crm_name(self, name: str | None) -> str | None:
        """Map a CRM location label to a location code, or None if unmapped."""
        if not name:
            return None
        label = name.strip()
        if label in self.hubspot_location_map:
            return self.hubspot_location_map[label]
        return label if label in self.locations else None


def load_business_config(path: str | Path) -> BusinessConfig:
    """
    Load and validate the business configuration JSON file.
    """

    config_path = Path(path)
    if not config_path.exists():
        raise BusinessConfigError(f"Business config file not found: {config_path}")

    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise BusinessConfigError(f"Business config is not valid JSON: {config_path}") from exc

    try:
        config = BusinessConfig.model_validate(raw)
    except ValidationError as exc:
        raise BusinessConfigError(f"Invalid business config {config_path}: {exc}") from exc

    logger.info(
        "Loaded business config path=%s locations=%d payroll_total=%.2f",
        config_path,
        len(config.locations),
        config.marketing_payroll_total,
    )
    return config
