"""
tests/test_business_config.py

Pytest tests for the business configuration tables.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from app.business_config import BusinessConfig, BusinessConfigError, load_business_config
from app.config import PROJECT_ROOT


def _config(**overrides) -> BusinessConfig:
    raw = {
        "locations": ["ATL-UWS", "LA-TOR"],
        "hubspot_location_map": {"Atlanta - Upper Westside": "ATL-UWS"},
        "marketing_payroll_total": 1000.0,
        "avg_tenure_months": {"ATL-UWS": 18},
    }
    raw.update(overrides)
    return BusinessConfig.model_validate(raw)


class TestBusinessConfig:
    def test_kpi_config_carries_tables(self) -> None:
        kpi_config = _config().kpi_config()
        assert kpi_config.locations == ("ATL-UWS", "LA-TOR")
        assert kpi_config.payroll_total == 1000.0
        assert kpi_config.avg_tenure_months["ATL-UWS"] == 18

    def test_kpi_config_tenure_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            _config().kpi_config().avg_tenure_months["LA-TOR"] = 5  # type: ignore[index]

    def test_config_is_frozen(self) -> None:
        with pytest.raises(ValidationError):
            _config().marketing_payroll_total = 0.0  # type: ignore[misc]

    @pytest.mark.parametrize(
        "label, expected",
        [
            ("Atlanta - Upper Westside", "ATL-UWS"),
            ("  Atlanta - Upper Westside ", "ATL-UWS"),
            ("LA-TOR", "LA-TOR"),
            ("Somewhere else", None),
            ("", None),
            (None, None),
        ],
    )
    def test_location_for_crm_name(self, label: str | None, expected: str | None) -> None:
        assert _config().location_for_crm_name(label) == expected

    @pytest.mark.parametrize(
        "overrides",
        [
            {"locations": []},
            {"locations": ["ATL-UWS", "ATL-UWS"]},
            {"locations": ["ATL-UWS", "Corp"]},
            {"avg_tenure_months": {"NYC": 12}},
            {"avg_tenure_months": {"ATL-UWS": -1}},
            {"hubspot_location_map": {"New York": "NYC"}},
            {"marketing_payroll_total": -5},
            {"unexpected": True},
        ],
    )
    def test_invalid_tables_rejected(self, overrides: dict) -> None:
        with pytest.raises(ValidationError):
            _config(**overrides)


class TestLoadBusinessConfig:
    def test_repository_config_file_is_valid(self) -> None:
        config = load_business_config(PROJECT_ROOT / "config" / "business.json")
        assert len(config.locations) == 11
        assert set(config.avg_tenure_months) <= set(config.locations)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(BusinessConfigError, match="not found"):
            load_business_config(tmp_path / "business.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "business.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(BusinessConfigError, match="not valid JSON"):
            load_business_config(path)

    def test_validation_error_is_wrapped(self, tmp_path: Path) -> None:
        path = tmp_path / "business.json"
        path.write_text(json.dumps({"locations": ["Corp"]}), encoding="utf-8")
        with pytest.raises(BusinessConfigError, match="Invalid business config"):
            load_business_config(path)
