"""
tests/test_pull_data_cli.py

Pytest tests for the pull command-line entry point.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from app.config import REQUIRED_ENV_VARS, get_pull_settings
from app.domain.pull import MonthOutcome, MonthPullSummary, PullRunSummary
from scripts import pull_data


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_pull_settings.cache_clear()
    yield
    get_pull_settings.cache_clear()


def _set_all_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in REQUIRED_ENV_VARS:
        monkeypatch.setenv(name, "x")


class FakeOrchestrator:
    def __init__(self) -> None:
        self.windows = None

    def run(self, windows):
        self.windows = list(windows)
        return PullRunSummary(
            output_path="/tmp/dashboard-data.json",
            last_updated="2024-07-01T00:00:00+00:00",
            months=[MonthPullSummary(month=w.key, outcome=MonthOutcome.COMPUTED) for w in windows],
        )


class TestPullDataCli:
    def test_missing_credentials_exit_non_zero(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in REQUIRED_ENV_VARS:
            monkeypatch.delenv(name, raising=False)
        assert pull_data.main([]) == 1

    def test_rejects_non_positive_months_back(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _set_all_credentials(monkeypatch)
        with pytest.raises(SystemExit):
            pull_data.main(["--months-back", "0"])

    def test_invalid_business_config_exit_non_zero(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        _set_all_credentials(monkeypatch)
        monkeypatch.setenv("BUSINESS_CONFIG_PATH", str(tmp_path / "missing.json"))
        assert pull_data.main([]) == 1

    def test_runs_orchestrator_and_prints_summary(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], tmp_path: Path
    ) -> None:
        _set_all_credentials(monkeypatch)
        fake = FakeOrchestrator()
        captured_settings = {}

        def fake_build(*, pull_settings, business_config):
            captured_settings["settings"] = pull_settings
            return fake

        monkeypatch.setattr(pull_data, "build_pull_orchestrator", fake_build)

        output = tmp_path / "out.json"
        exit_code = pull_data.main(["--months-back", "3", "--output", str(output)])

        assert exit_code == 0
        assert len(fake.windows) == 3
        assert captured_settings["settings"].output_path == output.resolve()
        printed = json.loads(capsys.readouterr().out)
        assert [m["outcome"] for m in printed["months"]] == ["computed"] * 3
