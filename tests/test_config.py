"""
tests/test_config.py

Pytest tests for environment-driven settings and credential validation.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from app import config
from app.config import (
    REQUIRED_ENV_VARS,
    MissingCredentialsError,
    get_external_http_settings,
    get_netsuite_settings,
    get_officernd_settings,
    get_pull_settings,
    load_env_files,
    validate_required_env,
)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    for getter in (
        get_external_http_settings,
        get_netsuite_settings,
        get_officernd_settings,
        get_pull_settings,
    ):
        getter.cache_clear()
    yield
    for getter in (
        get_external_http_settings,
        get_netsuite_settings,
        get_officernd_settings,
        get_pull_settings,
    ):
        getter.cache_clear()


def _set_all_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in REQUIRED_ENV_VARS:
        monkeypatch.setenv(name, f"value-for-{name.lower()}")


class TestValidateRequiredEnv:
    def test_passes_when_all_present(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _set_all_credentials(monkeypatch)
        validate_required_env()

    def test_reports_every_missing_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _set_all_credentials(monkeypatch)
        monkeypatch.delenv("NETSUITE_TOKEN_SECRET")
        monkeypatch.setenv("HUBSPOT_TOKEN", "   ")

        with pytest.raises(MissingCredentialsError) as excinfo:
            validate_required_env()

        assert excinfo.value.missing == ["NETSUITE_TOKEN_SECRET", "HUBSPOT_TOKEN"]
        assert "NETSUITE_TOKEN_SECRET" in str(excinfo.value)
        assert "HUBSPOT_TOKEN" in str(excinfo.value)


class TestSettings:
    def test_netsuite_settings_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _set_all_credentials(monkeypatch)
        monkeypatch.setenv("NETSUITE_ACCOUNT_ID", "1234567_SB1")
        monkeypatch.setenv("NETSUITE_PAGE_SIZE", "5000")

        settings = get_netsuite_settings()

        assert settings.base_url == "https://1234567-sb1.suitetalk.api.netsuite.com"
        assert settings.page_size == 1000
        assert settings.revenue_account_prefix == "40"

    def test_officernd_disabled_without_credentials(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OFFICERND_API_KEY", raising=False)
        monkeypatch.delenv("OFFICERND_ORG_SLUG", raising=False)
        assert get_officernd_settings().enabled is False

    def test_officernd_enabled_with_credentials(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OFFICERND_API_KEY", "key")
        monkeypatch.setenv("OFFICERND_ORG_SLUG", "saltbox")
        assert get_officernd_settings().enabled is True

    def test_invalid_numbers_fall_back_to_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EXTERNAL_HTTP_MAX_RETRIES", "lots")
        monkeypatch.setenv("PULL_MONTHS_BACK", "0")
        assert get_external_http_settings().max_retries == 3
        assert get_pull_settings().months_back == 1

    def test_relative_paths_resolve_against_project_root(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DASHBOARD_DATA_PATH", "out/data.json")
        assert get_pull_settings().output_path == (config.PROJECT_ROOT / "out" / "data.json").resolve()


class TestLoadEnvFiles:
    def test_env_file_does_not_override_process_env(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / ".env").write_text(
            "# comment\nHUBSPOT_TOKEN='from-file'\nPULL_TEST_ONLY_VAR=\"quoted\"\nnot a pair\n",
            encoding="utf-8",
        )
        monkeypatch.setenv("HUBSPOT_TOKEN", "from-process")
        monkeypatch.delenv("PULL_TEST_ONLY_VAR", raising=False)

        load_env_files(tmp_path)

        assert os.environ["HUBSPOT_TOKEN"] == "from-process"
        assert os.environ["PULL_TEST_ONLY_VAR"] == "quoted"
        monkeypatch.delenv("PULL_TEST_ONLY_VAR")
