"""
app/config.py

Application-level configuration helpers.

Credentials for the ledger (NetSuite) and CRM (HubSpot) are required; the
membership API (OfficeRnD) is optional and falls back to a static table.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]

REQUIRED_ENV_VARS: tuple[str, ...] = (
    "NETSUITE_ACCOUNT_ID",
    "NETSUITE_CONSUMER_KEY",
    "NETSUITE_CONSUMER_SECRET",
    "NETSUITE_TOKEN_ID",
    "NETSUITE_TOKEN_SECRET",
    "HUBSPOT_TOKEN",
)


class MissingCredentialsError(RuntimeError):
    """
    Raised at startup when one or more required credentials are absent.
    """

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(
            "Startup validation failed - missing required environment variables:\n"
            + "\n".join(f"  - {name}" for name in missing)
        )


def load_env_files(project_root: Path | None = None) -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    root = project_root or PROJECT_ROOT
    for filename in (".env", ".env.local"):
        env_path = root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading settings.
    """

    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _resolve_path(raw_path: str) -> Path:
    candidate = Path(raw_path)
    if candidate.is_absolute():
        return candidate
    return (PROJECT_ROOT / candidate).resolve()


def validate_required_env() -> None:
    """
    Validate all required credentials before any month is processed.

    Collects every missing or empty variable so the operator can fix all
    problems in one pass.
    """

    _load_env_once()
    missing = [name for name in REQUIRED_ENV_VARS if not os.getenv(name, "").strip()]
    if missing:
        raise MissingCredentialsError(missing)


def configure_logging() -> None:
    """
    Configure root logging once for the pull process.
    """

    log_level = _get_str_env("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@dataclass(frozen=True)
class ExternalHTTPSettings:
    """
    Shared HTTP behavior settings for external connectors.
    """

    timeout_seconds: float = 30.0
    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    rate_limit_per_second: float = 5.0
    max_pages: int = 500


@dataclass(frozen=True)
class NetSuiteSettings:
    """
    NetSuite SuiteQL connector settings (token-based OAuth 1.0a).
    """

    account_id: str
    consumer_key: str
    consumer_secret: str
    token_id: str
    token_secret: str
    page_size: int = 1000
    revenue_account_prefix: str = "40"
    marketing_account_prefix: str = "65"

    @property
    def base_url(self) -> str:
        host = self.account_id.replace("_", "-").lower()
        return f"https://{host}.suitetalk.api.netsuite.com"


@dataclass(frozen=True)
class HubSpotSettings:
    """
    HubSpot CRM search connector settings.
    """

    token: str
    base_url: str = "https://api.hubapi.com"
    page_size: int = 100
    location_property: str = "saltbox_location"
    closed_won_stage: str = "closedwon"


@dataclass(frozen=True)
class OfficeRnDSettings:
    """
    OfficeRnD membership connector settings. Both values are optional.
    """

    api_key: str | None = None
    org_slug: str | None = None
    base_url: str = "https://app.officernd.com/api/v1/organizations"
    page_size: int = 1000

    @property
    def enabled(self) -> bool:
        return bool(self.api_key and self.org_slug)


@dataclass(frozen=True)
class PullSettings:
    """
    Runtime settings for one data pull.
    """

    months_back: int = 12
    output_path: Path = PROJECT_ROOT / "data" / "dashboard-data.json"
    business_config_path: Path = PROJECT_ROOT / "config" / "business.json"
    membership_table_path: Path = PROJECT_ROOT / "config" / "membership_counts.json"


@lru_cache(maxsize=1)
def get_external_http_settings() -> ExternalHTTPSettings:
    """
    Return shared connector HTTP settings from environment variables.
    """

    return ExternalHTTPSettings(
        timeout_seconds=max(1.0, _get_float_env("EXTERNAL_HTTP_TIMEOUT_SECONDS", 30.0)),
        max_retries=max(0, _get_int_env("EXTERNAL_HTTP_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(0.1, _get_float_env("EXTERNAL_HTTP_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("EXTERNAL_HTTP_BACKOFF_MULTIPLIER", 2.0)),
        rate_limit_per_second=max(0.1, _get_float_env("EXTERNAL_HTTP_RATE_LIMIT_PER_SECOND", 5.0)),
        max_pages=max(1, _get_int_env("EXTERNAL_HTTP_MAX_PAGES", 500)),
    )


@lru_cache(maxsize=1)
def get_netsuite_settings() -> NetSuiteSettings:
    """
    Return NetSuite settings. Call :func:`validate_required_env` first.
    """

    return NetSuiteSettings(
        account_id=_get_str_env("NETSUITE_ACCOUNT_ID", ""),
        consumer_key=_get_str_env("NETSUITE_CONSUMER_KEY", ""),
        consumer_secret=_get_str_env("NETSUITE_CONSUMER_SECRET", ""),
        token_id=_get_str_env("NETSUITE_TOKEN_ID", ""),
        token_secret=_get_str_env("NETSUITE_TOKEN_SECRET", ""),
        page_size=min(1000, max(1, _get_int_env("NETSUITE_PAGE_SIZE", 1000))),
        revenue_account_prefix=_get_str_env("NETSUITE_REVENUE_ACCOUNT_PREFIX", "40"),
        marketing_account_prefix=_get_str_env("NETSUITE_MARKETING_ACCOUNT_PREFIX", "65"),
    )


@lru_cache(maxsize=1)
def get_hubspot_settings() -> HubSpotSettings:
    """
    Return HubSpot settings. Call :func:`validate_required_env` first.
    """

    return HubSpotSettings(
        token=_get_str_env("HUBSPOT_TOKEN", ""),
        base_url=_get_str_env("HUBSPOT_BASE_URL", "https://api.hubapi.com"),
        page_size=min(100, max(1, _get_int_env("HUBSPOT_PAGE_SIZE", 100))),
        location_property=_get_str_env("HUBSPOT_LOCATION_PROPERTY", "saltbox_location"),
        closed_won_stage=_get_str_env("HUBSPOT_CLOSED_WON_STAGE", "closedwon"),
    )


@lru_cache(maxsize=1)
def get_officernd_settings() -> OfficeRnDSettings:
    """
    Return OfficeRnD settings from environment variables.
    """

    return OfficeRnDSettings(
        api_key=_get_optional_str_env("OFFICERND_API_KEY"),
        org_slug=_get_optional_str_env("OFFICERND_ORG_SLUG"),
        base_url=_get_str_env(
            "OFFICERND_BASE_URL",
            "https://app.officernd.com/api/v1/organizations",
        ),
        page_size=max(1, _get_int_env("OFFICERND_PAGE_SIZE", 1000)),
    )


@lru_cache(maxsize=1)
def get_pull_settings() -> PullSettings:
    """
    Return pull settings from environment variables.
    """

    return PullSettings(
        months_back=max(1, _get_int_env("PULL_MONTHS_BACK", 12)),
        output_path=_resolve_path(_get_str_env("DASHBOARD_DATA_PATH", "data/dashboard-data.json")),
        business_config_path=_resolve_path(_get_str_env("BUSINESS_CONFIG_PATH", "config/business.json")),
        membership_table_path=_resolve_path(
            _get_str_env("MEMBERSHIP_TABLE_PATH", "config/membership_counts.json")
        ),
    )
