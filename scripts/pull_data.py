"""
Pull ledger, CRM and membership data and rebuild the dashboard KPI dataset.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
from pathlib import Path

from app.business_config import BusinessConfigError, load_business_config
from app.config import (
    MissingCredentialsError,
    configure_logging,
    get_pull_settings,
    validate_required_env,
)
from app.connectors.static_membership import MembershipTableError
from app.repositories.dataset_repository import DatasetPersistenceError
from app.services.month_windows import month_windows
from app.services.pull_orchestrator import build_pull_orchestrator

logger = logging.getLogger("scripts.pull_data")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Rebuild the marketing dashboard KPI dataset.")
    parser.add_argument(
        "--months-back",
        dest="months_back",
        type=int,
        default=None,
        help="Number of complete months to include (default: PULL_MONTHS_BACK or 12).",
    )
    parser.add_argument(
        "--output",
        dest="output",
        default=None,
        help="Dataset JSON path (default: DASHBOARD_DATA_PATH).",
    )
    parser.add_argument(
        "--membership-table",
        dest="membership_table",
        default=None,
        help="Static membership counts JSON used when OfficeRnD is not configured.",
    )
    args = parser.parse_args(argv)

    configure_logging()

    try:
        validate_required_env()
    except MissingCredentialsError as exc:
        logger.error("%s", exc)
        return 1

    settings = get_pull_settings()
    overrides: dict[str, object] = {}
    if args.months_back is not None:
        if args.months_back < 1:
            parser.error("--months-back must be at least 1")
        overrides["months_back"] = args.months_back
    if args.output:
        overrides["output_path"] = Path(args.output).resolve()
    if args.membership_table:
        overrides["membership_table_path"] = Path(args.membership_table).resolve()
    settings = dataclasses.replace(settings, **overrides)

    try:
        business_config = load_business_config(settings.business_config_path)
        orchestrator = build_pull_orchestrator(pull_settings=settings, business_config=business_config)
    except (BusinessConfigError, MembershipTableError) as exc:
        logger.error("Configuration error: %s", exc)
        return 1

    windows = month_windows(settings.months_back)
    logger.info("Pulling %d months: %s -> %s", len(windows), windows[0].key, windows[-1].key)

    try:
        summary = orchestrator.run(windows)
    except DatasetPersistenceError as exc:
        logger.error("Could not write dataset: %s", exc)
        return 1

    payload = {
        "output_path": summary.output_path,
        "last_updated": summary.last_updated,
        "months": [
            {"month": month.month, "outcome": month.outcome.value, "error": month.error}
            for month in summary.months
        ],
    }
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
