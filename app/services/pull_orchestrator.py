"""
app/services/pull_orchestrator.py

Monthly KPI pull orchestrator.

Wires month windows → source adapters → KPI formulas → refresh planner →
dataset repository. Months are processed one at a time in chronological
order.

Failure contract
----------------
- Missing credentials        → raised by config validation before this runs
- Unreadable previous file   → treated as no previous dataset (logged)
- Source failure for a month → that month falls back to its previous record,
                               or is dropped when none exists; later months
                               still run
- Persistence failure        → DatasetPersistenceError propagates to the caller
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Protocol

from app.business_config import BusinessConfig
from app.config import (
    PullSettings,
    get_external_http_settings,
    get_hubspot_settings,
    get_netsuite_settings,
    get_officernd_settings,
)
from app.connectors.hubspot_connector import HubSpotConnector
from app.connectors.netsuite_connector import NetSuiteConnector
from app.connectors.officernd_connector import OfficeRnDConnector
from app.connectors.static_membership import MembershipSource, StaticMembershipTable
from app.domain.pull import MonthOutcome, MonthPullSummary, MonthWindow, PullRunSummary
from app.logging_utils import log_event
from app.repositories.dataset_repository import DatasetRepository
from app.services.refresh_planner import (
    DatasetBuilder,
    RefreshDecision,
    cached_month,
    plan_refresh,
)
from kpi.marketing import KPIConfig, MonthlyKPIs, MonthlySourceInputs, derive_kpis

logger = logging.getLogger(__name__)


class LedgerSource(Protocol):
    def revenue_by_location(self, window: MonthWindow) -> dict[str, float]:
        ...

    def marketing_spend_by_location(self, window: MonthWindow) -> dict[str, float]:
        ...


class CRMSource(Protocol):
    def lead_counts(self, window: MonthWindow) -> dict[str, int]:
        ...

    def new_member_counts(self, window: MonthWindow) -> dict[str, int]:
        ...


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class PullOrchestrator:
    """
    Runs one incremental refresh of the dashboard dataset.

    Usage::

        orchestrator = PullOrchestrator(
            ledger=netsuite,
            crm=hubspot,
            membership=StaticMembershipTable.from_file(path, locations),
            kpi_config=business_config.kpi_config(),
            repository=DatasetRepository(output_path),
        )
        summary = orchestrator.run(month_windows(12))
    """

    def __init__(
        self,
        *,
        ledger: LedgerSource,
        crm: CRMSource,
        membership: MembershipSource,
        kpi_config: KPIConfig,
        repository: DatasetRepository,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._ledger = ledger
        self._crm = crm
        self._membership = membership
        self._kpi_config = kpi_config
        self._repository = repository
        self._clock = clock

    def pull_month(self, window: MonthWindow) -> MonthlyKPIs:
        """
        Pull every source for one window and derive its KPIs.
        """

        logger.info("[%s] Pulling ledger revenue", window.key)
        revenue = self._ledger.revenue_by_location(window)
        logger.info("[%s] Pulling ledger marketing spend", window.key)
        spend = self._ledger.marketing_spend_by_location(window)
        logger.info("[%s] Pulling CRM leads", window.key)
        leads = self._crm.lead_counts(window)
        logger.info("[%s] Pulling CRM new members", window.key)
        new_members = self._crm.new_member_counts(window)
        logger.info("[%s] Pulling active member counts", window.key)
        active_members = self._membership.counts(window)

        return derive_kpis(
            MonthlySourceInputs(
                revenue=revenue,
                spend=spend,
                leads=leads,
                new_members=new_members,
                active_members=active_members,
            ),
            self._kpi_config,
        )

    def run(self, windows: Sequence[MonthWindow]) -> PullRunSummary:
        """
        Refresh ``windows`` and replace the stored dataset with the result.
        """

        if not windows:
            raise ValueError("At least one month window is required.")

        log_event(
            logger,
            logging.INFO,
            "pull_started",
            first_month=windows[0].key,
            last_month=windows[-1].key,
            months=len(windows),
        )

        existing = self._repository.load_baseline()
        builder = DatasetBuilder(self._kpi_config.locations)
        outcomes: list[MonthPullSummary] = []

        for planned in plan_refresh(existing, windows):
            key = planned.window.key

            if planned.decision is RefreshDecision.REUSE:
                cached = cached_month(existing, key)
                if cached is not None:
                    builder.add_cached(key, cached)
                    outcomes.append(self._record(key, MonthOutcome.CACHED))
                    continue

            try:
                result = self.pull_month(planned.window)
            except Exception as exc:
                logger.error("[%s] Pull failed: %s", key, exc)
                fallback = cached_month(existing, key)
                if fallback is not None:
                    builder.add_cached(key, fallback)
                    outcomes.append(self._record(key, MonthOutcome.STALE_FALLBACK, str(exc)))
                else:
                    outcomes.append(self._record(key, MonthOutcome.DROPPED, str(exc)))
                continue

            builder.add_month(key, result.data, result.totals)
            outcomes.append(self._record(key, MonthOutcome.COMPUTED))

        last_updated = self._clock().isoformat()
        dataset = builder.build(last_updated)
        path = self._repository.save(dataset)

        summary = PullRunSummary(output_path=str(path), last_updated=last_updated, months=outcomes)
        log_event(
            logger,
            logging.INFO,
            "pull_finished",
            output_path=str(path),
            months_written=len(dataset.months),
            dropped=summary.dropped_months,
        )
        return summary

    @staticmethod
    def _record(key: str, outcome: MonthOutcome, error: str | None = None) -> MonthPullSummary:
        level = logging.WARNING if outcome in (MonthOutcome.STALE_FALLBACK, MonthOutcome.DROPPED) else logging.INFO
        log_event(logger, level, "month_pulled", month=key, outcome=outcome.value, error=error)
        return MonthPullSummary(month=key, outcome=outcome, error=error)


def build_pull_orchestrator(
    *,
    pull_settings: PullSettings,
    business_config: BusinessConfig,
) -> PullOrchestrator:
    """
    Wire the production adapters from environment settings.

    Membership counts come from OfficeRnD when its credentials are set and
    from the static table otherwise.
    """

    http_settings = get_external_http_settings()
    locations = business_config.locations

    membership: MembershipSource
    officernd_settings = get_officernd_settings()
    if officernd_settings.enabled:
        membership = OfficeRnDConnector(
            settings=officernd_settings,
            http_settings=http_settings,
            locations=locations,
        )
    else:
        logger.warning(
            "OfficeRnD credentials not set; using static membership table %s",
            pull_settings.membership_table_path,
        )
        membership = StaticMembershipTable.from_file(pull_settings.membership_table_path, locations)

    return PullOrchestrator(
        ledger=NetSuiteConnector(
            settings=get_netsuite_settings(),
            http_settings=http_settings,
            locations=locations,
        ),
        crm=HubSpotConnector(
            settings=get_hubspot_settings(),
            http_settings=http_settings,
            location_resolver=business_config.location_for_crm_name,
        ),
        membership=membership,
        kpi_config=business_config.kpi_config(),
        repository=DatasetRepository(pull_settings.output_path),
    )
