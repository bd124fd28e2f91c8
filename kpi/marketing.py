"""
kpi/marketing.py

Marketing acquisition KPI formulas for multi-location workspaces.

Expected inputs (one calendar month)
------------------------------------
revenue : Mapping[str, float]
    Ledger revenue per location. Ledger revenue is stored as a credit, so
    values are sign-normalised with ``abs`` before use.
spend : Mapping[str, float]
    Marketing spend per location, plus ``"Corp"`` for central spend that is
    not attributable to a single location.
leads : Mapping[str, float]
    CRM lead count per location.
new_members : Mapping[str, float]
    Members acquired in the month per location.
active_members : Mapping[str, float]
    Active member population per location.

A location missing from a map contributes zero.

Formulas (per location)
-----------------------
share              = spend / total direct spend  (1 / N when total is not positive)
corp allocation    = Corp spend * share
payroll allocation = monthly payroll total * share
CAC                = spend / new members
Corp CAC           = (spend + corp allocation) / new members
All-in CAC         = (spend + corp allocation + payroll allocation) / new members
Avg rev / member   = revenue / active members
LTV                = avg rev / member * avg tenure months
Spend / revenue    = spend aggregate / revenue   (three variants)
Cost per lead      = spend / leads

Totals pool numerators and denominators across locations; they are never
the mean of per-location ratios. Any ratio with a zero denominator is
``None``, which is distinct from a computed ``0.0``. Values are rounded to
two decimal places.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping

from kpi.base import BaseKPIFormula

CORP_LOCATION = "Corp"

_CENT = Decimal("0.01")

KPI_FIELDS: tuple[str, ...] = (
    "cac",
    "corpCac",
    "allInCac",
    "avgRevPerMember",
    "avgMemberDuration",
    "ltv",
    "mktgSpendToRev",
    "corpMktgToRev",
    "allInSpendToRev",
    "costPerLead",
)

KPIRecord = dict[str, float | None]


@dataclass(frozen=True)
class KPIConfig:
    """
    Fixed business inputs the formulas need besides the monthly source maps.
    """

    locations: tuple[str, ...]
    payroll_total: float = 0.0
    avg_tenure_months: Mapping[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class MonthlySourceInputs:
    """
    The four per-location source maps for one month.
    """

    revenue: Mapping[str, float] = field(default_factory=dict)
    spend: Mapping[str, float] = field(default_factory=dict)
    leads: Mapping[str, float] = field(default_factory=dict)
    new_members: Mapping[str, float] = field(default_factory=dict)
    active_members: Mapping[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class MonthlyKPIs:
    """
    KPI records for one month plus the allocations they were derived from.
    """

    data: dict[str, KPIRecord]
    totals: KPIRecord
    corp_allocation: dict[str, float]
    payroll_allocation: dict[str, float]


class MarketingKPIFormula(BaseKPIFormula):
    """
    Deterministic marketing KPI calculations with safe division-by-zero handling.
    """

    def __init__(self, config: KPIConfig) -> None:
        self._config = config

    def calculate(self, inputs: dict[str, Any]) -> dict[str, Any]:
        """
        Compute per-location and total KPIs from a dictionary of source maps.

        Returns
        -------
        dict
            Keys: ``data`` (location -> record) and ``totals`` (record).
        """
        result = derive_kpis(
            MonthlySourceInputs(
                revenue=inputs.get("revenue") or {},
                spend=inputs.get("spend") or {},
                leads=inputs.get("leads") or {},
                new_members=inputs.get("new_members") or {},
                active_members=inputs.get("active_members") or {},
            ),
            self._config,
        )
        return {"data": result.data, "totals": result.totals}


def derive_kpis(inputs: MonthlySourceInputs, config: KPIConfig) -> MonthlyKPIs:
    """
    Map one month of source figures to per-location and pooled KPI records.
    """
    locations = config.locations
    spend = inputs.spend

    corp_spend = _amount(spend, CORP_LOCATION)
    total_direct_spend = sum(_amount(spend, loc) for loc in locations)

    corp_allocation = allocate(corp_spend, spend, locations, total_direct_spend)
    payroll_allocation = allocate(config.payroll_total, spend, locations, total_direct_spend)

    data: dict[str, KPIRecord] = {}
    tot_rev = tot_spend = tot_corp = tot_payroll = 0.0
    tot_members = tot_new = tot_leads = 0.0
    tenure_weighted = tenure_members = 0.0

    for loc in locations:
        rev = abs(_amount(inputs.revenue, loc))
        direct = _amount(spend, loc)
        corp = corp_allocation[loc]
        payroll = payroll_allocation[loc]
        leads = _amount(inputs.leads, loc)
        new_members = _amount(inputs.new_members, loc)
        members = _amount(inputs.active_members, loc)
        tenure = _amount(config.avg_tenure_months, loc)

        data[loc] = _kpi_record(
            revenue=rev,
            direct_spend=direct,
            corp_alloc=corp,
            payroll_alloc=payroll,
            leads=leads,
            new_members=new_members,
            members=members,
            tenure=tenure if tenure > 0 else None,
        )

        tot_rev += rev
        tot_spend += direct
        tot_corp += corp
        tot_payroll += payroll
        tot_members += members
        tot_new += new_members
        tot_leads += leads
        if tenure > 0:
            tenure_weighted += tenure * members
            tenure_members += members

    totals = _kpi_record(
        revenue=tot_rev,
        direct_spend=tot_spend,
        corp_alloc=tot_corp,
        payroll_alloc=tot_payroll,
        leads=tot_leads,
        new_members=tot_new,
        members=tot_members,
        tenure=_ratio(tenure_weighted, tenure_members),
    )

    return MonthlyKPIs(
        data=data,
        totals=totals,
        corp_allocation=corp_allocation,
        payroll_allocation=payroll_allocation,
    )


def allocate(
    amount: float,
    spend: Mapping[str, float],
    locations: tuple[str, ...],
    total_direct_spend: float | None = None,
) -> dict[str, float]:
    """
    Split *amount* across *locations* in proportion to direct spend.

    Falls back to an equal split when total direct spend is zero or negative.
    """
    if not locations:
        return {}
    if total_direct_spend is None:
        total_direct_spend = sum(_amount(spend, loc) for loc in locations)
    if total_direct_spend <= 0:
        share = 1 / len(locations)
        return {loc: amount * share for loc in locations}
    return {loc: amount * _amount(spend, loc) / total_direct_spend for loc in locations}


# ---------------------------------------------------------------------------
# Pure formula helpers
# ---------------------------------------------------------------------------


def _kpi_record(
    *,
    revenue: float,
    direct_spend: float,
    corp_alloc: float,
    payroll_alloc: float,
    leads: float,
    new_members: float,
    members: float,
    tenure: float | None,
) -> KPIRecord:
    corp_loaded = direct_spend + corp_alloc
    fully_loaded = corp_loaded + payroll_alloc
    avg_rev = _ratio(revenue, members)

    return {
        "cac": _round2(_ratio(direct_spend, new_members)),
        "corpCac": _round2(_ratio(corp_loaded, new_members)),
        "allInCac": _round2(_ratio(fully_loaded, new_members)),
        "avgRevPerMember": _round2(avg_rev),
        "avgMemberDuration": _round2(tenure),
        "ltv": _round2(_ltv(avg_rev, tenure)),
        "mktgSpendToRev": _round2(_ratio(direct_spend, revenue)),
        "corpMktgToRev": _round2(_ratio(corp_loaded, revenue)),
        "allInSpendToRev": _round2(_ratio(fully_loaded, revenue)),
        "costPerLead": _round2(_ratio(direct_spend, leads)),
    }


def _amount(values: Mapping[str, float], key: str) -> float:
    """Missing or null entries count as zero."""
    raw = values.get(key)
    return float(raw) if raw else 0.0


def _ratio(numerator: float, denominator: float) -> float | None:
    """Returns None when the denominator is zero or negative."""
    if denominator <= 0:
        return None
    return numerator / denominator


def _ltv(avg_revenue_per_member: float | None, tenure: float | None) -> float | None:
    """LTV is undefined when either operand is undefined or zero."""
    if not avg_revenue_per_member or not tenure:
        return None
    return avg_revenue_per_member * tenure


def _round2(value: float | None) -> float | None:
    """Two decimals, exact halves rounded up (0.125 -> 0.13)."""
    if value is None:
        return None
    return float(Decimal(repr(value)).quantize(_CENT, rounding=ROUND_HALF_UP))
