"""
app/connectors/hubspot_connector.py

HubSpot CRM search connector for lead and new-member counts.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, time, timezone
from typing import Any

import requests

from app.config import ExternalHTTPSettings, HubSpotSettings
from app.connectors.base import BaseConnector, ConnectorRequestError
from app.domain.pull import MonthWindow

logger = logging.getLogger(__name__)

LEAD_DATE_PROPERTY = "hs_lifecyclestage_lead_date"

LocationResolver = Callable[[str | None], str | None]


def _epoch_millis(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def window_bounds_millis(window: MonthWindow) -> tuple[int, int]:
    """
    Inclusive UTC millisecond bounds covering every instant of the window.
    """

    start = datetime.combine(window.start, time.min, tzinfo=timezone.utc)
    end = datetime.combine(window.end, time.max, tzinfo=timezone.utc)
    return _epoch_millis(start), _epoch_millis(end)


class HubSpotConnector(BaseConnector):
    """
    Counts CRM contacts and deals per location using the search API.
    """

    def __init__(
        self,
        *,
        settings: HubSpotSettings,
        http_settings: ExternalHTTPSettings,
        location_resolver: LocationResolver,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(source="hubspot", http_settings=http_settings, session=session)
        self._settings = settings
        self._resolve_location = location_resolver

    def search(
        self,
        object_type: str,
        filters: Sequence[dict[str, Any]],
        properties: Sequence[str],
    ) -> list[dict[str, Any]]:
        """
        Return every record matching ``filters``, following the paging cursor.
        """

        url = f"{self._settings.base_url.rstrip('/')}/crm/v3/objects/{object_type}/search"
        headers = {
            "Authorization": f"Bearer {self._settings.token}",
            "Content-Type": "application/json",
        }

        def fetch_page(after: str | None) -> tuple[list[dict[str, Any]], str | None]:
            body: dict[str, Any] = {
                "filterGroups": [{"filters": list(filters)}],
                "properties": list(properties),
                "limit": self._settings.page_size,
            }
            if after:
                body["after"] = after
            payload = self._request_json(method="POST", url=url, headers=headers, json_body=body)
            if not isinstance(payload, dict) or not isinstance(payload.get("results", []), list):
                raise ConnectorRequestError(f"{self.source}: unexpected search payload shape.")
            next_after = ((payload.get("paging") or {}).get("next") or {}).get("after")
            return payload.get("results", []), (str(next_after) if next_after else None)

        records: list[dict[str, Any]] = []
        for page in self._paginate(fetch_page):
            records.extend(page)
        return records

    def lead_counts(self, window: MonthWindow) -> dict[str, int]:
        """
        Contacts that entered the lead lifecycle stage during the window.
        """

        start_ms, end_ms = window_bounds_millis(window)
        contacts = self.search(
            "contacts",
            [
                {"propertyName": LEAD_DATE_PROPERTY, "operator": "GTE", "value": start_ms},
                {"propertyName": LEAD_DATE_PROPERTY, "operator": "LTE", "value": end_ms},
            ],
            [self._settings.location_property],
        )
        return self._count_by_location(contacts)

    def new_member_counts(self, window: MonthWindow) -> dict[str, int]:
        """
        Deals closed in the configured won stage during the window.
        """

        start_ms, end_ms = window_bounds_millis(window)
        deals = self.search(
            "deals",
            [
                {"propertyName": "dealstage", "operator": "EQ", "value": self._settings.closed_won_stage},
                {"propertyName": "closedate", "operator": "GTE", "value": start_ms},
                {"propertyName": "closedate", "operator": "LTE", "value": end_ms},
            ],
            [self._settings.location_property, "closedate"],
        )
        return self._count_by_location(deals)

    def _count_by_location(self, records: list[dict[str, Any]]) -> dict[str, int]:
        counts: dict[str, int] = {}
        unmapped = 0
        for record in records:
            properties = record.get("properties") if isinstance(record, dict) else None
            label = (properties or {}).get(self._settings.location_property)
            location = self._resolve_location(label)
            if location is None:
                unmapped += 1
                continue
            counts[location] = counts.get(location, 0) + 1
        if unmapped:
            logger.debug("HubSpot records without a mapped location: %d", unmapped)
        return counts
