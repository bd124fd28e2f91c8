"""
app/connectors/officernd_connector.py

OfficeRnD connector for active member counts.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date
from typing import Any

import requests

from app.config import ExternalHTTPSettings, OfficeRnDSettings
from app.connectors.base import BaseConnector, ConnectorRequestError
from app.domain.pull import MonthWindow

logger = logging.getLogger(__name__)


class OfficeRnDConnector(BaseConnector):
    """
    Counts members active at any point of a window, per location.

    The member list does not depend on the month, so it is fetched once and
    reused for every window of the run.
    """

    def __init__(
        self,
        *,
        settings: OfficeRnDSettings,
        http_settings: ExternalHTTPSettings,
        locations: Sequence[str],
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(source="officernd", http_settings=http_settings, session=session)
        if not settings.enabled:
            raise ValueError("OfficeRnD connector requires OFFICERND_API_KEY and OFFICERND_ORG_SLUG.")
        self._settings = settings
        # Longest code first so "LA-TOR" wins over a shorter code it contains.
        self._locations = tuple(sorted(locations, key=len, reverse=True))
        self._members: list[dict[str, Any]] | None = None

    def counts(self, window: MonthWindow) -> dict[str, int]:
        counts: dict[str, int] = {}
        for member in self._load_members():
            location = self._location_for(member)
            if location is None or not self._active_during(member, window):
                continue
            counts[location] = counts.get(location, 0) + 1
        return counts

    def _load_members(self) -> list[dict[str, Any]]:
        if self._members is not None:
            return self._members

        url = f"{self._settings.base_url.rstrip('/')}/{self._settings.org_slug}/members"
        headers = {
            "Authorization": f"Bearer {self._settings.api_key}",
            "Content-Type": "application/json",
        }
        limit = self._settings.page_size

        def fetch_page(skip: int | None) -> tuple[list[dict[str, Any]], int | None]:
            offset = skip or 0
            payload = self._request_json(
                method="GET",
                url=url,
                params={"$limit": limit, "$skip": offset},
                headers=headers,
            )
            if not isinstance(payload, list):
                raise ConnectorRequestError(f"{self.source}: unexpected members payload shape.")
            return payload, (offset + len(payload) if len(payload) >= limit else None)

        members: list[dict[str, Any]] = []
        for page in self._paginate(fetch_page):
            members.extend(m for m in page if isinstance(m, dict))
        logger.info("Loaded OfficeRnD members count=%d", len(members))
        self._members = members
        return members

    def _location_for(self, member: dict[str, Any]) -> str | None:
        office = member.get("office")
        office_name = office.get("name") if isinstance(office, dict) else None
        if not office_name:
            return None
        for code in self._locations:
            if code in office_name:
                return code
        return None

    def _active_during(self, member: dict[str, Any], window: MonthWindow) -> bool:
        started = self._parse_date(member.get("startDate") or member.get("createdAt"))
        if started is None or started > window.end:
            return False
        ended = self._parse_date(member.get("endDate"))
        return ended is None or ended >= window.start

    def _parse_date(self, value: Any) -> date | None:
        if not isinstance(value, str) or not value.strip():
            return None
        try:
            return self.parse_iso_datetime(value.strip()).date()
        except ValueError:
            logger.debug("Unparseable OfficeRnD date value=%r", value)
            return None
