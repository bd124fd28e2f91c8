"""
app/connectors/netsuite_connector.py

NetSuite SuiteQL connector for ledger revenue and marketing spend.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import requests
from oauthlib.oauth1 import SIGNATURE_HMAC_SHA256
from requests_oauthlib import OAuth1

from app.config import ExternalHTTPSettings, NetSuiteSettings
from app.connectors.base import BaseConnector, ConnectorRequestError
from app.domain.pull import MonthWindow
from kpi.marketing import CORP_LOCATION

logger = logging.getLogger(__name__)

SUITEQL_PATH = "/services/rest/query/v1/suiteql"

_ACCOUNT_ACTIVITY_QUERY = """
    SELECT
      l.name AS location_name,
      SUM(paa.amount) AS total_amount
    FROM PostingAccountActivity paa
    LEFT JOIN Account a ON paa.account = a.id
    LEFT JOIN Location l ON paa.location = l.id
    WHERE paa.activitydate >= TO_DATE('{start}', 'YYYY-MM-DD')
      AND paa.activitydate <= TO_DATE('{end}', 'YYYY-MM-DD')
      AND a.acctnumber LIKE '{account_prefix}%'
      AND l.name IN ({locations})
    GROUP BY l.name
"""


def _sql_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def build_netsuite_auth(settings: NetSuiteSettings, **client_kwargs: Any) -> OAuth1:
    """
    Token-based authentication signer for SuiteTalk REST requests.

    requests applies it to every attempt, so each retry carries a fresh nonce
    and timestamp. ``client_kwargs`` are passed to the oauthlib client.
    """

    return OAuth1(
        settings.consumer_key,
        client_secret=settings.consumer_secret,
        resource_owner_key=settings.token_id,
        resource_owner_secret=settings.token_secret,
        signature_method=SIGNATURE_HMAC_SHA256,
        realm=settings.account_id,
        **client_kwargs,
    )


class NetSuiteConnector(BaseConnector):
    """
    Runs SuiteQL queries with offset pagination and token-based OAuth signing.
    """

    def __init__(
        self,
        *,
        settings: NetSuiteSettings,
        http_settings: ExternalHTTPSettings,
        locations: Sequence[str],
        session: requests.Session | None = None,
        auth: OAuth1 | None = None,
    ) -> None:
        super().__init__(source="netsuite", http_settings=http_settings, session=session)
        self._settings = settings
        self._locations = tuple(locations)
        self._url = settings.base_url + SUITEQL_PATH
        self._auth = auth or build_netsuite_auth(settings)

    def query(self, suiteql: str) -> list[dict[str, Any]]:
        """
        Run one SuiteQL statement and return every row across all pages.
        """

        rows: list[dict[str, Any]] = []
        for page in self._paginate(lambda offset: self._fetch_page(suiteql, offset or 0)):
            rows.extend(page)
        return rows

    def revenue_by_location(self, window: MonthWindow) -> dict[str, float]:
        """
        Revenue per location for the window, sign-normalised to positive.

        Revenue accounts carry credit (negative) balances in the ledger.
        """

        rows = self.query(
            self._activity_query(window, self._settings.revenue_account_prefix, self._locations)
        )
        return {loc: abs(amount) for loc, amount in self._sum_by_location(rows).items()}

    def marketing_spend_by_location(self, window: MonthWindow) -> dict[str, float]:
        """
        Marketing spend per location for the window, including ``Corp``.
        """

        rows = self.query(
            self._activity_query(
                window,
                self._settings.marketing_account_prefix,
                self._locations + (CORP_LOCATION,),
            )
        )
        return self._sum_by_location(rows)

    def _fetch_page(self, suiteql: str, offset: int) -> tuple[list[dict[str, Any]], int | None]:
        payload = self._request_json(
            method="POST",
            url=self._url,
            params={"limit": self._settings.page_size, "offset": offset},
            headers={"Content-Type": "application/json", "Prefer": "transient"},
            json_body={"q": suiteql},
            auth=self._auth,
        )
        if not isinstance(payload, dict) or not isinstance(payload.get("items"), list):
            raise ConnectorRequestError(f"{self.source}: unexpected SuiteQL payload shape.")

        items = payload["items"]
        if payload.get("hasMore") is True and items:
            return items, offset + len(items)
        return items, None

    @staticmethod
    def _activity_query(window: MonthWindow, account_prefix: str, locations: Sequence[str]) -> str:
        return _ACCOUNT_ACTIVITY_QUERY.format(
            start=window.start.isoformat(),
            end=window.end.isoformat(),
            account_prefix=account_prefix.replace("'", "''"),
            locations=", ".join(_sql_literal(loc) for loc in locations),
        )

    def _sum_by_location(self, rows: list[dict[str, Any]]) -> dict[str, float]:
        result: dict[str, float] = {}
        for row in rows:
            if not isinstance(row, dict):
                raise ConnectorRequestError(f"{self.source}: SuiteQL row is not an object.")
            location = row.get("location_name")
            if not location:
                continue
            raw_amount = row.get("total_amount")
            try:
                amount = float(raw_amount) if raw_amount not in (None, "") else 0.0
            except (TypeError, ValueError) as exc:
                raise ConnectorRequestError(
                    f"{self.source}: non-numeric amount {raw_amount!r} for {location}."
                ) from exc
            result[location] = result.get(location, 0.0) + amount
        return result
