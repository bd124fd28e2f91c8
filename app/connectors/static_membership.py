"""
app/connectors/static_membership.py

Manually maintained membership counts used when the membership API is not
configured.

Lookup rule: an exact month key wins; otherwise the latest known month
before the target is used; if the target precedes every known month, the
earliest known month is used.
"""

from __future__ import annotations

import bisect
import json
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol

from app.domain.pull import MonthWindow

logger = logging.getLogger(__name__)


class MembershipSource(Protocol):
    """
    Anything that can report active members per location for a window.
    """

    def counts(self, window: MonthWindow) -> dict[str, int]:
        ...


class MembershipTableError(ValueError):
    """Raised when the static membership table is malformed."""


class StaticMembershipTable:
    """
    Month-keyed table of active member counts per location.
    """

    def __init__(self, table: Mapping[str, Mapping[str, int]], locations: Sequence[str]) -> None:
        known = set(locations)
        for month_key, row in table.items():
            unknown = sorted(set(row) - known)
            if unknown:
                raise MembershipTableError(f"Membership table {month_key} has unknown locations: {unknown}")
            negative = sorted(loc for loc, count in row.items() if count < 0)
            if negative:
                raise MembershipTableError(f"Membership table {month_key} has negative counts: {negative}")
        self._table = {key: dict(row) for key, row in table.items()}
        self._keys = sorted(self._table)

    @classmethod
    def from_file(cls, path: str | Path, locations: Sequence[str]) -> "StaticMembershipTable":
        table_path = Path(path)
        if not table_path.exists():
            logger.warning("Membership table not found path=%s; member counts will be empty", table_path)
            return cls({}, locations)
        try:
            raw = json.loads(table_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise MembershipTableError(f"Membership table is not valid JSON: {table_path}") from exc
        if not isinstance(raw, dict) or not all(isinstance(row, dict) for row in raw.values()):
            raise MembershipTableError(f"Membership table must map month keys to objects: {table_path}")
        try:
            table = {str(key): {loc: int(count) for loc, count in row.items()} for key, row in raw.items()}
        except (TypeError, ValueError) as exc:
            raise MembershipTableError(f"Membership table has non-integer counts: {table_path}") from exc
        return cls(table, locations)

    def resolve_key(self, month_key: str) -> str | None:
        """
        Return the table key used for ``month_key``, or None for an empty table.
        """

        if not self._keys:
            return None
        index = bisect.bisect_right(self._keys, month_key)
        if index == 0:
            return self._keys[0]
        return self._keys[index - 1]

    def counts_for_month(self, month_key: str) -> dict[str, int]:
        key = self.resolve_key(month_key)
        if key is None:
            return {}
        if key != month_key:
            logger.info("Membership counts for %s taken from %s", month_key, key)
        return dict(self._table[key])

    def counts(self, window: MonthWindow) -> dict[str, int]:
        return self.counts_for_month(window.key)
