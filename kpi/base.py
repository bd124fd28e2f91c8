"""
kpi/base.py

Formula contract shared by the KPI engines.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BaseKPIFormula(ABC):
    """
    A pure mapping from one month of source figures to KPI records.

    ``inputs`` holds per-location maps (``revenue``, ``spend``, ``leads``,
    ``new_members``, ``active_members``); the result holds per-location
    records under ``data`` and pooled records under ``totals``.
    """

    @abstractmethod
    def calculate(self, inputs: dict[str, Any]) -> dict[str, Any]:
        """Return ``{"data": ..., "totals": ...}`` for one month of inputs."""
