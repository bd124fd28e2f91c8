"""
app/repositories/dataset_repository.py

JSON file persistence for the dashboard dataset.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from app.schemas.dashboard_dataset import DashboardDataset

logger = logging.getLogger(__name__)


class DatasetLoadError(Exception):
    """Raised when an existing dataset file cannot be read or parsed."""


class DatasetPersistenceError(RuntimeError):
    """Raised when the dataset file cannot be written."""


class DatasetRepository:
    """
    Reads and atomically replaces the dashboard dataset file.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> DashboardDataset | None:
        """
        Return the stored dataset, or None when no file exists yet.
        """

        if not self._path.exists():
            return None
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return DashboardDataset.model_validate(raw)
        except (OSError, ValueError, ValidationError) as exc:
            raise DatasetLoadError(f"Could not read dataset file {self._path}: {exc}") from exc

    def load_baseline(self) -> DashboardDataset | None:
        """
        Like :meth:`load`, but an unreadable file is treated as no baseline.
        """

        try:
            return self.load()
        except DatasetLoadError as exc:
            logger.warning("Ignoring unreadable dataset file, starting fresh: %s", exc)
            return None

    def save(self, dataset: DashboardDataset) -> Path:
        """
        Write the dataset as a whole-file replacement.

        The payload goes to a temporary file in the target directory first and
        is then renamed over the target, so readers never see a partial file.
        """

        payload = json.dumps(dataset.to_json_dict(), indent=2)
        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(payload)
                handle.write("\n")
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise DatasetPersistenceError(f"Could not write dataset file {self._path}: {exc}") from exc

        logger.info("Dataset written path=%s months=%d", self._path, len(dataset.months))
        return self._path
