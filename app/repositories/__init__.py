"""
app/repositories package marker.
"""

from app.repositories.dataset_repository import (
    DatasetLoadError,
    DatasetPersistenceError,
    DatasetRepository,
)

__all__ = [
    "DatasetLoadError",
    "DatasetPersistenceError",
    "DatasetRepository",
]
