from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ImportConfig:
    """
    Configuration for the CSV import job.
    """

    csv_path: Path = Path("resources/restaurants.csv")
    chunk_size: int = 500
    grades_per_restaurant: int = 3
    comments_per_restaurant: int = 4


DEFAULT_IMPORT_CONFIG = ImportConfig()
