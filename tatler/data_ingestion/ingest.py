from __future__ import annotations

import argparse
import json
import logging
import random
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pandas as pd
from pymongo.errors import PyMongoError

from ..config import setup_logging
from ..db.client import connect, get_collection
from ..db.config import DEFAULT_DATABASE_CONFIG, DatabaseConfig
from ..restaurants.errors import ImportSourceError, MissingRequiredFieldError
from ..restaurants.repository import RestaurantRepository
from ..restaurants.validation import normalize_record
from .config import DEFAULT_IMPORT_CONFIG, ImportConfig
from .mock_data import generate_comments, generate_grades

logger = logging.getLogger(__name__)

CSV_COLUMNS: list[str] = [
    "restaurant_id",
    "name",
    "borough",
    "cuisine",
    "building",
    "street",
    "zipcode",
    "longitude",
    "latitude",
    "phone",
    "website",
    "price_range",
]


@dataclass
class ImportReport:
    total_rows: int = 0
    skipped: int = 0
    inserted: int = 0
    duplicates: int = 0
    failed: int = 0
    skipped_rows: list[int] = field(default_factory=list)
    sample: dict[str, Any] | None = None

    @property
    def valid_rows(self) -> int:
        return self.total_rows - self.skipped

    def summary(self) -> str:
        return (
            f"{self.total_rows} rows read: {self.inserted} inserted, "
            f"{self.skipped} skipped (missing fields), "
            f"{self.duplicates} duplicates, {self.failed} failed"
        )


def iter_rows(config: ImportConfig) -> Iterator[tuple[int, dict[str, Any]]]:
    """
    Stream CSV rows as ``(row_number, row)`` pairs, one chunk at a time.

    Every value is read as a string; empty cells stay empty strings rather
    than NaN. Row numbers are 1-based and exclude the header.
    """
    try:
        with pd.read_csv(
            config.csv_path,
            dtype=str,
            keep_default_na=False,
            chunksize=config.chunk_size,
        ) as reader:
            for chunk_number, chunk in enumerate(reader):
                chunk.columns = [str(c).strip() for c in chunk.columns]
                if chunk_number == 0:
                    absent = [c for c in CSV_COLUMNS if c not in chunk.columns]
                    if absent:
                        logger.warning("CSV is missing columns: %s", ", ".join(absent))
                for index, row in chunk.iterrows():
                    yield int(index) + 1, row.to_dict()
    except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise ImportSourceError(f"Could not read {config.csv_path}: {exc}") from exc


def build_documents(
    config: ImportConfig,
    report: ImportReport,
    rng: random.Random | None = None,
) -> list[dict[str, Any]]:
    """Validate and enrich every row; rows missing required fields are skipped."""
    rng = rng or random.Random()
    imported_at = datetime.now(timezone.utc)
    documents: list[dict[str, Any]] = []

    for row_number, row in iter_rows(config):
        report.total_rows += 1
        try:
            document = normalize_record(row, row_index=row_number)
        except MissingRequiredFieldError as exc:
            report.skipped += 1
            report.skipped_rows.append(row_number)
            logger.warning("Skipping row %d: %s", row_number, ", ".join(exc.fields))
            continue

        document["grades"] = generate_grades(
            config.grades_per_restaurant, rng=rng, now=imported_at,
        )
        document["comments"] = generate_comments(
            document["name"], config.comments_per_restaurant, rng=rng, now=imported_at,
        )
        document["created_at"] = imported_at
        document["updated_at"] = imported_at
        documents.append(document)

    return documents


def run_import(
    repository: RestaurantRepository,
    config: ImportConfig = DEFAULT_IMPORT_CONFIG,
    rng: random.Random | None = None,
) -> ImportReport:
    """
    Execute the CSV import.

    Steps:
    - Read and validate every row (a read failure aborts before any write).
    - Enrich valid rows with synthetic grades and comments.
    - Insert the whole batch once, tolerating duplicates per document.
    - Reconcile inserted/duplicate/failed counts into a report.
    """
    report = ImportReport()
    documents = build_documents(config, report, rng=rng)

    if not documents:
        logger.info("No valid rows found in %s", config.csv_path)
        return report

    report.sample = dict(documents[0])

    result = repository.insert_many(documents, partial_tolerant=True)
    report.inserted = result.inserted_count
    report.duplicates = result.duplicate_count
    report.failed = result.failed_count

    logger.info("Import complete: %s", report.summary())
    return report


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Import restaurants from a CSV file into MongoDB")
    parser.add_argument("--csv", type=Path, default=DEFAULT_IMPORT_CONFIG.csv_path, help="CSV file to import")
    parser.add_argument("--uri", default=DEFAULT_DATABASE_CONFIG.uri, help="MongoDB connection URI")
    parser.add_argument("--db", default=DEFAULT_DATABASE_CONFIG.database, help="Database name")
    parser.add_argument("--collection", default=DEFAULT_DATABASE_CONFIG.collection)
    args = parser.parse_args(argv)

    setup_logging()
    db_config = DatabaseConfig(uri=args.uri, database=args.db, collection=args.collection)
    import_config = ImportConfig(csv_path=args.csv)

    try:
        client = connect(db_config)
    except PyMongoError as exc:
        logger.error("Import aborted: could not connect to MongoDB: %s", exc)
        return 1

    try:
        repository = RestaurantRepository(get_collection(client, db_config))
        repository.ensure_indexes()
        report = run_import(repository, import_config)
    except ImportSourceError as exc:
        logger.error("Import aborted: %s", exc.message)
        return 1
    finally:
        client.close()

    print(report.summary())
    if report.sample is not None:
        print("Sample document:")
        print(json.dumps(report.sample, indent=2, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
