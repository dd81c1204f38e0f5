from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, GEOSPHERE, TEXT, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import BulkWriteError
from pymongo.errors import DuplicateKeyError as MongoDuplicateKeyError

from .errors import (
    DuplicateKeyError,
    InvalidIdentifierError,
    NotFoundError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

DUPLICATE_KEY_CODE = 11000
SUBDOCUMENT_FIELDS = frozenset({"grades", "comments"})


class InsertOutcome(str, Enum):
    inserted = "inserted"
    duplicate = "duplicate"
    failed = "failed"


@dataclass
class BulkInsertResult:
    inserted_count: int
    outcomes: list[InsertOutcome] = field(default_factory=list)
    errors: dict[int, str] = field(default_factory=dict)

    @property
    def duplicate_count(self) -> int:
        return sum(1 for o in self.outcomes if o is InsertOutcome.duplicate)

    @property
    def failed_count(self) -> int:
        return sum(1 for o in self.outcomes if o is InsertOutcome.failed)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(restaurant_id: str) -> ObjectId:
    try:
        return ObjectId(restaurant_id)
    except (InvalidId, TypeError):
        raise InvalidIdentifierError() from None


class RestaurantRepository:
    """Persistence for restaurant documents in a single MongoDB collection."""

    def __init__(self, collection: Collection) -> None:
        self._collection = collection

    def ensure_indexes(self) -> None:
        self._collection.create_index("restaurant_id", unique=True)
        self._collection.create_index([("name", TEXT)])
        self._collection.create_index([("address.coord", GEOSPHERE)])
        self._collection.create_index([("cuisine", ASCENDING)])
        self._collection.create_index([("borough", ASCENDING)])

    # ── Reads ────────────────────────────────────────────────────────────

    def find_many(
        self,
        query: dict[str, Any] | None = None,
        sort: list[tuple[str, int]] | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        query = query or {}
        cursor = self._collection.find(query)
        if sort:
            cursor = cursor.sort(sort)
        documents = list(cursor.skip(offset).limit(limit))
        total = self._collection.count_documents(query)
        return documents, total

    def find_one(self, restaurant_id: str) -> dict[str, Any]:
        document = self._collection.find_one({"_id": to_object_id(restaurant_id)})
        if document is None:
            raise NotFoundError()
        return document

    def text_search(self, query: str) -> list[dict[str, Any]]:
        cursor = self._collection.find(
            {"$text": {"$search": query}},
            {"score": {"$meta": "textScore"}},
        ).sort([("score", {"$meta": "textScore"})])
        return list(cursor)

    # ── Writes ───────────────────────────────────────────────────────────

    def insert_one(self, document: dict[str, Any]) -> dict[str, Any]:
        try:
            result = self._collection.insert_one(document)
        except MongoDuplicateKeyError:
            raise DuplicateKeyError(
                f"restaurant_id '{document.get('restaurant_id')}' already exists"
            ) from None
        document["_id"] = result.inserted_id
        return document

    def insert_many(
        self,
        documents: list[dict[str, Any]],
        partial_tolerant: bool = True,
    ) -> BulkInsertResult:
        """
        Insert a batch of documents.

        With ``partial_tolerant`` the write is unordered: every document is
        attempted and the result reports each one as inserted, duplicate or
        failed. Otherwise the first failure stops the batch and is raised.
        """
        if not documents:
            return BulkInsertResult(inserted_count=0)

        outcomes = [InsertOutcome.inserted] * len(documents)
        try:
            result = self._collection.insert_many(documents, ordered=not partial_tolerant)
        except BulkWriteError as exc:
            write_errors = exc.details.get("writeErrors", [])
            if not partial_tolerant:
                first = write_errors[0] if write_errors else {}
                if first.get("code") == DUPLICATE_KEY_CODE:
                    raise DuplicateKeyError(first.get("errmsg")) from exc
                raise ValidationFailedError([first.get("errmsg", str(exc))]) from exc

            errors: dict[int, str] = {}
            for err in write_errors:
                index = err["index"]
                if err.get("code") == DUPLICATE_KEY_CODE:
                    outcomes[index] = InsertOutcome.duplicate
                else:
                    outcomes[index] = InsertOutcome.failed
                errors[index] = err.get("errmsg", "")
            inserted = exc.details.get(
                "nInserted",
                sum(1 for o in outcomes if o is InsertOutcome.inserted),
            )
            logger.warning(
                "Bulk insert finished with %d write errors (%d inserted)",
                len(write_errors), inserted,
            )
            return BulkInsertResult(inserted_count=inserted, outcomes=outcomes, errors=errors)

        return BulkInsertResult(inserted_count=len(result.inserted_ids), outcomes=outcomes)

    def update_by_id(self, restaurant_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        changes = {**patch, "updated_at": _now()}
        document = self._collection.find_one_and_update(
            {"_id": to_object_id(restaurant_id)},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        if document is None:
            raise NotFoundError()
        return document

    def append_subdocument(
        self,
        restaurant_id: str,
        field_name: str,
        value: dict[str, Any],
    ) -> dict[str, Any]:
        if field_name not in SUBDOCUMENT_FIELDS:
            raise ValueError(f"Cannot append to field: {field_name}")
        document = self._collection.find_one_and_update(
            {"_id": to_object_id(restaurant_id)},
            {"$push": {field_name: value}, "$set": {"updated_at": _now()}},
            return_document=ReturnDocument.AFTER,
        )
        if document is None:
            raise NotFoundError()
        return document

    def delete_by_id(self, restaurant_id: str) -> None:
        result = self._collection.delete_one({"_id": to_object_id(restaurant_id)})
        if result.deleted_count == 0:
            raise NotFoundError()
