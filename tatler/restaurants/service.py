from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING

from .errors import (
    MissingParameterError,
    MissingRequiredFieldError,
    OutOfRangeError,
    ValidationFailedError,
)
from .repository import RestaurantRepository
from .validation import (
    CREATE_REQUIRED_FIELDS,
    LATITUDE_BOUND,
    LONGITUDE_BOUND,
    OPTIONAL_DEFAULTS,
    find_missing_fields,
    normalize_record,
    parse_coordinate,
)

logger = logging.getLogger(__name__)

SORT_OPTIONS: dict[str, list[tuple[str, int]]] = {
    "rating": [("grades.score", DESCENDING)],
    "name": [("name", ASCENDING)],
}

# Never writable through an update.
PROTECTED_FIELDS = frozenset({"_id", "id", "restaurant_id", "created_at", "grades", "comments"})
NON_EMPTY_FIELDS = ("name", "cuisine")

MIN_RATING = 1
MAX_RATING = 5


def _now() -> datetime:
    return datetime.now(timezone.utc)


def generate_restaurant_id() -> str:
    # ObjectId hex: timestamp + per-process random + counter, so concurrent
    # creates in the same millisecond still get distinct ids.
    return f"R{ObjectId()}"


def _is_blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def _has_bad_coord_shape(address: dict[str, Any]) -> bool:
    coord = address.get("coord")
    return coord is not None and (not isinstance(coord, (list, tuple)) or len(coord) != 2)


class RestaurantService:
    """Validate-then-delegate orchestration for every restaurant endpoint."""

    def __init__(self, repository: RestaurantRepository) -> None:
        self.repository = repository

    def list_restaurants(
        self,
        page: int = 1,
        limit: int = 10,
        cuisine: str | None = None,
        borough: str | None = None,
        sort_by: str | None = None,
    ) -> tuple[list[dict[str, Any]], dict[str, int]]:
        if page < 1 or limit < 1:
            raise ValidationFailedError(["page and limit must be positive integers"])
        if sort_by is not None and sort_by not in SORT_OPTIONS:
            raise ValidationFailedError([f"sortBy must be one of: {', '.join(SORT_OPTIONS)}"])

        query: dict[str, Any] = {}
        if cuisine:
            query["cuisine"] = cuisine
        if borough:
            query["borough"] = borough

        documents, total = self.repository.find_many(
            query,
            sort=SORT_OPTIONS.get(sort_by) if sort_by else None,
            limit=limit,
            offset=(page - 1) * limit,
        )
        pagination = {
            "current_page": page,
            "total_pages": math.ceil(total / limit),
            "total_documents": total,
            "limit": limit,
        }
        return documents, pagination

    def get_restaurant(self, restaurant_id: str) -> dict[str, Any]:
        return self.repository.find_one(restaurant_id)

    def create_restaurant(self, payload: dict[str, Any]) -> dict[str, Any]:
        missing = find_missing_fields(payload, CREATE_REQUIRED_FIELDS)
        if missing:
            raise MissingRequiredFieldError(
                ["address.street" if f == "street" else f for f in missing]
            )

        address = payload.get("address")
        if isinstance(address, dict) and _has_bad_coord_shape(address):
            raise ValidationFailedError(["coord must have [longitude, latitude]"])

        raw = dict(payload)
        if _is_blank(raw.get("restaurant_id")):
            raw["restaurant_id"] = generate_restaurant_id()

        document = normalize_record(raw, required=CREATE_REQUIRED_FIELDS)
        now = _now()
        document.update({
            "grades": [],
            "comments": [],
            "created_at": now,
            "updated_at": now,
        })
        created = self.repository.insert_one(document)
        logger.info("Created restaurant %s (%s)", created["restaurant_id"], created["_id"])
        return created

    def update_restaurant(self, restaurant_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        changes = {k: v for k, v in patch.items() if k not in PROTECTED_FIELDS}

        errors = [f"{f} cannot be empty" for f in NON_EMPTY_FIELDS if f in changes and _is_blank(changes[f])]
        for field_name, value in changes.items():
            if field_name != "address" and value is not None and not isinstance(value, str):
                errors.append(f"{field_name} must be a string")

        if "address" in changes:
            address = changes["address"] or {}
            if _is_blank(address.get("street")):
                errors.append("address.street is required")
            if _has_bad_coord_shape(address):
                errors.append("coord must have [longitude, latitude]")
            if not errors:
                changes["address"] = self._normalize_address(address)

        if errors:
            raise ValidationFailedError(errors)

        for field_name, value in changes.items():
            if field_name == "address":
                continue
            value = (value or "").strip()
            changes[field_name] = value or OPTIONAL_DEFAULTS.get(field_name, "")

        return self.repository.update_by_id(restaurant_id, changes)

    @staticmethod
    def _normalize_address(address: dict[str, Any]) -> dict[str, Any]:
        coord = address.get("coord") or [None, None]
        return {
            "building": str(address.get("building") or "").strip(),
            "street": str(address["street"]).strip(),
            "zipcode": str(address.get("zipcode") or "").strip(),
            "coord": [
                parse_coordinate(coord[0], LONGITUDE_BOUND),
                parse_coordinate(coord[1], LATITUDE_BOUND),
            ],
        }

    def delete_restaurant(self, restaurant_id: str) -> None:
        self.repository.delete_by_id(restaurant_id)
        logger.info("Deleted restaurant %s", restaurant_id)

    def add_comment(
        self,
        restaurant_id: str,
        comment: str | None,
        user_id: str | None = None,
        rating: int | None = None,
    ) -> dict[str, Any]:
        if _is_blank(comment):
            raise ValidationFailedError(message="Comment cannot be empty")
        if rating is not None and not MIN_RATING <= rating <= MAX_RATING:
            raise OutOfRangeError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")

        entry: dict[str, Any] = {
            "id": str(ObjectId()),
            "date": _now(),
            "comment": comment.strip(),
            "user_id": user_id.strip() if not _is_blank(user_id) else "anonymous",
        }
        if rating is not None:
            entry["rating"] = rating
        return self.repository.append_subdocument(restaurant_id, "comments", entry)

    def add_rating(
        self,
        restaurant_id: str,
        score: float | None,
        grade: str | None = None,
    ) -> dict[str, Any]:
        if score is None or not MIN_RATING <= score <= MAX_RATING:
            raise OutOfRangeError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")

        entry: dict[str, Any] = {"date": _now(), "score": int(score)}
        if not _is_blank(grade):
            entry["grade"] = grade.strip()
        return self.repository.append_subdocument(restaurant_id, "grades", entry)

    def search(self, query: str | None) -> list[dict[str, Any]]:
        if _is_blank(query):
            raise MissingParameterError("q")
        return self.repository.text_search(query.strip())
