from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

from .errors import MissingRequiredFieldError

# Fields checked on every CSV row. "street" lives under address once normalized.
IMPORT_REQUIRED_FIELDS: tuple[str, ...] = ("restaurant_id", "name", "cuisine", "street")

# The API create path additionally needs a borough.
CREATE_REQUIRED_FIELDS: tuple[str, ...] = ("name", "borough", "cuisine", "street")

OPTIONAL_DEFAULTS: dict[str, str] = {
    "borough": "",
    "phone": "",
    "website": "",
    "price_range": "$$",
}

LONGITUDE_BOUND = 180.0
LATITUDE_BOUND = 90.0


def _clean(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


def parse_coordinate(value: Any, bound: float) -> float:
    """Parse a coordinate, substituting 0.0 for anything unusable or out of range."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return 0.0

    if not math.isfinite(number) or abs(number) > bound:
        return 0.0
    return number


def _address_source(raw: Mapping[str, Any]) -> Mapping[str, Any]:
    address = raw.get("address")
    if isinstance(address, Mapping):
        return address
    return raw


def _raw_coordinates(raw: Mapping[str, Any]) -> tuple[Any, Any]:
    address = raw.get("address")
    if isinstance(address, Mapping):
        coord = address.get("coord")
        if (
            isinstance(coord, Sequence)
            and not isinstance(coord, (str, bytes))
            and len(coord) == 2
        ):
            return coord[0], coord[1]
        return None, None
    return raw.get("longitude"), raw.get("latitude")


def _field_value(raw: Mapping[str, Any], field: str) -> str:
    if field == "street":
        return _clean(_address_source(raw).get("street"))
    return _clean(raw.get(field))


def find_missing_fields(
    raw: Mapping[str, Any],
    required: Sequence[str] = IMPORT_REQUIRED_FIELDS,
) -> list[str]:
    """Return the required fields that are absent or blank after trimming."""
    return [f for f in required if not _field_value(raw, f)]


def normalize_record(
    raw: Mapping[str, Any],
    *,
    required: Sequence[str] = IMPORT_REQUIRED_FIELDS,
    row_index: int | None = None,
) -> dict[str, Any]:
    """
    Validate a CSV row or API payload and build a storage-ready document.

    Accepts either flat CSV columns (building, street, zipcode, longitude,
    latitude) or a nested ``address`` mapping with ``coord`` as
    ``[longitude, latitude]``.

    Raises ``MissingRequiredFieldError`` when any required field is blank.
    Bad coordinates never reject a record; they become 0.0.
    """
    missing = find_missing_fields(raw, required)
    if missing:
        raise MissingRequiredFieldError(missing, row_index=row_index)

    address = _address_source(raw)
    raw_lon, raw_lat = _raw_coordinates(raw)

    document: dict[str, Any] = {
        "restaurant_id": _clean(raw.get("restaurant_id")),
        "name": _clean(raw.get("name")),
        "cuisine": _clean(raw.get("cuisine")),
    }
    for field, default in OPTIONAL_DEFAULTS.items():
        document[field] = _clean(raw.get(field)) or default

    document["address"] = {
        "building": _clean(address.get("building")),
        "street": _clean(address.get("street")),
        "zipcode": _clean(address.get("zipcode")),
        "coord": [
            parse_coordinate(raw_lon, LONGITUDE_BOUND),
            parse_coordinate(raw_lat, LATITUDE_BOUND),
        ],
    }
    return document
