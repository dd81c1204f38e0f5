from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import create_autospec

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from tatler.app import app, get_restaurant_service
from tatler.restaurants.repository import RestaurantRepository
from tatler.restaurants.service import RestaurantService

NOW = datetime(2025, 10, 10, 12, 0, tzinfo=timezone.utc)


def _make_document(**overrides) -> dict:
    doc = {
        "_id": ObjectId(),
        "restaurant_id": "40356018",
        "name": "Riviera Caterer",
        "borough": "Brooklyn",
        "cuisine": "American",
        "phone": "718-372-0100",
        "website": "",
        "price_range": "$$",
        "address": {
            "building": "2780",
            "street": "Stillwell Avenue",
            "zipcode": "11224",
            "coord": [-73.982419, 40.579505],
        },
        "grades": [],
        "comments": [],
        "created_at": NOW,
        "updated_at": NOW,
    }
    doc.update(overrides)
    return doc


@pytest.fixture
def make_document():
    return _make_document


@pytest.fixture
def repository():
    return create_autospec(RestaurantRepository, instance=True)


@pytest.fixture
def service(repository):
    return RestaurantService(repository)


@pytest.fixture
def client(service):
    # No lifespan: the mocked service stands in for the MongoDB-backed one.
    app.dependency_overrides[get_restaurant_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()
