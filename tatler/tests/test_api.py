from __future__ import annotations

from datetime import datetime, timezone

from bson import ObjectId
from fastapi.testclient import TestClient

from tatler.app import app, get_restaurant_service
from tatler.restaurants.errors import (
    DuplicateKeyError,
    InvalidIdentifierError,
    NotFoundError,
)

NOW = datetime(2025, 10, 10, 12, 0, tzinfo=timezone.utc)


def _echo_insert(document):
    return {**document, "_id": ObjectId()}


# ── Health / routing ─────────────────────────────────────────────────────


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["status"] == "ok"
    assert "timestamp" in body


def test_unknown_route_envelope(client):
    resp = client.get("/nowhere")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "Route not found", "path": "/nowhere"}


def test_unhandled_error_is_generic_500(service, repository):
    repository.find_one.side_effect = RuntimeError("connection reset by peer")
    app.dependency_overrides[get_restaurant_service] = lambda: service
    try:
        c = TestClient(app, raise_server_exceptions=False)
        resp = c.get("/restaurants/652f1c2e9b1e8a3d4c5b6a7f")
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Internal Server Error"}


# ── List ─────────────────────────────────────────────────────────────────


def test_list_third_page_of_25(client, repository, make_document):
    repository.find_many.return_value = ([make_document() for _ in range(5)], 25)

    resp = client.get("/restaurants", params={"page": 3, "limit": 10})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert len(body["data"]) == 5
    assert body["pagination"] == {
        "current_page": 3,
        "total_pages": 3,
        "total_documents": 25,
        "limit": 10,
    }


def test_list_defaults(client, repository):
    repository.find_many.return_value = ([], 0)
    resp = client.get("/restaurants")
    assert resp.status_code == 200
    kwargs = repository.find_many.call_args.kwargs
    assert kwargs["limit"] == 10
    assert kwargs["offset"] == 0


def test_list_sort_alias(client, repository):
    repository.find_many.return_value = ([], 0)
    client.get("/restaurants", params={"sortBy": "rating", "cuisine": "American"})
    assert repository.find_many.call_args.kwargs["sort"] == [("grades.score", -1)]
    assert repository.find_many.call_args.args[0] == {"cuisine": "American"}


def test_list_rejects_bad_page(client, repository):
    resp = client.get("/restaurants", params={"page": 0})
    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert resp.json()["message"] == "Validation Error"
    repository.find_many.assert_not_called()


def test_list_rejects_unknown_sort(client, repository):
    resp = client.get("/restaurants", params={"sortBy": "price"})
    assert resp.status_code == 400


# ── Get ──────────────────────────────────────────────────────────────────


def test_get_restaurant_serializes_id(client, repository, make_document):
    doc = make_document()
    repository.find_one.return_value = doc

    resp = client.get(f"/restaurants/{doc['_id']}")

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["id"] == str(doc["_id"])
    assert data["restaurant_id"] == "40356018"
    assert data["address"]["coord"] == [-73.982419, 40.579505]
    assert "_id" not in data


def test_repeated_get_is_identical(client, repository, make_document):
    doc = make_document()
    repository.find_one.return_value = doc
    first = client.get(f"/restaurants/{doc['_id']}").json()
    second = client.get(f"/restaurants/{doc['_id']}").json()
    assert first == second


def test_get_not_found(client, repository):
    repository.find_one.side_effect = NotFoundError()
    resp = client.get("/restaurants/652f1c2e9b1e8a3d4c5b6a7f")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "Restaurant not found"}


def test_get_invalid_id(client, repository):
    repository.find_one.side_effect = InvalidIdentifierError()
    resp = client.get("/restaurants/not-an-id")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid ID format"


# ── Create ───────────────────────────────────────────────────────────────


def test_create_restaurant(client, repository):
    repository.insert_one.side_effect = _echo_insert
    resp = client.post("/restaurants", json={
        "name": "Wild Asia",
        "borough": "Bronx",
        "cuisine": "Asian",
        "address": {"street": "Southern Boulevard", "coord": [-73.87, 40.85]},
    })
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Restaurant created successfully"
    assert body["data"]["restaurant_id"]
    assert body["data"]["grades"] == []
    assert body["data"]["comments"] == []


def test_create_missing_fields(client, repository):
    resp = client.post("/restaurants", json={"name": "Wild Asia"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == "Missing required fields: borough, cuisine, address.street"
    assert "cuisine is required" in body["errors"]
    repository.insert_one.assert_not_called()


def test_create_and_update_reject_three_element_coord(client, repository):
    address = {"street": "Southern Boulevard", "coord": [-73.9, 40.7, 99.0]}

    created = client.post("/restaurants", json={
        "name": "Wild Asia",
        "borough": "Bronx",
        "cuisine": "Asian",
        "address": address,
    })
    updated = client.put("/restaurants/652f1c2e9b1e8a3d4c5b6a7f", json={"address": address})

    for resp in (created, updated):
        assert resp.status_code == 400
        assert resp.json()["errors"] == ["coord must have [longitude, latitude]"]
    repository.insert_one.assert_not_called()
    repository.update_by_id.assert_not_called()


def test_create_duplicate_restaurant_id(client, repository):
    repository.insert_one.side_effect = DuplicateKeyError("restaurant_id '1' already exists")
    resp = client.post("/restaurants", json={
        "restaurant_id": "1",
        "name": "Wild Asia",
        "borough": "Bronx",
        "cuisine": "Asian",
        "address": {"street": "Southern Boulevard"},
    })
    assert resp.status_code == 400
    assert "already exists" in resp.json()["message"]


# ── Update / delete ──────────────────────────────────────────────────────


def test_update_ignores_restaurant_id(client, repository, make_document):
    doc = make_document(name="Renamed")
    repository.update_by_id.return_value = doc

    resp = client.put(f"/restaurants/{doc['_id']}", json={"name": "Renamed", "restaurant_id": "HACK"})

    assert resp.status_code == 200
    assert resp.json()["data"]["name"] == "Renamed"
    assert repository.update_by_id.call_args.args[1] == {"name": "Renamed"}


def test_update_validation_error(client, repository):
    resp = client.put("/restaurants/652f1c2e9b1e8a3d4c5b6a7f", json={"cuisine": ""})
    assert resp.status_code == 400
    assert resp.json()["errors"] == ["cuisine cannot be empty"]
    repository.update_by_id.assert_not_called()


def test_update_not_found(client, repository):
    repository.update_by_id.side_effect = NotFoundError()
    resp = client.put("/restaurants/652f1c2e9b1e8a3d4c5b6a7f", json={"name": "X"})
    assert resp.status_code == 404


def test_delete_restaurant(client, repository):
    resp = client.delete("/restaurants/652f1c2e9b1e8a3d4c5b6a7f")
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Restaurant deleted successfully"}
    repository.delete_by_id.assert_called_once_with("652f1c2e9b1e8a3d4c5b6a7f")


def test_delete_not_found(client, repository):
    repository.delete_by_id.side_effect = NotFoundError()
    resp = client.delete("/restaurants/652f1c2e9b1e8a3d4c5b6a7f")
    assert resp.status_code == 404


# ── Comments / ratings ───────────────────────────────────────────────────


def test_add_comment(client, repository, make_document):
    doc = make_document(comments=[{"id": "c1", "date": NOW, "comment": "Great", "user_id": "anonymous"}])
    repository.append_subdocument.return_value = doc

    resp = client.post(f"/restaurants/{doc['_id']}/comments", json={"comment": "Great"})

    assert resp.status_code == 201
    assert resp.json()["data"]["comments"][0]["user_id"] == "anonymous"
    entry = repository.append_subdocument.call_args.args[2]
    assert entry["user_id"] == "anonymous"


def test_add_empty_comment(client, repository):
    resp = client.post("/restaurants/652f1c2e9b1e8a3d4c5b6a7f/comments", json={"comment": ""})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Comment cannot be empty"
    repository.append_subdocument.assert_not_called()


def test_add_comment_not_found(client, repository):
    repository.append_subdocument.side_effect = NotFoundError()
    resp = client.post("/restaurants/652f1c2e9b1e8a3d4c5b6a7f/comments", json={"comment": "Hi"})
    assert resp.status_code == 404


def test_add_rating(client, repository, make_document):
    doc = make_document(grades=[{"date": NOW, "score": 4}])
    repository.append_subdocument.return_value = doc

    resp = client.post(f"/restaurants/{doc['_id']}/ratings", json={"score": 4})

    assert resp.status_code == 201
    assert resp.json()["message"] == "Rating added successfully"
    assert resp.json()["data"]["grades"][0]["score"] == 4


def test_add_rating_out_of_range(client, repository):
    for score in (0, 6, None):
        resp = client.post("/restaurants/652f1c2e9b1e8a3d4c5b6a7f/ratings", json={"score": score})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Rating must be between 1 and 5"
    repository.append_subdocument.assert_not_called()


# ── Search ───────────────────────────────────────────────────────────────


def test_search_missing_q(client, repository):
    resp = client.get("/restaurants/search")
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Missing search parameter: q"}
    repository.text_search.assert_not_called()


def test_search_returns_ranked_results(client, repository, make_document):
    repository.text_search.return_value = [
        make_document(name="Pizza Roma", score=2.0),
        make_document(name="Pizza Hut", score=1.1),
    ]
    resp = client.get("/restaurants/search", params={"q": "pizza"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 2
    assert [d["name"] for d in body["data"]] == ["Pizza Roma", "Pizza Hut"]
    assert body["data"][0]["score"] == 2.0
