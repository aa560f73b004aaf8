from __future__ import annotations

from typing import List

import pytest
from fastapi.testclient import TestClient

import main
from config import Configuration
from models import DiscoveryQuery, DishMediaItem, Location, PlaceInfo, Review
from services.google_places import ProviderError

AUTH = {"Authorization": "Bearer tok", "x-app-version": "2.0.0"}


def _item(place_id: str = "p1") -> DishMediaItem:
    return DishMediaItem(
        dish_id=f"places/{place_id}/photos/0",
        dish_name="Menya",
        category="ramen_restaurant",
        photo_url="https://img.example/1",
        rating=4.2,
        review_count=10,
        distance_meters=120.5,
        place=PlaceInfo(
            place_id=place_id,
            name="Menya",
            vicinity="Shibuya",
            location=Location(lat=35.001, lng=139.0),
            google_map_url="https://www.google.com/maps/search/?api=1&query=Menya&query_place_id=p1",
        ),
        reviews=[Review(author="Aki", rating=5.0, text="Great", translated=True)],
    )


class StubAggregator:
    def __init__(self, items: List[DishMediaItem] = None, error: Exception = None) -> None:
        self.items = items or []
        self.error = error
        self.queries: list[DiscoveryQuery] = []

    async def discover(self, query: DiscoveryQuery) -> List[DishMediaItem]:
        self.queries.append(query)
        if self.error:
            raise self.error
        return self.items


@pytest.fixture
def cfg():
    return Configuration(google_places_api_key="k")


@pytest.fixture
def stub():
    return StubAggregator([_item()])


@pytest.fixture
def client(cfg, stub):
    main.app.dependency_overrides[main.get_config] = lambda: cfg
    main.app.dependency_overrides[main.get_aggregator] = lambda: stub
    try:
        yield TestClient(main.app)
    finally:
        main.app.dependency_overrides.clear()


def test_list_dish_media_get(client, stub) -> None:
    resp = client.get("/v1/listDishMedia?lat=35&lng=139&limit=5&lang=en&category=ramen_restaurant", headers=AUTH)
    assert resp.status_code == 200
    body = resp.json()
    assert body[0]["dishId"] == "places/p1/photos/0"
    assert body[0]["distanceMeters"] == 120.5
    assert body[0]["place"]["placeId"] == "p1"
    assert body[0]["place"]["location"] == {"lat": 35.001, "lng": 139.0}
    assert body[0]["reviews"][0]["translated"] is True
    q = stub.queries[0]
    assert (q.limit, q.language_tag, q.category_filter) == (5, "en", ("ramen_restaurant",))
    assert resp.headers["x-request-id"]


def test_list_dish_media_post_json(client, stub) -> None:
    resp = client.post("/v2/listDishMedia", json={"lat": 35.0, "lng": 139.0, "radius": 300}, headers=AUTH)
    assert resp.status_code == 200
    assert stub.queries[0].radius_meters == 300


def test_request_id_is_echoed(client) -> None:
    resp = client.get("/v1/listDishMedia?lat=35&lng=139", headers={**AUTH, "x-request-id": "abc"})
    assert resp.headers["x-request-id"] == "abc"


def test_invalid_query_is_400_with_field(client, stub) -> None:
    resp = client.get("/v1/listDishMedia?lat=35&lng=139&radius=9000", headers=AUTH)
    assert resp.status_code == 400
    assert resp.json()["field"] == "radius"
    assert stub.queries == []


def test_missing_bearer_is_401(client) -> None:
    resp = client.get("/v1/listDishMedia?lat=35&lng=139", headers={"x-app-version": "2.0.0"})
    assert resp.status_code == 401


def test_unknown_version_is_404(client) -> None:
    resp = client.get("/v3/listDishMedia?lat=35&lng=139", headers=AUTH)
    assert resp.status_code == 404


def test_maintenance_mode_marker(client, cfg) -> None:
    cfg.maintenance_mode = True
    resp = client.get("/v1/listDishMedia?lat=35&lng=139", headers=AUTH)
    assert resp.status_code == 403
    assert resp.json()["error"] == "Service maintenance"
    assert resp.headers["x-request-id"]


@pytest.mark.parametrize("version", ["1.9.9", "", "garbage"])
def test_unsupported_version_marker(client, cfg, version) -> None:
    cfg.min_app_version = "2.0"
    resp = client.get("/v1/listDishMedia?lat=35&lng=139", headers={**AUTH, "x-app-version": version})
    assert resp.status_code == 403
    assert resp.json()["error"] == "Unsupported version"


def test_min_version_met(client, cfg) -> None:
    cfg.min_app_version = "2.0"
    resp = client.get("/v1/listDishMedia?lat=35&lng=139", headers=AUTH)
    assert resp.status_code == 200


def test_search_failure_is_502(client, stub) -> None:
    stub.error = ProviderError("RESOURCE_EXHAUSTED", "quota", 429)
    resp = client.get("/v1/listDishMedia?lat=35&lng=139", headers=AUTH)
    assert resp.status_code == 502
    assert resp.json()["status"] == "RESOURCE_EXHAUSTED"


def test_unexpected_failure_is_500(client, stub) -> None:
    stub.error = RuntimeError("kaboom")
    resp = client.get("/v1/listDishMedia?lat=35&lng=139", headers=AUTH)
    assert resp.status_code == 500


def test_missing_api_key_is_503() -> None:
    main.app.dependency_overrides[main.get_config] = lambda: Configuration()
    try:
        resp = TestClient(main.app).get("/v1/listDishMedia?lat=35&lng=139", headers=AUTH)
    finally:
        main.app.dependency_overrides.clear()
    assert resp.status_code == 503


def test_healthz() -> None:
    assert TestClient(main.app).get("/healthz").json() == {"status": "ok"}


def test_repeated_category_params_are_all_kept(client, stub) -> None:
    resp = client.get(
        "/v1/listDishMedia?lat=35&lng=139&category=ramen_restaurant&category=sushi_restaurant,cafe",
        headers=AUTH,
    )
    assert resp.status_code == 200
    assert stub.queries[0].category_filter == ("ramen_restaurant", "sushi_restaurant", "cafe")
