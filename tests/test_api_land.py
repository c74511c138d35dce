"""Land viewing and planting over HTTP."""

from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from lands import MAX_IMAGE_DATA_CHARS, LandRepository
from main import create_app
from errors import StoreError, UpstreamAuthError
from store import MemoryStore


def _trees(store: MemoryStore, owner_id: str):
    land = asyncio.run(LandRepository(store).get(owner_id))
    return land.trees if land else None


def test_plant_then_view_as_owner_and_visitor(client: TestClient, store: MemoryStore, make_user, login) -> None:
    make_user("alice")
    make_user("bob")
    asyncio.run(LandRepository(store).get_or_create("alice"))

    login("bob")
    response = client.post("/api/land/alice/plant", json={"message": "hi", "treeType": "maple"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert set(body["tree"]) == {"id"}

    trees = _trees(store, "alice")
    assert len(trees) == 1
    assert trees[0].id == body["tree"]["id"]
    assert trees[0].type.value == "maple"
    assert trees[0].planter_id == "bob"
    assert trees[0].message == "hi"

    client.cookies.clear()
    anonymous = client.get("/api/land/alice")
    assert anonymous.status_code == 200
    view = anonymous.json()
    assert view["isOwner"] is False
    assert set(view["trees"][0]) == {"id", "type", "planterName", "plantedAt"}
    assert view["trees"][0]["planterName"] == "Bob"

    login("alice")
    owner_view = client.get("/api/land/alice").json()
    assert owner_view["isOwner"] is True
    assert owner_view["trees"][0]["message"] == "hi"


def test_visitor_response_never_contains_secret(client: TestClient, store: MemoryStore, make_user, login) -> None:
    make_user("alice")
    make_user("bob")
    asyncio.run(LandRepository(store).get_or_create("alice"))
    login("bob")
    client.post("/api/land/alice/plant", json={"message": "secret", "imageData": "c2VjcmV0LWltYWdl"})

    # Even the planter only gets the public projection back.
    response = client.get("/api/land/alice")
    assert "secret" not in response.text
    assert "c2VjcmV0" not in response.text
    assert "alice@example.com" not in response.text


def test_view_creates_missing_land_for_existing_user(client: TestClient, store: MemoryStore, make_user) -> None:
    make_user("alice")
    assert _trees(store, "alice") is None

    response = client.get("/api/land/alice")

    assert response.status_code == 200
    assert response.json()["trees"] == []
    assert _trees(store, "alice") == []


def test_view_unknown_owner_is_404(client: TestClient, store: MemoryStore) -> None:
    response = client.get("/api/land/nobody")
    assert response.status_code == 404
    assert response.json() == {"error": "Land not found"}
    assert _trees(store, "nobody") is None


def test_invalid_land_id_is_404(client: TestClient) -> None:
    response = client.get("/api/land/not.a.valid.id")
    assert response.status_code == 404


def test_plant_requires_login(client: TestClient, make_user, store: MemoryStore) -> None:
    make_user("alice")
    asyncio.run(LandRepository(store).get_or_create("alice"))

    response = client.post("/api/land/alice/plant", json={"message": "hi"})

    assert response.status_code == 401
    assert response.json() == {"error": "Login required"}
    assert _trees(store, "alice") == []


def test_self_plant_is_400_and_leaves_land_alone(client: TestClient, store: MemoryStore, make_user, login) -> None:
    make_user("alice")
    asyncio.run(LandRepository(store).get_or_create("alice"))
    login("alice")

    response = client.post("/api/land/alice/plant", json={"message": "me"})

    assert response.status_code == 400
    assert response.json() == {"error": "Cannot plant on your own land"}
    assert _trees(store, "alice") == []


def test_plant_on_missing_land_is_404(client: TestClient, store: MemoryStore, make_user, login) -> None:
    make_user("bob")
    login("bob")

    response = client.post("/api/land/ghost/plant", json={"message": "hi"})

    assert response.status_code == 404
    assert _trees(store, "ghost") is None


def test_missing_land_wins_over_body_errors(client: TestClient, store: MemoryStore, make_user, login) -> None:
    make_user("bob")
    login("bob")

    for body in ({}, {"message": "hi", "treeType": "oak"}):
        response = client.post("/api/land/ghost/plant", json=body)
        assert response.status_code == 404, body
        assert response.json() == {"error": "Land not found"}


def test_self_plant_wins_over_body_errors(client: TestClient, store: MemoryStore, make_user, login) -> None:
    make_user("alice")
    asyncio.run(LandRepository(store).get_or_create("alice"))
    login("alice")

    for body in ({}, {"imageData": "a" * (MAX_IMAGE_DATA_CHARS + 1)}):
        response = client.post("/api/land/alice/plant", json=body)
        assert response.status_code == 400, body
        assert response.json() == {"error": "Cannot plant on your own land"}
    assert _trees(store, "alice") == []


def test_plant_validation_errors(client: TestClient, store: MemoryStore, make_user, login) -> None:
    make_user("alice")
    make_user("bob")
    asyncio.run(LandRepository(store).get_or_create("alice"))
    login("bob")

    cases = [
        ({}, "Message or image required"),
        ({"message": "", "imageData": ""}, "Message or image required"),
        ({"message": "hi", "treeType": "oak"}, "Invalid tree type"),
        ({"imageData": "a" * (MAX_IMAGE_DATA_CHARS + 1)}, "Image too large (max 500KB)"),
    ]
    for body, error in cases:
        response = client.post("/api/land/alice/plant", json=body)
        assert response.status_code == 400, body
        assert response.json() == {"error": error}

    malformed = client.post("/api/land/alice/plant", json={"message": 42})
    assert malformed.status_code == 400
    assert _trees(store, "alice") == []


def test_unknown_api_path_is_json_404(client: TestClient) -> None:
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert "error" in response.json()


class BrokenStore(MemoryStore):
    async def get(self, key):
        raise StoreError("connection reset by peer")


def test_store_failure_is_generic_500(settings, provider) -> None:
    client = TestClient(create_app(settings=settings, store=BrokenStore(), identity_provider=provider))

    response = client.get("/api/land/alice")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_upstream_error_outside_login_renders_generic_500(settings, store: MemoryStore, provider) -> None:
    app = create_app(settings=settings, store=store, identity_provider=provider)

    async def failing_step():
        raise UpstreamAuthError("token_error", "invalid_grant: code already redeemed")

    app.add_api_route("/api/failing-step", failing_step, methods=["GET"])
    response = TestClient(app).get("/api/failing-step")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
