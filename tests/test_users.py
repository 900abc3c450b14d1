import asyncio
from unittest.mock import MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient

from users_api.main import create_app

ANN = {"id": "u1", "name": "Ann", "age": 30}


def test_user_lifecycle(client):
    response = client.post("/users", json=ANN)
    assert response.status_code == 201
    assert response.json() == ANN

    response = client.get("/users/u1")
    assert response.status_code == 200
    assert response.json() == ANN

    response = client.put("/users/u1", json={"age": 31})
    assert response.status_code == 200
    assert response.json() == {"id": "u1", "name": "Ann", "age": 31}

    response = client.delete("/users/u1")
    assert response.status_code == 204
    assert response.content == b""

    response = client.get("/users/u1")
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_create_round_trip_with_avatar(client):
    user = {**ANN, "avatar": "https://avatars-test.s3.us-east-1.amazonaws.com/avatars/u1.jpg"}
    assert client.post("/users", json=user).status_code == 201

    response = client.get("/users/u1")
    assert response.json() == user


def test_create_ignores_unknown_fields(client, table):
    response = client.post("/users", json={**ANN, "role": "admin"})
    assert response.status_code == 201
    assert response.json() == ANN
    assert "role" not in table.get_item(Key={"id": "u1"})["Item"]


def test_create_duplicate_id_conflicts(client):
    assert client.post("/users", json=ANN).status_code == 201

    response = client.post("/users", json={**ANN, "name": "Bob"})
    assert response.status_code == 409
    assert response.json()["code"] == "CONFLICT"

    # First write wins
    assert client.get("/users/u1").json()["name"] == "Ann"


@pytest.mark.parametrize(
    "payload",
    [
        {"name": "Ann", "age": 30},
        {"id": "", "name": "Ann", "age": 30},
        {"id": "u1", "name": "", "age": 30},
        {"id": "u1", "name": "Ann", "age": -1},
        {"id": "u1", "name": "Ann", "age": "30"},
        {"id": "u1", "name": "Ann", "age": 30.5},
        {"id": "u1", "name": "Ann", "age": True},
        {"id": "u1", "name": "Ann", "age": 10**40},
        {"id": "u1", "name": "Ann", "age": 30, "avatar": "not a url"},
        {"id": "u1", "name": "Ann", "age": 30, "avatar": None},
        {"id": 1, "name": "Ann", "age": 30},
    ],
)
def test_create_rejects_invalid_payload(client, payload):
    response = client.post("/users", json=payload)
    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert len(data["details"]) > 0

    assert client.get("/users").json() == {"items": []}


def test_create_accepts_largest_storable_age(client):
    user = {**ANN, "age": 10**38 - 1}

    assert client.post("/users", json=user).status_code == 201
    assert client.get("/users/u1").json() == user


def test_list_users(client):
    assert client.get("/users").json() == {"items": []}

    for i in range(3):
        client.post("/users", json={"id": f"u{i}", "name": f"User {i}", "age": i})

    items = client.get("/users").json()["items"]
    assert sorted(item["id"] for item in items) == ["u0", "u1", "u2"]
    assert all(isinstance(item["age"], int) for item in items)


def test_list_users_is_capped(make_settings, table, s3_client):
    app = create_app(make_settings(USERS_SCAN_LIMIT=2), table=table, s3_client=s3_client)
    with TestClient(app) as client:
        for i in range(5):
            client.post("/users", json={"id": f"u{i}", "name": "N", "age": 1})

        assert len(client.get("/users").json()["items"]) == 2


def test_update_leaves_unset_fields_untouched(client):
    avatar = "https://example.com/a.png"
    client.post("/users", json={**ANN, "avatar": avatar})

    response = client.put("/users/u1", json={"name": "Annie"})
    assert response.status_code == 200
    assert response.json() == {"id": "u1", "name": "Annie", "age": 30, "avatar": avatar}


def test_update_can_set_avatar(client):
    client.post("/users", json=ANN)

    response = client.put("/users/u1", json={"avatar": "https://example.com/b.png", "age": 32})
    assert response.status_code == 200
    assert response.json() == {**ANN, "age": 32, "avatar": "https://example.com/b.png"}


def test_update_missing_user_is_404(client):
    response = client.put("/users/ghost", json={"age": 40})
    assert response.status_code == 404
    assert response.json()["error"] == "User not found"

    # The conditional write must not create the record
    assert client.get("/users/ghost").status_code == 404


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"unknown": "field"},
        {"age": None},
        {"name": ""},
        {"age": -5},
        {"age": 10**38},
        {"avatar": "nope"},
    ],
)
def test_update_rejects_invalid_payload(client, payload):
    client.post("/users", json=ANN)

    response = client.put("/users/u1", json=payload)
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"
    assert client.get("/users/u1").json() == ANN


def test_empty_update_never_reaches_store(settings):
    table = MagicMock()
    app = create_app(settings, table=table, s3_client=MagicMock())

    with TestClient(app) as client:
        response = client.put("/users/u1", json={})

    assert response.status_code == 400
    table.update_item.assert_not_called()


def test_delete_twice(client):
    client.post("/users", json=ANN)

    assert client.delete("/users/u1").status_code == 204
    response = client.delete("/users/u1")
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_concurrent_creates_same_id(app, table):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        responses = await asyncio.gather(
            client.post("/users", json=ANN),
            client.post("/users", json={**ANN, "name": "Bob"}),
        )

    assert sorted(r.status_code for r in responses) == [201, 409]
    assert table.scan()["Count"] == 1
