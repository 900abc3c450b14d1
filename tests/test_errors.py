from decimal import Rounded
from unittest.mock import MagicMock

from botocore.exceptions import ClientError, EndpointConnectionError
from fastapi.testclient import TestClient
from pydantic import BaseModel

from users_api.core.exceptions import ConflictError, ResourceNotFoundError
from users_api.core.middleware import SECURITY_HEADERS
from users_api.main import create_app


def _access_denied(operation: str) -> ClientError:
    return ClientError(
        {"Error": {"Code": "AccessDeniedException", "Message": "arn:aws:iam::123:role/secret is not authorized"}},
        operation,
    )


def test_404_not_found(client):
    response = client.get("/non-existent-route")
    assert response.status_code == 404
    data = response.json()
    assert "error" in data
    assert "code" in data
    assert data["code"] == "HTTP_ERROR"


def test_405_method_not_allowed(client):
    response = client.patch("/users/u1", json={"age": 1})
    assert response.status_code == 405
    assert response.json()["code"] == "HTTP_ERROR"


def test_validation_error_structure(app, client):
    class Item(BaseModel):
        name: str
        price: int

    @app.post("/test-validation")
    def create_item(item: Item):
        return item

    response = client.post("/test-validation", json={"name": "foo", "price": "invalid"})
    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert "details" in data
    assert len(data["details"]) > 0
    assert data["details"][0]["loc"] == ["body", "price"]


def test_malformed_json_is_400(client):
    response = client.post(
        "/users",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_custom_exceptions(app, client):
    @app.get("/test-not-found")
    def trigger_not_found():
        raise ResourceNotFoundError(message="Item not found")

    @app.get("/test-conflict")
    def trigger_conflict():
        raise ConflictError(message="Already there", details={"id": "x"})

    response = client.get("/test-not-found")
    assert response.status_code == 404
    data = response.json()
    assert data["code"] == "NOT_FOUND"
    assert data["error"] == "Item not found"

    response = client.get("/test-conflict")
    assert response.status_code == 409
    assert response.json() == {"error": "Already there", "code": "CONFLICT", "details": {"id": "x"}}


def test_unhandled_exception_is_opaque(app):
    @app.get("/test-crash")
    def crash():
        raise RuntimeError("database password is hunter2")

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/test-crash")

    assert response.status_code == 500
    data = response.json()
    assert data == {"error": "Internal error", "code": "INTERNAL_ERROR", "details": None}


def test_store_failures_map_to_opaque_500(settings):
    table = MagicMock()
    table.put_item.side_effect = _access_denied("PutItem")
    table.scan.side_effect = _access_denied("Scan")
    table.get_item.side_effect = EndpointConnectionError(endpoint_url="https://dynamodb.us-east-1.amazonaws.com")
    table.update_item.side_effect = _access_denied("UpdateItem")
    table.delete_item.side_effect = _access_denied("DeleteItem")

    app = create_app(settings, table=table, s3_client=MagicMock())

    with TestClient(app) as client:
        responses = [
            client.post("/users", json={"id": "u1", "name": "Ann", "age": 30}),
            client.get("/users"),
            client.get("/users/u1"),
            client.put("/users/u1", json={"age": 31}),
            client.delete("/users/u1"),
        ]

    for response in responses:
        assert response.status_code == 500
        assert response.json() == {"error": "Internal error", "code": "INTERNAL_ERROR", "details": None}
        assert "secret" not in response.text


def test_non_sdk_store_failures_keep_response_headers(settings):
    table = MagicMock()
    table.put_item.side_effect = Rounded()
    table.scan.side_effect = TypeError("Unsupported type <class 'float'>")
    table.get_item.side_effect = RuntimeError("connection pool exhausted")

    app = create_app(settings, table=table, s3_client=MagicMock())

    with TestClient(app, raise_server_exceptions=False) as client:
        responses = [
            client.post("/users", json={"id": "u1", "name": "Ann", "age": 30}),
            client.get("/users"),
            client.get("/users/u1", headers={"X-Request-ID": "req-42"}),
        ]

    for response in responses:
        assert response.status_code == 500
        assert response.json() == {"error": "Internal error", "code": "INTERNAL_ERROR", "details": None}
        assert "X-Request-ID" in response.headers
        for header, value in SECURITY_HEADERS.items():
            assert response.headers[header] == value

    assert responses[2].headers["X-Request-ID"] == "req-42"
