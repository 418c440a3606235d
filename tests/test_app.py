"""
Application wiring: readiness gate, error mapping and admin tokens
"""

from pymongo.errors import OperationFailure

from backend.app import create_app
from backend.catalog import CatalogService
from backend.store import DocumentStore

from conftest import TEST_CONFIG


class FailingCollection:
    def find(self, *args, **kwargs):
        raise OperationFailure("not authorized on sportswearDB")


def test_health_reports_ready_store(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.get_json() == {"status": "ok", "database": "ready"}


def test_requests_rejected_until_store_is_ready(database, uploader):
    store = DocumentStore()
    app = create_app(dict(TEST_CONFIG), store=store, uploader=uploader)
    client = app.test_client()

    response = client.get("/products")
    assert response.status_code == 500
    assert response.get_json()["message"] == "Database not initialized. Please try again later."
    assert client.get("/health").status_code == 503

    store.bind(database)

    assert client.get("/products").status_code == 200
    assert client.get("/health").status_code == 200


def test_store_failure_becomes_server_error(client, monkeypatch):
    monkeypatch.setattr(DocumentStore, "products", property(lambda self: FailingCollection()))

    response = client.get("/products")

    assert response.status_code == 500
    body = response.get_json()
    assert body["message"] == "Error fetching products"
    assert "not authorized" in body["error"]


def test_store_marks_admin_email_unique(database, store):
    indexes = database.admin.index_information()

    assert any(
        info.get("unique") and info["key"] == [("email", 1)] for info in indexes.values()
    )


# ---------------------------------------------------------------------------
# Admin token enforcement
# ---------------------------------------------------------------------------

def build_guarded_client(store, uploader):
    config = dict(TEST_CONFIG, ADMIN_AUTH_REQUIRED=True)
    return create_app(config, store=store, uploader=uploader).test_client()


def test_admin_routes_require_token_when_enabled(store, uploader):
    client = build_guarded_client(store, uploader)

    assert client.get("/api/orders").status_code == 401
    assert client.get("/api/total").status_code == 401
    assert client.get("/products").status_code == 200


def test_login_token_unlocks_admin_routes(store, uploader):
    client = build_guarded_client(store, uploader)
    client.post(
        "/register",
        json={"name": "Dana", "email": "dana@example.com", "password": "s3cret-pass"},
    )
    token = client.post(
        "/login", json={"email": "dana@example.com", "password": "s3cret-pass"}
    ).get_json()["access_token"]

    response = client.get("/api/orders", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.get_json() == []


def test_admin_routes_open_by_default(client):
    assert client.get("/api/orders").status_code == 200


def test_unexpected_error_is_rendered_as_json(client, monkeypatch):
    def explode(self):
        raise ZeroDivisionError("division by zero")

    monkeypatch.setattr(CatalogService, "list_products", explode)

    response = client.get("/products")

    assert response.status_code == 500
    assert response.is_json
    assert response.get_json() == {
        "message": "Internal server error",
        "error": "division by zero",
    }


def test_unknown_route_is_rendered_as_json(client):
    response = client.get("/no-such-route")

    assert response.status_code == 404
    assert response.is_json
    assert response.get_json()["message"]
