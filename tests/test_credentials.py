"""
Admin registration and login
"""

import pytest
from bson import ObjectId

from backend.credentials import CredentialService
from backend.errors import ConflictError
from backend.store import DocumentStore


class BlindLookup:
    """Collection wrapper whose find_one never sees existing admins."""

    def __init__(self, collection):
        self._collection = collection

    def find_one(self, *args, **kwargs):
        return None

    def __getattr__(self, name):
        return getattr(self._collection, name)


# ---------------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------------

def test_register_stores_hashed_password_and_null_fingerprint(client, database):
    response = client.post(
        "/register",
        json={"name": "Dana", "email": "Dana@Example.com ", "password": "s3cret-pass"},
    )

    assert response.status_code == 201
    body = response.get_json()
    assert body["message"] == "Admin registered successfully"
    assert "password" not in body

    admin = database.admin.find_one({"_id": ObjectId(body["id"])})
    assert admin["email"] == "dana@example.com"
    assert admin["fingerprint"] is None
    assert admin["password"] != "s3cret-pass"
    assert admin["password"].startswith("$2b$10$")


def test_register_keeps_fingerprint(client, database):
    client.post(
        "/register",
        json={
            "name": "Dana",
            "email": "dana@example.com",
            "password": "s3cret-pass",
            "fingerprint": "device-123",
        },
    )
    assert database.admin.find_one({"email": "dana@example.com"})["fingerprint"] == "device-123"


@pytest.mark.parametrize("missing", ["name", "email", "password"])
def test_register_requires_all_fields(client, database, missing):
    payload = {"name": "Dana", "email": "dana@example.com", "password": "s3cret-pass"}
    payload[missing] = ""

    response = client.post("/register", json=payload)

    assert response.status_code == 400
    assert response.get_json()["message"] == "Please provide all fields"
    assert database.admin.count_documents({}) == 0


def test_register_twice_with_same_email_conflicts(client, database, registered_admin):
    response = client.post(
        "/register",
        json={"name": "Other", "email": "dana@example.com", "password": "another-pass"},
    )

    assert response.status_code == 400
    assert response.get_json()["message"] == "Email already exists"
    assert database.admin.count_documents({"email": "dana@example.com"}) == 1


def test_unique_index_catches_lookup_race(store, database, monkeypatch):
    service = CredentialService(store)
    service.register("Dana", "dana@example.com", "s3cret-pass")

    monkeypatch.setattr(
        DocumentStore, "admins", property(lambda self: BlindLookup(self.collection("admin")))
    )

    with pytest.raises(ConflictError):
        service.register("Dana Again", "dana@example.com", "other-pass")
    assert database.admin.count_documents({"email": "dana@example.com"}) == 1


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

def test_login_returns_registered_id(client, registered_admin):
    response = client.post(
        "/login", json={"email": "dana@example.com", "password": "s3cret-pass"}
    )

    assert response.status_code == 200
    body = response.get_json()
    assert body["id"] == registered_admin
    assert body["email"] == "dana@example.com"
    assert body["name"] == "Dana"
    assert body["access_token"]
    assert "password" not in body


def test_login_matches_email_case_insensitively(client, registered_admin):
    response = client.post(
        "/login", json={"email": " DANA@Example.COM", "password": "s3cret-pass"}
    )

    assert response.status_code == 200
    assert response.get_json()["id"] == registered_admin


def test_login_with_wrong_password_is_rejected(client, registered_admin):
    response = client.post(
        "/login", json={"email": "dana@example.com", "password": "wrong"}
    )

    assert response.status_code == 401
    assert response.get_json()["message"] == "Invalid email or password"


def test_login_with_unknown_email_gives_same_message(client, registered_admin):
    response = client.post(
        "/login", json={"email": "nobody@example.com", "password": "s3cret-pass"}
    )

    assert response.status_code == 401
    assert response.get_json()["message"] == "Invalid email or password"


def test_login_requires_email_and_password(client):
    response = client.post("/login", json={"email": "dana@example.com"})

    assert response.status_code == 400
    assert response.get_json()["message"] == "Email and password are required"


# ---------------------------------------------------------------------------
# Login with id
# ---------------------------------------------------------------------------

def test_login_with_id(client, registered_admin):
    response = client.post("/login-with-id", json={"id": registered_admin})

    assert response.status_code == 200
    body = response.get_json()
    assert body["id"] == registered_admin
    assert body["email"] == "dana@example.com"
    assert body["access_token"]


def test_login_with_id_requires_id(client):
    response = client.post("/login-with-id", json={})

    assert response.status_code == 400
    assert response.get_json()["message"] == "ID is required"


def test_login_with_unknown_id(client, registered_admin):
    response = client.post("/login-with-id", json={"id": str(ObjectId())})

    assert response.status_code == 401
    assert response.get_json()["message"] == "Invalid ID"


def test_login_with_malformed_id_is_a_server_error(client):
    response = client.post("/login-with-id", json={"id": "not-an-id"})

    assert response.status_code == 500
    assert response.get_json()["message"] == "Error logging in"


# ---------------------------------------------------------------------------
# Admin list
# ---------------------------------------------------------------------------

def test_list_admins_includes_stored_documents(client, registered_admin):
    response = client.get("/api/admins")

    assert response.status_code == 200
    admins = response.get_json()
    assert len(admins) == 1
    assert admins[0]["_id"] == registered_admin
    assert admins[0]["email"] == "dana@example.com"
    assert admins[0]["password"].startswith("$2b$")
