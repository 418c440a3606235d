import io

import mongomock
import pytest

from backend.app import create_app
from backend.store import DocumentStore
from backend.uploads import validate_image_file

TEST_CONFIG = {
    "TESTING": True,
    "JWT_SECRET_KEY": "test-secret-key-long-enough-for-hs256-signing",
}


class FakeUploader:
    """Stands in for Cloudinary: validates the file and returns a hosted-looking URL."""

    def __init__(self):
        self.uploaded = []
        self.error = None

    def upload(self, image_file):
        filename = validate_image_file(image_file)
        if self.error:
            raise self.error
        self.uploaded.append(filename)
        return f"https://res.cloudinary.com/demo/image/upload/products/{filename}"


@pytest.fixture
def database():
    return mongomock.MongoClient()["sportswearDB"]


@pytest.fixture
def store(database):
    store = DocumentStore()
    store.bind(database)
    return store


@pytest.fixture
def uploader():
    return FakeUploader()


@pytest.fixture
def app(store, uploader):
    return create_app(dict(TEST_CONFIG), store=store, uploader=uploader)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def image_upload():
    def build(filename="shirt.png"):
        return (io.BytesIO(b"\x89PNG\r\n\x1a\nfake"), filename)

    return build


@pytest.fixture
def registered_admin(client):
    response = client.post(
        "/register",
        json={"name": "Dana", "email": "dana@example.com", "password": "s3cret-pass"},
    )
    assert response.status_code == 201
    return response.get_json()["id"]
