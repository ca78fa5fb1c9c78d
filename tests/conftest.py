import pytest
from fastapi.testclient import TestClient

from shop_admin.config import Settings
from shop_admin.main import create_app

# PNG signature followed by filler; the server never decodes images
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def settings(tmp_path):
    return Settings(
        ENVIRONMENT="test",
        DATABASE_URL=f"sqlite:///{tmp_path / 'test.sqlite'}",
        UPLOAD_DIR=str(tmp_path / "uploads"),
        SESSION_DIR=str(tmp_path / "sessions"),
        SESSION_BACKEND="memory",
        SESSION_SECRET="test-secret",
        BCRYPT_ROUNDS=4,
        MAX_UPLOAD_SIZE=1024,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_client(client):
    response = client.post("/api/auth/login", json={"username": "admin", "password": "admin123"})
    assert response.status_code == 200
    return client


@pytest.fixture
def create_product(admin_client):
    def _create(files=None, **fields):
        data = {"name": "Rose Water", "price": "12.50"}
        data.update({key: str(value) for key, value in fields.items()})
        response = admin_client.post("/api/products", data=data, files=files)
        assert response.status_code == 201, response.text
        return response.json()
    return _create


@pytest.fixture
def png_file():
    return {"image": ("flower.png", PNG_BYTES, "image/png")}
