import mongomock
import pytest
from fastapi.testclient import TestClient

import auth
from main import app, get_db

ADMIN_KEY = "test-admin-key"
MODERATOR_KEY = "test-moderator-key"
PASSWORD = "secret123"


@pytest.fixture
def db():
    return mongomock.MongoClient()["storefront"]


@pytest.fixture
def access_keys(monkeypatch):
    monkeypatch.setitem(auth.ROLE_ACCESS_KEYS, "admin", ADMIN_KEY)
    monkeypatch.setitem(auth.ROLE_ACCESS_KEYS, "moderator", MODERATOR_KEY)


@pytest.fixture
def client(db, access_keys):
    app.dependency_overrides[get_db] = lambda: db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    def _register(email, role="user", access_key=None, name="Test User", password=PASSWORD):
        payload = {"name": name, "email": email, "password": password, "role": role}
        if access_key:
            payload["access_key"] = access_key
        return client.post("/auth/register", json=payload)

    return _register


def bearer(response):
    return {"Authorization": f"Bearer {response.json()['data']['access_token']}"}


@pytest.fixture
def admin_headers(register):
    return bearer(register("admin@example.com", role="admin", access_key=ADMIN_KEY))


@pytest.fixture
def user_headers(register):
    return bearer(register("shopper@example.com"))


@pytest.fixture
def product_payload():
    return {
        "name": "Premium Cotton T-Shirt",
        "description": "Soft breathable cotton for everyday wear",
        "price": 1200,
        "sale_price": 999,
        "category": "men",
        "subcategory": "t-shirts",
        "images": ["https://example.com/tee.jpg"],
        "sizes": ["S", "M", "L"],
        "colors": ["white", "black"],
        "tags": ["Summer", "Basics"],
        "inventory": 25,
    }
