from datetime import timedelta

import pytest

from api import create_app
from models import storage as app_storage
from models.db_storage import DBStorage
from services.refresh_tokens import RefreshTokenStore
from services.sessions import SessionService
from utils.security import PasswordManager, TokenCodec

ACCESS_SECRET = "unit-access-secret-0123456789abcdef0123"
REFRESH_SECRET = "unit-refresh-secret-fedcba9876543210fedc"
PASSWORD = "Abcd1234"


@pytest.fixture
def store():
    """A private in-memory credential store."""
    db = DBStorage("sqlite://", timeout=1)
    db.reload()
    yield db
    db.close()


@pytest.fixture
def codec():
    return TokenCodec(
        access_secret=ACCESS_SECRET,
        refresh_secret=REFRESH_SECRET,
        access_expires=timedelta(minutes=15),
        refresh_expires=timedelta(days=7),
    )


@pytest.fixture
def hasher():
    return PasswordManager(time_cost=1, memory_cost=1024, parallelism=1)


@pytest.fixture
def tokens(store, codec):
    return RefreshTokenStore(store, codec)


@pytest.fixture
def sessions(store, hasher, codec, tokens):
    return SessionService(store, hasher, codec, tokens)


@pytest.fixture
def app():
    app = create_app("testing")
    yield app
    app_storage.close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def signup(client):
    """POST /auth/signup and return the response data."""
    def _signup(email="a@x.com", password=PASSWORD, full_name="A B", **extra):
        resp = client.post(
            "/api/v1/auth/signup",
            json={"email": email, "password": password, "full_name": full_name, **extra},
        )
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()["data"]

    return _signup
