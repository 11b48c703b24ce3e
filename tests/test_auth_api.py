"""End-to-end tests for the /api/v1/auth endpoints."""
from sqlalchemy.exc import OperationalError

from models import storage

PASSWORD = "Abcd1234"


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def test_signup_returns_profile_and_tokens(client):
    resp = client.post(
        "/api/v1/auth/signup",
        json={"email": "A@X.com", "password": PASSWORD, "full_name": "A B"},
    )

    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["user"]["email"] == "a@x.com"
    assert data["user"]["role"] == "planner"
    assert "password_hash" not in data["user"]
    assert data["tokens"]["token_type"] == "bearer"
    assert data["tokens"]["access_token"] and data["tokens"]["refresh_token"]


def test_signup_duplicate_is_409(client, signup):
    signup()

    resp = client.post(
        "/api/v1/auth/signup",
        json={"email": "a@x.com", "password": PASSWORD, "full_name": "Again"},
    )

    assert resp.status_code == 409
    assert resp.get_json()["error"] == "CONFLICT"


def test_signup_validation(client):
    resp = client.post(
        "/api/v1/auth/signup",
        json={"email": "not-an-email", "password": "short", "full_name": "A", "role": "root"},
    )

    assert resp.status_code == 422
    details = resp.get_json()["details"]
    assert {"email", "password", "full_name", "role"} <= set(details)


def test_signup_weak_password(client):
    resp = client.post(
        "/api/v1/auth/signup",
        json={"email": "a@x.com", "password": "alllowercase1", "full_name": "A B"},
    )

    assert resp.status_code == 422
    assert "password" in resp.get_json()["details"]


def test_login_flow(client, signup):
    signup()

    bad = client.post("/api/v1/auth/login", json={"email": "a@x.com", "password": "wrong"})
    missing = client.post("/api/v1/auth/login", json={"email": "nobody@x.com", "password": PASSWORD})
    good = client.post("/api/v1/auth/login", json={"email": "a@x.com", "password": PASSWORD})

    assert bad.status_code == missing.status_code == 401
    assert bad.get_json() == missing.get_json()
    assert good.status_code == 200
    assert good.get_json()["data"]["tokens"]["refresh_token"]


def test_refresh_rotation(client, signup):
    old = signup()["tokens"]["refresh_token"]

    first = client.post("/api/v1/auth/refresh", json={"refresh_token": old})
    replay = client.post("/api/v1/auth/refresh", json={"refresh_token": old})

    assert first.status_code == 200
    assert "user" not in first.get_json()["data"]
    assert replay.status_code == 401
    assert replay.get_json()["error"] == "AUTHENTICATION_FAILED"

    new = first.get_json()["data"]["refresh_token"]
    assert client.post("/api/v1/auth/refresh", json={"refresh_token": new}).status_code == 200


def test_refresh_requires_token(client):
    resp = client.post("/api/v1/auth/refresh", json={})

    assert resp.status_code == 422


def test_protected_endpoint_without_token_is_401(client):
    resp = client.get("/api/v1/auth/me")

    assert resp.status_code == 401
    assert resp.get_json()["error"] == "UNAUTHENTICATED"


def test_protected_endpoint_rejects_refresh_token(client, signup):
    tokens = signup()["tokens"]

    resp = client.get("/api/v1/auth/me", headers=bearer(tokens["refresh_token"]))

    assert resp.status_code == 401
    assert resp.get_json()["error"] == "AUTHENTICATION_FAILED"


def test_me_and_profile_update(client, signup):
    access = signup()["tokens"]["access_token"]

    me = client.get("/api/v1/auth/me", headers=bearer(access))
    updated = client.put(
        "/api/v1/auth/profile",
        json={"full_name": "New Name", "phone_number": "+15550001"},
        headers=bearer(access),
    )

    assert me.get_json()["data"]["email"] == "a@x.com"
    assert updated.status_code == 200
    assert updated.get_json()["data"]["full_name"] == "New Name"
    assert updated.get_json()["data"]["role"] == "planner"


def test_profile_update_rejects_blank_name(client, signup):
    access = signup()["tokens"]["access_token"]

    resp = client.put("/api/v1/auth/profile", json={"full_name": "    "}, headers=bearer(access))
    me = client.get("/api/v1/auth/me", headers=bearer(access))

    assert resp.status_code == 422
    assert "full_name" in resp.get_json()["details"]
    assert me.get_json()["data"]["full_name"] == "A B"


def test_logout_without_token_succeeds(client, signup):
    access = signup()["tokens"]["access_token"]

    resp = client.post("/api/v1/auth/logout", headers=bearer(access))

    assert resp.status_code == 200


def test_logout_revokes_refresh_token(client, signup):
    tokens = signup()["tokens"]

    client.post("/api/v1/auth/logout", json={"refresh_token": tokens["refresh_token"]}, headers=bearer(tokens["access_token"]))
    resp = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

    assert resp.status_code == 401


def test_logout_all(client, signup):
    first = signup()["tokens"]
    second = client.post("/api/v1/auth/login", json={"email": "a@x.com", "password": PASSWORD}).get_json()["data"]["tokens"]

    resp = client.post("/api/v1/auth/logout-all", headers=bearer(first["access_token"]))

    assert resp.status_code == 200
    assert resp.get_json()["data"]["revoked"] == 2
    for tokens in (first, second):
        assert client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]}).status_code == 401


def test_change_password(client, signup):
    tokens = signup()["tokens"]
    headers = bearer(tokens["access_token"])

    wrong = client.put(
        "/api/v1/auth/change-password",
        json={"current_password": "wrong", "new_password": "Newpass123"},
        headers=headers,
    )
    ok = client.put(
        "/api/v1/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "Newpass123"},
        headers=headers,
    )

    assert wrong.status_code == 401
    assert ok.status_code == 200
    assert client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]}).status_code == 401
    assert client.post("/api/v1/auth/login", json={"email": "a@x.com", "password": PASSWORD}).status_code == 401
    assert client.post("/api/v1/auth/login", json={"email": "a@x.com", "password": "Newpass123"}).status_code == 200


def test_store_outage_is_503(client, signup, monkeypatch):
    signup()

    def boom(cls):
        raise OperationalError("SELECT", {}, Exception("timeout"))

    monkeypatch.setattr(storage, "query", boom)
    resp = client.post("/api/v1/auth/login", json={"email": "a@x.com", "password": PASSWORD})

    assert resp.status_code == 503
    assert resp.get_json()["error"] == "STORE_UNAVAILABLE"
    assert resp.headers["Retry-After"]


def test_health(client):
    resp = client.get("/api/v1/health")

    assert resp.status_code == 200
    assert resp.get_json()["store"] == "ok"
