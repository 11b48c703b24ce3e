"""Tests for the admin/owner protected /api/v1/users endpoints."""
import pytest

from models import storage
from models.user import Role, User

PASSWORD = "Abcd1234"


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(signup):
    return signup(email="admin@x.com", full_name="Ad Min", role="admin")


@pytest.fixture
def planner(signup):
    return signup(email="p@x.com", full_name="Plan Ner")


@pytest.fixture
def vendor(signup):
    return signup(email="v@x.com", full_name="Ven Dor", role="vendor")


def test_list_users_admin_only(client, admin, planner):
    ok = client.get("/api/v1/users?limit=1", headers=bearer(admin["tokens"]["access_token"]))
    denied = client.get("/api/v1/users", headers=bearer(planner["tokens"]["access_token"]))
    anonymous = client.get("/api/v1/users")

    assert ok.status_code == 200
    body = ok.get_json()
    assert body["meta"] == {"page": 1, "limit": 1, "total": 2}
    assert len(body["data"]) == 1
    assert denied.status_code == 403
    assert denied.get_json()["error"] == "FORBIDDEN"
    assert anonymous.status_code == 401


def test_bad_pagination(client, admin):
    resp = client.get("/api/v1/users?page=x", headers=bearer(admin["tokens"]["access_token"]))

    assert resp.status_code == 400


def test_get_user_owner_or_admin(client, admin, planner, vendor):
    planner_id = planner["user"]["id"]

    own = client.get(f"/api/v1/users/{planner_id}", headers=bearer(planner["tokens"]["access_token"]))
    by_admin = client.get(f"/api/v1/users/{planner_id}", headers=bearer(admin["tokens"]["access_token"]))
    by_other = client.get(f"/api/v1/users/{planner_id}", headers=bearer(vendor["tokens"]["access_token"]))

    assert own.status_code == 200
    assert by_admin.status_code == 200
    assert by_other.status_code == 403


def test_get_missing_user_is_404(client, admin):
    resp = client.get("/api/v1/users/missing", headers=bearer(admin["tokens"]["access_token"]))

    assert resp.status_code == 404


def test_set_role_takes_effect_on_refresh(client, admin, planner):
    planner_id = planner["user"]["id"]

    resp = client.put(
        f"/api/v1/users/{planner_id}/role",
        json={"role": "vendor"},
        headers=bearer(admin["tokens"]["access_token"]),
    )
    assert resp.status_code == 200
    assert resp.get_json()["data"]["role"] == "vendor"

    refreshed = client.post("/api/v1/auth/refresh", json={"refresh_token": planner["tokens"]["refresh_token"]})
    access = refreshed.get_json()["data"]["access_token"]
    assert client.get("/api/v1/users", headers=bearer(access)).status_code == 403
    assert storage.get(User, planner_id).role is Role.VENDOR


def test_set_role_rejects_unknown_role(client, admin, planner):
    resp = client.put(
        f"/api/v1/users/{planner['user']['id']}/role",
        json={"role": "root"},
        headers=bearer(admin["tokens"]["access_token"]),
    )

    assert resp.status_code == 422


def test_deactivation_ends_sessions_and_blocks_login(client, admin, planner):
    resp = client.put(
        f"/api/v1/users/{planner['user']['id']}/status",
        json={"is_active": False},
        headers=bearer(admin["tokens"]["access_token"]),
    )

    assert resp.status_code == 200
    assert resp.get_json()["data"]["is_active"] is False
    assert client.post("/api/v1/auth/refresh", json={"refresh_token": planner["tokens"]["refresh_token"]}).status_code == 401
    assert client.post("/api/v1/auth/login", json={"email": "p@x.com", "password": PASSWORD}).status_code == 401


def test_reactivation_allows_login(client, admin, planner):
    headers = bearer(admin["tokens"]["access_token"])
    url = f"/api/v1/users/{planner['user']['id']}/status"

    client.put(url, json={"is_active": False}, headers=headers)
    client.put(url, json={"is_active": True}, headers=headers)

    assert client.post("/api/v1/auth/login", json={"email": "p@x.com", "password": PASSWORD}).status_code == 200


def test_purge_cli(app):
    result = app.test_cli_runner().invoke(args=["purge-expired-tokens"])

    assert "removed 0 expired refresh token(s)" in result.output
