from datetime import timedelta

import jwt
import pytest

from storefront.common.errors import AuthError
from storefront.common.models import User
from storefront.common.services import TokenIssuer

from conftest import PASSWORD, login, make_order, make_user


def _register(client, **overrides):
    payload = {
        "first_name": "Anna",
        "last_name": "Smirnova",
        "email": "Anna@Example.com",
        "password": PASSWORD,
        "phone_number": "8 (900) 123-45-67",
    }
    payload.update(overrides)
    return client.post("/api/auth/register", json=payload)


def test_register_and_login(client, session_factory):
    resp = _register(client)
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["user"]["email"] == "anna@example.com"
    assert body["user"]["phone_number"] == "79001234567"
    assert "password_hash" not in body["user"]
    assert body["access_token"] and body["refresh_token"]

    resp = client.post("/api/auth/login", json={"email": "anna@example.com", "password": PASSWORD})
    assert resp.status_code == 200
    assert resp.get_json()["user"]["status"] == "active"


def test_register_validation(client, session_factory):
    assert _register(client, password="123").status_code == 400
    assert _register(client, email="not-an-email").status_code == 400
    assert _register(client, phone_number="123").status_code == 400
    assert _register(client).status_code == 201
    assert _register(client).status_code == 409


def test_wrong_password(client, session_factory):
    make_user(session_factory)
    resp = client.post("/api/auth/login", json={"email": "user@example.com", "password": "wrong-one"})
    assert resp.status_code == 401


def test_refresh_issues_new_tokens(client, session_factory):
    tokens = _register(client).get_json()

    resp = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 200
    assert "access_token" in resp.get_json()

    # an access token is not a refresh token
    resp = client.post("/api/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert resp.status_code == 401


def test_expired_access_token_is_rejected(session_factory):
    issuer = TokenIssuer("s", "r", timedelta(seconds=-1), timedelta(days=1))
    user = User(id="u1", role="user", email="a@b.cd")
    token = issuer.issue(user)["access_token"]
    with pytest.raises(AuthError, match="expired"):
        issuer.decode_access(token)


def test_tokens_carry_user_claims():
    issuer = TokenIssuer("s", "r", timedelta(minutes=5), timedelta(days=1))
    token = issuer.issue(User(id="u1", role="admin", email="a@b.cd"))["access_token"]
    claims = jwt.decode(token, "s", algorithms=["HS256"])
    assert claims["sub"] == "u1"
    assert claims["role"] == "admin"
    assert claims["type"] == "access"


def test_profile_and_activity(client, session_factory):
    make_user(session_factory)
    headers = login(client, "user@example.com")

    assert client.get("/api/auth/profile").status_code == 401
    assert client.get("/api/auth/profile", headers={"Authorization": "Bearer junk"}).status_code == 401
    assert client.get("/api/auth/profile", headers=headers).get_json()["user"]["email"] == "user@example.com"

    resp = client.put("/api/auth/profile", json={"first_name": "Oleg", "patronymic": "Ivanovich"}, headers=headers)
    assert resp.get_json()["user"]["first_name"] == "Oleg"
    assert resp.get_json()["user"]["patronymic"] == "Ivanovich"

    activity = client.get("/api/auth/activity", headers=headers).get_json()
    assert activity["is_online"] is True
    assert client.post("/api/auth/logout", headers=headers).get_json()["success"] is True


def test_admin_user_management(client, session_factory):
    admin_id = make_user(session_factory, email="admin@example.com", role="admin")
    make_user(session_factory)
    admin = login(client, "admin@example.com")
    user = login(client, "user@example.com")

    assert client.get("/api/auth/users", headers=user).status_code == 403

    listing = client.get("/api/auth/users?page=1&limit=1", headers=admin).get_json()
    assert listing["pagination"] == {"page": 1, "limit": 1, "total": 2, "pages": 2}
    assert len(listing["users"]) == 1

    resp = client.post(
        "/api/auth/users",
        json={"first_name": "New", "last_name": "Admin", "email": "new@example.com", "password": PASSWORD, "role": "admin"},
        headers=admin,
    )
    assert resp.status_code == 201
    created = resp.get_json()["user"]
    assert created["role"] == "admin"

    assert client.get(f"/api/auth/users/{created['id']}", headers=admin).status_code == 200
    assert client.delete(f"/api/auth/users/{admin_id}", headers=admin).status_code == 400
    assert client.delete(f"/api/auth/users/{created['id']}", headers=admin).status_code == 200
    assert client.get(f"/api/auth/users/{created['id']}", headers=admin).status_code == 404


def test_user_with_orders_cannot_be_deleted(client, session_factory):
    make_user(session_factory, email="admin@example.com", role="admin")
    user_id = make_user(session_factory)
    make_order(session_factory, user_id)
    admin = login(client, "admin@example.com")

    assert client.delete(f"/api/auth/users/{user_id}", headers=admin).status_code == 409
