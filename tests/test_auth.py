"""Owner registration, login, refresh and the role-tagged profile."""
import pytest

from tests.conftest import PASSWORD, auth, register_owner


@pytest.mark.asyncio
async def test_owner_profile_variant(client):
    headers = await register_owner(client)
    me = await client.get("/api/v1/auth/me", headers=headers)
    assert me.status_code == 200
    body = me.json()
    assert body["role"] == "owner"
    assert body["user"]["email"] == "owner@example.com"
    assert "owner" in body and "tenant" not in body


@pytest.mark.asyncio
async def test_duplicate_owner_email(client):
    await register_owner(client)
    resp = await client.post(
        "/api/v1/auth/register",
        json={"email": "Owner@Example.com", "password": PASSWORD, "first_name": "A", "last_name": "B"},
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["type"] == "email_in_use"


@pytest.mark.asyncio
async def test_login_and_refresh(client):
    await register_owner(client)
    bad = await client.post("/api/v1/auth/login", data={"username": "owner@example.com", "password": "wrong"})
    assert bad.status_code == 401

    good = await client.post("/api/v1/auth/login", data={"username": "owner@example.com", "password": PASSWORD})
    assert good.status_code == 200
    tokens = good.json()

    refreshed = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refreshed.status_code == 200
    me = await client.get("/api/v1/auth/me", headers=auth(refreshed.json()["access_token"]))
    assert me.status_code == 200

    # An access token is not accepted where a refresh token is expected, and vice versa.
    wrong_type = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert wrong_type.status_code == 401
    assert (await client.get("/api/v1/auth/me", headers=auth(tokens["refresh_token"]))).status_code == 401


@pytest.mark.asyncio
async def test_logout_is_stateless(client):
    resp = await client.post("/api/v1/auth/logout")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Logged out"
