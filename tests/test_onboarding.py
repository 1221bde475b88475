"""Tenant onboarding through a room code."""
from types import SimpleNamespace
from uuid import UUID
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from property_api.api.main import app
from property_api.core.deps import get_room_code_generator
from property_api.core.errors import UnitUnavailable
from property_api.db.models.tenancy import Tenant
from property_api.db.models.users import User
from property_api.schemas.tenants import TenantRegistrationRequest
from property_api.services.onboarding import LeasingOnboardingWorkflow
from property_api.services.units import RoomCodeGenerator, UnitRegistry
from tests.conftest import PASSWORD, auth, owner_with_unit, register_tenant
from tests.test_room_codes import ScriptedGenerator


@pytest.mark.asyncio
async def test_register_with_room_code_claims_unit(client):
    app.dependency_overrides[get_room_code_generator] = lambda: ScriptedGenerator(["AB12CD34"])
    owner_headers, unit = await owner_with_unit(client)
    assert unit["room_code"] == "AB12CD34"

    preview = await client.post("/api/v1/tenants/validate-room-code", json={"room_code": "ab12cd34"})
    assert preview.status_code == 200
    assert preview.json()["is_available"] is True

    body = await register_tenant(client, "AB12CD34")
    assert body["tenant"]["unit_id"] == unit["id"]
    assert body["tenant"]["background_check_status"] == "pending"
    assert body["unit"]["is_available"] is False
    assert body["token_type"] == "bearer"

    me = await client.get("/api/v1/auth/me", headers=auth(body["access_token"]))
    assert me.status_code == 200
    assert me.json()["role"] == "tenant"
    assert me.json()["tenant"]["id"] == body["tenant"]["id"]

    owner_view = await client.get(f"/api/v1/units/{unit['id']}", headers=owner_headers)
    assert owner_view.json()["is_available"] is False


@pytest.mark.asyncio
async def test_second_applicant_gets_unit_unavailable(client):
    _, unit = await owner_with_unit(client)
    await register_tenant(client, unit["room_code"])

    preview = await client.post("/api/v1/tenants/validate-room-code", json={"room_code": unit["room_code"]})
    assert preview.status_code == 409
    assert preview.json()["error"]["type"] == "unit_unavailable"

    resp = await client.post(
        "/api/v1/tenants/register",
        json={
            "room_code": unit["room_code"],
            "email": "second@example.com",
            "password": PASSWORD,
            "first_name": "Sam",
            "last_name": "Second",
        },
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["type"] == "unit_unavailable"


@pytest.mark.asyncio
async def test_lost_race_leaves_no_orphan_rows(client, session):
    """An applicant that read the unit as available before it was claimed still fails cleanly."""
    _, unit = await owner_with_unit(client)
    await register_tenant(client, unit["room_code"])

    registry = UnitRegistry(session, RoomCodeGenerator())
    registry.find_by_room_code = AsyncMock(
        return_value=SimpleNamespace(id=UUID(unit["id"]), is_available=True)
    )
    workflow = LeasingOnboardingWorkflow(session, registry)
    request = TenantRegistrationRequest(
        room_code=unit["room_code"],
        email="late@example.com",
        password=PASSWORD,
        first_name="Lee",
        last_name="Late",
    )
    with pytest.raises(UnitUnavailable):
        await workflow.register_via_room_code(request)

    users = await session.execute(select(func.count(User.id)).where(User.email == "late@example.com"))
    assert users.scalar_one() == 0
    tenants = await session.execute(select(func.count(Tenant.id)).where(Tenant.unit_id == UUID(unit["id"])))
    assert tenants.scalar_one() == 1


@pytest.mark.asyncio
async def test_email_in_use_does_not_claim_unit(client):
    owner_headers, unit = await owner_with_unit(client)
    resp = await client.post(
        "/api/v1/tenants/register",
        json={
            "room_code": unit["room_code"],
            "email": "OWNER@example.com",
            "password": PASSWORD,
            "first_name": "Dup",
            "last_name": "Licate",
        },
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["type"] == "email_in_use"

    still_free = await client.get(f"/api/v1/units/{unit['id']}", headers=owner_headers)
    assert still_free.json()["is_available"] is True


@pytest.mark.asyncio
async def test_unknown_room_code(client):
    resp = await client.post(
        "/api/v1/tenants/register",
        json={
            "room_code": "NOPE0000",
            "email": "nobody@example.com",
            "password": PASSWORD,
            "first_name": "No",
            "last_name": "Body",
        },
    )
    assert resp.status_code == 404
    assert resp.json()["error"]["type"] == "invalid_room_code"


@pytest.mark.asyncio
async def test_tenant_can_login_after_registration(client):
    _, unit = await owner_with_unit(client)
    await register_tenant(client, unit["room_code"], email="login@example.com")
    resp = await client.post(
        "/api/v1/auth/login", data={"username": "login@example.com", "password": PASSWORD}
    )
    assert resp.status_code == 200
    me = await client.get("/api/v1/auth/me", headers=auth(resp.json()["access_token"]))
    assert me.json()["user"]["email"] == "login@example.com"
