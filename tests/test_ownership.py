"""Ownership checks: absent resources are 404, unrelated callers are 403."""
from uuid import uuid4

import pytest

from tests.conftest import (
    auth,
    create_admin,
    create_building,
    leased_unit,
    owner_with_unit,
    register_owner,
    register_tenant,
)


async def _payment(client, tenant_headers) -> dict:
    resp = await client.post(
        "/api/v1/payments/process",
        json={"amount": "1200.00", "payment_method_token": "pm_card_visa"},
        headers=tenant_headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_other_owner_is_forbidden_on_unit(client):
    _, unit = await owner_with_unit(client)
    other = await register_owner(client, "other-owner@example.com")

    resp = await client.get(f"/api/v1/units/{unit['id']}", headers=other)
    assert resp.status_code == 403
    assert resp.json()["error"]["type"] == "forbidden"


@pytest.mark.asyncio
async def test_missing_unit_is_not_found(client):
    owner = await register_owner(client)
    resp = await client.get(f"/api/v1/units/{uuid4()}", headers=owner)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_cannot_create_unit_in_someone_elses_building(client):
    owner = await register_owner(client)
    building_id = await create_building(client, owner)
    other = await register_owner(client, "other-owner@example.com")

    resp = await client.post(
        "/api/v1/units",
        json={
            "building_id": building_id,
            "unit_number": "9Z",
            "floor": 9,
            "bedrooms": 1,
            "bathrooms": "1.0",
            "square_feet": 500,
            "monthly_rent": "900.00",
        },
        headers=other,
    )
    assert resp.status_code == 403

    missing = await client.post(
        "/api/v1/units",
        json={
            "building_id": str(uuid4()),
            "unit_number": "9Z",
            "floor": 9,
            "bedrooms": 1,
            "bathrooms": "1.0",
            "square_feet": 500,
            "monthly_rent": "900.00",
        },
        headers=owner,
    )
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_occupant_can_read_unit_but_not_rotate_code(client):
    _, tenant_headers, unit, _ = await leased_unit(client)
    assert (await client.get(f"/api/v1/units/{unit['id']}", headers=tenant_headers)).status_code == 200
    rotate = await client.post(f"/api/v1/units/{unit['id']}/regenerate-room-code", headers=tenant_headers)
    assert rotate.status_code == 403


@pytest.mark.asyncio
async def test_payment_visibility(client):
    owner_headers, tenant_headers, _, _ = await leased_unit(client)
    payment = await _payment(client, tenant_headers)
    url = f"/api/v1/payments/{payment['id']}"

    assert (await client.get(url, headers=tenant_headers)).status_code == 200
    assert (await client.get(url, headers=owner_headers)).status_code == 200

    other_owner = await register_owner(client, "other-owner@example.com")
    assert (await client.get(url, headers=other_owner)).status_code == 403

    other_building = await create_building(client, other_owner, "Oak House")
    other_unit = (
        await client.post(
            "/api/v1/units",
            json={
                "building_id": other_building,
                "unit_number": "1A",
                "floor": 1,
                "bedrooms": 1,
                "bathrooms": "1.0",
                "square_feet": 500,
                "monthly_rent": "900.00",
            },
            headers=other_owner,
        )
    ).json()
    neighbour = await register_tenant(client, other_unit["room_code"], email="neighbour@example.com")
    neighbour_headers = auth(neighbour["access_token"])
    assert (await client.get(url, headers=neighbour_headers)).status_code == 403
    assert (await client.get(f"/api/v1/payments/{uuid4()}", headers=neighbour_headers)).status_code == 404

    mine = (await client.get("/api/v1/payments/my-payments", headers=neighbour_headers)).json()
    assert mine == []


@pytest.mark.asyncio
async def test_owner_cannot_record_manual_payment_for_foreign_unit(client):
    _, _, unit, tenant = await leased_unit(client)
    other = await register_owner(client, "other-owner@example.com")
    resp = await client.post(
        "/api/v1/payments/manual",
        json={"tenant_id": tenant["id"], "unit_id": unit["id"], "amount": "100.00"},
        headers=other,
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_admin_can_read_everything(client, session_maker):
    _, tenant_headers, unit, tenant = await leased_unit(client)
    payment = await _payment(client, tenant_headers)
    admin = await create_admin(session_maker)

    assert (await client.get(f"/api/v1/units/{unit['id']}", headers=admin)).status_code == 200
    assert (await client.get(f"/api/v1/payments/{payment['id']}", headers=admin)).status_code == 200
    status = await client.get("/api/v1/payments/rent-status", params={"tenant_id": tenant["id"]}, headers=admin)
    assert status.status_code == 200

    buildings = (await client.get("/api/v1/buildings", headers=admin)).json()
    assert len(buildings) == 1


@pytest.mark.asyncio
async def test_role_gates(client):
    owner_headers, tenant_headers, _, _ = await leased_unit(client)
    # Owners do not submit gateway payments; tenants do not list owner payments.
    owner_pay = await client.post(
        "/api/v1/payments/process",
        json={"amount": "10.00", "payment_method_token": "pm_card_visa"},
        headers=owner_headers,
    )
    assert owner_pay.status_code == 403
    assert (await client.get("/api/v1/payments/owner-payments", headers=tenant_headers)).status_code == 403


@pytest.mark.asyncio
async def test_requests_without_valid_token_are_401(client):
    assert (await client.get("/api/v1/payments/my-payments")).status_code == 401
    bad = await client.get("/api/v1/payments/my-payments", headers=auth("not-a-token"))
    assert bad.status_code == 401
