"""Payment flows through the API with a scripted gateway."""
from datetime import datetime, timezone

import pytest

from property_api.services.gateway import GatewayDeclined, GatewayError, GatewayResult, GatewayTimeout
from property_api.services.ledger import month_bounds
from tests.conftest import leased_unit, money


def _rent(amount="1200.00", late_fee="0.00", **extra) -> dict:
    return {"amount": amount, "late_fee": late_fee, "payment_method_token": "pm_card_visa", **extra}


async def _pay(client, headers, **kwargs):
    return await client.post("/api/v1/payments/process", json=_rent(**kwargs), headers=headers)


@pytest.mark.asyncio
async def test_successful_payment(client, gateway):
    _, tenant_headers, unit, tenant = await leased_unit(client)

    resp = await _pay(client, tenant_headers, late_fee="50.00")
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["status"] == "completed"
    assert body["reference_number"].startswith("PAY-")
    assert body["unit_id"] == unit["id"]
    assert body["tenant_id"] == tenant["id"]
    assert money(body["total_amount"]) == money("1250.00")
    assert body["is_late"] is True
    assert body["gateway_charge_id"]
    assert body["processed_at"] is not None

    (charge,) = gateway.calls_of("charge")
    assert charge["amount_minor"] == 125000
    assert charge["idempotency_key"] == body["reference_number"]
    assert charge["metadata"]["reference_number"] == body["reference_number"]


@pytest.mark.asyncio
async def test_gateway_error_records_failed_row(client, gateway):
    _, tenant_headers, _, _ = await leased_unit(client)
    gateway.script_charge(GatewayError("card declined", code="card_declined"))

    resp = await _pay(client, tenant_headers)
    assert resp.status_code == 502
    error = resp.json()["error"]
    assert error["type"] == "gateway_failure"
    reference = error["details"]["reference_number"]
    assert reference.startswith("PAY-")
    assert error["details"]["pending"] is False

    listing = await client.get("/api/v1/payments/my-payments", headers=tenant_headers)
    (row,) = listing.json()
    assert row["reference_number"] == reference
    assert row["status"] == "failed"
    assert row["description"] == "Payment failed: card declined"


@pytest.mark.asyncio
async def test_timeout_leaves_pending_then_reconciles(client, gateway):
    _, tenant_headers, _, _ = await leased_unit(client)
    gateway.script_charge(GatewayTimeout("read timed out"))

    resp = await _pay(client, tenant_headers)
    assert resp.status_code == 502
    details = resp.json()["error"]["details"]
    assert details["pending"] is True

    (row,) = (await client.get("/api/v1/payments/my-payments", headers=tenant_headers)).json()
    assert row["status"] == "pending"
    assert row["reference_number"] == details["reference_number"]

    first = await client.post(f"/api/v1/payments/{row['id']}/reconcile", headers=tenant_headers)
    assert first.status_code == 200
    assert first.json()["status"] == "completed"

    charges = gateway.calls_of("charge")
    assert len(charges) == 2
    assert charges[0]["idempotency_key"] == charges[1]["idempotency_key"] == row["reference_number"]

    again = await client.post(f"/api/v1/payments/{row['id']}/reconcile", headers=tenant_headers)
    assert again.status_code == 200
    assert again.json()["status"] == "completed"
    assert len(gateway.calls_of("charge")) == 2


@pytest.mark.asyncio
async def test_requires_action_then_confirm(client, gateway):
    _, tenant_headers, _, _ = await leased_unit(client)
    gateway.script_charge(GatewayResult(status="requires_action", payment_intent_id="pi_3ds"))

    resp = await _pay(client, tenant_headers)
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "pending"
    assert body["gateway_payment_intent_id"] == "pi_3ds"

    confirmed = await client.post(f"/api/v1/payments/{body['id']}/confirm", headers=tenant_headers)
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "completed"
    assert gateway.calls_of("confirm")[0]["payment_intent_id"] == "pi_3ds"


@pytest.mark.asyncio
async def test_processing_status_is_kept(client, gateway):
    _, tenant_headers, _, _ = await leased_unit(client)
    gateway.script_charge(GatewayResult(status="processing", payment_intent_id="pi_ach"))
    resp = await _pay(client, tenant_headers)
    assert resp.json()["status"] == "processing"

    gateway.script_retrieve(GatewayResult(status="succeeded", payment_intent_id="pi_ach", charge_id="ch_ach"))
    done = await client.post(f"/api/v1/payments/{resp.json()['id']}/reconcile", headers=tenant_headers)
    assert done.json()["status"] == "completed"
    assert done.json()["gateway_charge_id"] == "ch_ach"


@pytest.mark.asyncio
async def test_confirm_completed_payment_is_unchanged(client, gateway):
    _, tenant_headers, _, _ = await leased_unit(client)
    paid = (await _pay(client, tenant_headers)).json()
    assert paid["status"] == "completed"

    resp = await client.post(f"/api/v1/payments/{paid['id']}/confirm", headers=tenant_headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "completed"
    assert resp.json()["reference_number"] == paid["reference_number"]
    assert gateway.calls_of("confirm") == []


@pytest.mark.asyncio
async def test_confirm_rejects_processing_payment(client, gateway):
    _, tenant_headers, _, _ = await leased_unit(client)
    gateway.script_charge(GatewayResult(status="processing", payment_intent_id="pi_ach"))
    paid = (await _pay(client, tenant_headers)).json()

    resp = await client.post(f"/api/v1/payments/{paid['id']}/confirm", headers=tenant_headers)
    assert resp.status_code == 409
    assert resp.json()["error"]["type"] == "payment_not_confirmable"
    assert gateway.calls_of("confirm") == []

    row = await client.get(f"/api/v1/payments/{paid['id']}", headers=tenant_headers)
    assert row.json()["status"] == "processing"


@pytest.mark.asyncio
async def test_reconcile_lookup_error_keeps_payment_in_progress(client, gateway):
    _, tenant_headers, _, _ = await leased_unit(client)
    gateway.script_charge(GatewayResult(status="processing", payment_intent_id="pi_ach"))
    paid = (await _pay(client, tenant_headers)).json()

    gateway.script_retrieve(GatewayError("Too many requests", code="rate_limit"))
    resp = await client.post(f"/api/v1/payments/{paid['id']}/reconcile", headers=tenant_headers)
    assert resp.status_code == 502
    details = resp.json()["error"]["details"]
    assert details["pending"] is True
    assert details["reference_number"] == paid["reference_number"]

    row = (await client.get(f"/api/v1/payments/{paid['id']}", headers=tenant_headers)).json()
    assert row["status"] == "processing"

    gateway.script_retrieve(GatewayResult(status="succeeded", payment_intent_id="pi_ach", charge_id="ch_ach"))
    done = await client.post(f"/api/v1/payments/{paid['id']}/reconcile", headers=tenant_headers)
    assert done.status_code == 200
    assert done.json()["status"] == "completed"


@pytest.mark.asyncio
async def test_reconcile_replayed_decline_fails_payment(client, gateway):
    _, tenant_headers, _, _ = await leased_unit(client)
    gateway.script_charge(GatewayTimeout("read timed out"))
    details = (await _pay(client, tenant_headers)).json()["error"]["details"]
    (row,) = (await client.get("/api/v1/payments/my-payments", headers=tenant_headers)).json()

    gateway.script_charge(GatewayDeclined("Your card was declined.", code="card_declined"))
    resp = await client.post(f"/api/v1/payments/{row['id']}/reconcile", headers=tenant_headers)
    assert resp.status_code == 502
    assert resp.json()["error"]["details"] == {"reference_number": details["reference_number"], "pending": False}

    row = (await client.get(f"/api/v1/payments/{row['id']}", headers=tenant_headers)).json()
    assert row["status"] == "failed"
    assert row["description"] == "Payment failed: Your card was declined."


@pytest.mark.asyncio
async def test_refund_lifecycle(client, gateway):
    owner_headers, tenant_headers, _, _ = await leased_unit(client)
    paid = (await _pay(client, tenant_headers, late_fee="50.00")).json()
    url = f"/api/v1/payments/{paid['id']}/refund"

    partial = await client.post(url, json={"amount": "600.00", "reason": "overcharge"}, headers=owner_headers)
    assert partial.status_code == 200, partial.text
    assert partial.json()["status"] == "partially_refunded"
    assert money(partial.json()["net_amount"]) == money("650.00")

    full = await client.post(url, json={"amount": "650.00"}, headers=owner_headers)
    assert full.json()["status"] == "refunded"
    assert money(full.json()["net_amount"]) == money("0")

    over = await client.post(url, json={"amount": "0.01"}, headers=owner_headers)
    assert over.status_code == 422
    assert over.json()["error"]["type"] == "invalid_refund"

    refunds = gateway.calls_of("refund")
    assert [r["amount_minor"] for r in refunds] == [60000, 65000]
    assert refunds[0]["idempotency_key"] != refunds[1]["idempotency_key"]


@pytest.mark.asyncio
async def test_refund_gateway_failure_leaves_ledger_unchanged(client, gateway):
    owner_headers, tenant_headers, _, _ = await leased_unit(client)
    paid = (await _pay(client, tenant_headers)).json()
    gateway.script_refund(GatewayError("charge already refunded"))

    resp = await client.post(
        f"/api/v1/payments/{paid['id']}/refund", json={"amount": "100.00"}, headers=owner_headers
    )
    assert resp.status_code == 502

    row = (await client.get(f"/api/v1/payments/{paid['id']}", headers=owner_headers)).json()
    assert row["status"] == "completed"
    assert money(row["refund_amount"]) == money("0")


@pytest.mark.asyncio
async def test_refund_validation(client):
    owner_headers, tenant_headers, _, _ = await leased_unit(client)
    paid = (await _pay(client, tenant_headers)).json()
    url = f"/api/v1/payments/{paid['id']}/refund"

    assert (await client.post(url, json={"amount": "0"}, headers=owner_headers)).status_code == 400
    assert (await client.post(url, json={"amount": "1.001"}, headers=owner_headers)).status_code == 400
    too_much = await client.post(url, json={"amount": "1200.01"}, headers=owner_headers)
    assert too_much.status_code == 422

    # Tenants cannot refund their own payments.
    assert (await client.post(url, json={"amount": "1.00"}, headers=tenant_headers)).status_code == 403


@pytest.mark.asyncio
async def test_manual_payment_is_completed_and_not_refundable(client, gateway):
    owner_headers, _, unit, tenant = await leased_unit(client)
    resp = await client.post(
        "/api/v1/payments/manual",
        json={"tenant_id": tenant["id"], "unit_id": unit["id"], "amount": "1200.00"},
        headers=owner_headers,
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["status"] == "completed"
    assert body["payment_method"] == "cash"
    assert body["notes"] == "Manual payment recorded by owner"
    assert gateway.calls_of("charge") == []

    refund = await client.post(
        f"/api/v1/payments/{body['id']}/refund", json={"amount": "10.00"}, headers=owner_headers
    )
    assert refund.status_code == 422
    assert refund.json()["error"]["type"] == "not_refundable"


@pytest.mark.asyncio
async def test_owner_listings(client, gateway):
    owner_headers, tenant_headers, _, _ = await leased_unit(client)
    await _pay(client, tenant_headers)
    gateway.script_charge(GatewayError("declined"))
    await _pay(client, tenant_headers, due_date="2026-01-01T00:00:00Z")

    all_rows = (await client.get("/api/v1/payments/owner-payments", headers=owner_headers)).json()
    assert len(all_rows) == 2

    outstanding = (await client.get("/api/v1/payments/outstanding", headers=owner_headers)).json()
    assert [r["status"] for r in outstanding] == ["failed"]
    assert outstanding[0]["is_overdue"] is True
    assert outstanding[0]["days_overdue"] > 0


@pytest.mark.asyncio
async def test_rent_status_for_current_month(client):
    owner_headers, tenant_headers, _, tenant = await leased_unit(client)
    status = (await client.get("/api/v1/payments/rent-status", headers=tenant_headers)).json()
    assert status["paid_for_current_month"] is False
    assert status["latest_rent_payment"] is None

    start, _ = month_bounds(datetime.now(tz=timezone.utc))
    await _pay(client, tenant_headers, period_start=start.isoformat())

    status = (await client.get("/api/v1/payments/rent-status", headers=tenant_headers)).json()
    assert status["paid_for_current_month"] is True
    assert status["latest_rent_payment"]["payment_type"] == "rent"

    by_owner = await client.get(
        "/api/v1/payments/rent-status", params={"tenant_id": tenant["id"]}, headers=owner_headers
    )
    assert by_owner.status_code == 200
    assert by_owner.json()["paid_for_current_month"] is True


@pytest.mark.asyncio
async def test_payment_amount_schema_validation(client):
    _, tenant_headers, _, _ = await leased_unit(client)
    resp = await _pay(client, tenant_headers, amount="0")
    assert resp.status_code == 422
