"""Error taxonomy and its HTTP mapping."""
import pytest

from property_api.core.errors import (
    CodeSpaceExhausted,
    EmailInUse,
    ErrorKind,
    ForbiddenError,
    GatewayFailure,
    InvalidRefund,
    InvalidRoomCode,
    NotFoundError,
    NotRefundable,
    UnitUnavailable,
    ValidationError,
)
from property_api.services.ownership import AccessDecision


@pytest.mark.parametrize(
    "kind,status",
    [
        (ErrorKind.VALIDATION, 400),
        (ErrorKind.NOT_FOUND, 404),
        (ErrorKind.FORBIDDEN, 403),
        (ErrorKind.CONFLICT, 409),
        (ErrorKind.GATEWAY_FAILURE, 502),
        (ErrorKind.INVARIANT_VIOLATION, 422),
    ],
)
def test_error_kind_http_status(kind, status):
    assert kind.http_status == status


def test_specific_errors_carry_their_kind():
    assert InvalidRoomCode().kind == ErrorKind.NOT_FOUND
    assert UnitUnavailable().kind == ErrorKind.CONFLICT
    assert EmailInUse().kind == ErrorKind.CONFLICT
    assert CodeSpaceExhausted("full").kind == ErrorKind.CONFLICT
    assert InvalidRefund("too much").kind == ErrorKind.INVARIANT_VIOLATION
    assert NotRefundable("no charge").kind == ErrorKind.INVARIANT_VIOLATION


def test_validation_error_field_details():
    err = ValidationError("Amount must be positive", field="amount")
    assert err.details == [{"field": "amount", "message": "Amount must be positive"}]


def test_gateway_failure_carries_reference():
    err = GatewayFailure("Payment failed: declined", reference_number="PAY-0A1B2C3D")
    assert err.reference_number == "PAY-0A1B2C3D"
    assert err.details == {"reference_number": "PAY-0A1B2C3D", "pending": False}


def test_access_decision_raises_matching_error():
    AccessDecision.allow().raise_if_denied()
    with pytest.raises(NotFoundError):
        AccessDecision.not_found("Unit not found").raise_if_denied()
    with pytest.raises(ForbiddenError):
        AccessDecision.forbidden("nope").raise_if_denied()


@pytest.mark.asyncio
async def test_error_envelope_shape(client):
    resp = await client.post("/api/v1/tenants/validate-room-code", json={"room_code": "ZZZZ9999"})
    assert resp.status_code == 404
    body = resp.json()
    assert body["status"] == 404
    assert body["error"]["type"] == "invalid_room_code"
    assert body["path"] == "/api/v1/tenants/validate-room-code"
    assert resp.headers["X-Correlation-ID"] == body["correlation_id"]


@pytest.mark.asyncio
async def test_request_schema_errors_are_422(client):
    resp = await client.post("/api/v1/tenants/register", json={"room_code": "AB12CD34"})
    assert resp.status_code == 422
    error = resp.json()["error"]
    assert error["type"] == "validation_error"
    fields = {issue["field"] for issue in error["details"]}
    assert {"email", "password", "first_name", "last_name"} <= fields


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Healthy"


@pytest.mark.asyncio
async def test_readiness_checks_database(client):
    resp = await client.get("/api/v1/health/ready")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Ready"
