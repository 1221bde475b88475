"""
Test fixtures for the property API.

Each test gets a fresh in-memory SQLite database (schema built from the ORM
metadata) and a scripted payment gateway, so tests never touch a real database
or payment provider.
"""
import os

os.environ.setdefault("RUN_MIGRATIONS_ON_STARTUP", "false")
os.environ.setdefault("AUTO_SEED", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

from collections import deque
from decimal import Decimal
from typing import Any, Deque, Dict, List, Optional, Union

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from property_api.api.main import app
from property_api.core.deps import get_payment_gateway
from property_api.core.security import CallerIdentity, create_access_token, get_password_hash
from property_api.db.base import Base
from property_api.db.models.users import Role
from property_api.db.session import get_async_session, make_session_maker
from property_api.repositories.users import UserRepository
from property_api.services.gateway import GatewayResult, RefundResult

PASSWORD = "s3cret-pass"

UNIT_PAYLOAD = {
    "unit_number": "2B",
    "floor": 2,
    "bedrooms": 2,
    "bathrooms": "1.0",
    "square_feet": 850,
    "monthly_rent": "1200.00",
    "security_deposit": "1200.00",
}


# ── Scripted gateway ───────────────────────────────────────────────────

Scripted = Union[GatewayResult, Exception]


class FakeGateway:
    """
    In-memory stand-in for the payment provider.

    Queue answers with ``script_charge`` / ``script_retrieve`` / ``script_confirm``
    / ``script_refund``. Unscripted calls succeed. Every call is recorded.
    """

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self._charge: Deque[Scripted] = deque()
        self._retrieve: Deque[Scripted] = deque()
        self._confirm: Deque[Scripted] = deque()
        self._refund: Deque[Union[RefundResult, Exception]] = deque()
        self._counter = 0

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}_{self._counter}"

    def script_charge(self, *answers: Scripted) -> None:
        self._charge.extend(answers)

    def script_retrieve(self, *answers: Scripted) -> None:
        self._retrieve.extend(answers)

    def script_confirm(self, *answers: Scripted) -> None:
        self._confirm.extend(answers)

    def script_refund(self, *answers: Union[RefundResult, Exception]) -> None:
        self._refund.extend(answers)

    def calls_of(self, kind: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["kind"] == kind]

    @staticmethod
    def _answer(queue: Deque, default):
        answer = queue.popleft() if queue else default
        if isinstance(answer, Exception):
            raise answer
        return answer

    def succeeded(self) -> GatewayResult:
        return GatewayResult(
            status="succeeded",
            payment_intent_id=self._next_id("pi"),
            charge_id=self._next_id("ch"),
            receipt_url="https://receipts.example.com/r/1",
        )

    async def charge(
        self,
        amount_minor: int,
        currency: str,
        payment_method_token: str,
        metadata: Dict[str, str],
        *,
        idempotency_key: str,
        description: Optional[str] = None,
    ) -> GatewayResult:
        self.calls.append(
            {
                "kind": "charge",
                "amount_minor": amount_minor,
                "currency": currency,
                "payment_method_token": payment_method_token,
                "metadata": metadata,
                "idempotency_key": idempotency_key,
            }
        )
        return self._answer(self._charge, self.succeeded())

    async def retrieve_intent(self, payment_intent_id: str) -> GatewayResult:
        self.calls.append({"kind": "retrieve", "payment_intent_id": payment_intent_id})
        return self._answer(self._retrieve, GatewayResult(status="succeeded", payment_intent_id=payment_intent_id))

    async def confirm_intent(self, payment_intent_id: str) -> GatewayResult:
        self.calls.append({"kind": "confirm", "payment_intent_id": payment_intent_id})
        return self._answer(
            self._confirm,
            GatewayResult(status="succeeded", payment_intent_id=payment_intent_id, charge_id=self._next_id("ch")),
        )

    async def refund(
        self,
        charge_id: str,
        amount_minor: int,
        reason: Optional[str],
        *,
        idempotency_key: str,
    ) -> RefundResult:
        self.calls.append(
            {
                "kind": "refund",
                "charge_id": charge_id,
                "amount_minor": amount_minor,
                "idempotency_key": idempotency_key,
            }
        )
        return self._answer(self._refund, RefundResult(refund_id=self._next_id("re"), status="succeeded"))


# ── Fixtures ───────────────────────────────────────────────────────────

@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_maker(engine):
    return make_session_maker(engine)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as s:
        yield s


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
async def client(session_maker, gateway):
    """HTTP client bound to the app with the test database and gateway wired in."""

    async def _session_override():
        async with session_maker() as s:
            yield s

    app.dependency_overrides[get_async_session] = _session_override
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ── Helpers ────────────────────────────────────────────────────────────

def auth(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def register_owner(client: AsyncClient, email: str = "owner@example.com") -> Dict[str, str]:
    resp = await client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": PASSWORD, "first_name": "Olive", "last_name": "Owner"},
    )
    assert resp.status_code == 201, resp.text
    return auth(resp.json()["access_token"])


async def create_building(client: AsyncClient, headers: Dict[str, str], name: str = "Maple Court") -> str:
    resp = await client.post("/api/v1/buildings", json={"name": name, "address": "12 Maple Street"}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


async def create_unit(client: AsyncClient, headers: Dict[str, str], building_id: str, **overrides) -> dict:
    payload = {**UNIT_PAYLOAD, "building_id": building_id, **overrides}
    resp = await client.post("/api/v1/units", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def register_tenant(client: AsyncClient, room_code: str, email: str = "tenant@example.com") -> dict:
    resp = await client.post(
        "/api/v1/tenants/register",
        json={
            "room_code": room_code,
            "email": email,
            "password": PASSWORD,
            "first_name": "Tara",
            "last_name": "Tenant",
        },
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def owner_with_unit(client: AsyncClient, email: str = "owner@example.com"):
    """Register an owner with one building and one unit. Returns (headers, unit)."""
    headers = await register_owner(client, email)
    building_id = await create_building(client, headers)
    unit = await create_unit(client, headers, building_id)
    return headers, unit


async def leased_unit(client: AsyncClient):
    """Owner, unit and an onboarded tenant. Returns (owner_headers, tenant_headers, unit, tenant)."""
    owner_headers, unit = await owner_with_unit(client)
    registration = await register_tenant(client, unit["room_code"])
    return owner_headers, auth(registration["access_token"]), unit, registration["tenant"]


async def create_admin(session_maker, email: str = "admin@example.com") -> Dict[str, str]:
    async with session_maker() as s:
        users = UserRepository(s)
        user = await users.create_user(
            email=email,
            hashed_password=get_password_hash(PASSWORD),
            first_name="Ada",
            last_name="Admin",
            role=Role.ADMIN,
        )
        await s.commit()
        identity = CallerIdentity(id=user.id, email=user.email, role=Role.ADMIN)
    return auth(create_access_token(identity))


def money(value: Any) -> Decimal:
    return Decimal(str(value))
