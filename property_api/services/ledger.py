from __future__ import annotations

import logging
import secrets
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, FrozenSet, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from property_api.core.errors import (
    CodeSpaceExhausted,
    InvalidRefund,
    InvalidStatusTransition,
    NotFoundError,
    NotRefundable,
    ValidationError,
)
from property_api.core.settings import get_app_settings
from property_api.db.base import utcnow
from property_api.db.models.payments import ZERO, Payment, PaymentMethod, PaymentStatus, PaymentType
from property_api.repositories.payments import PaymentRepository
from property_api.services.base import BaseService
from property_api.services.gateway import PROCESSING as GATEWAY_PROCESSING, GatewayResult, to_minor_units

logger = logging.getLogger(__name__)

REFERENCE_PREFIX = "PAY-"

S = PaymentStatus
ALLOWED_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    S.PENDING: frozenset({S.PROCESSING, S.COMPLETED, S.CONFIRMED, S.FAILED, S.CANCELLED}),
    S.PROCESSING: frozenset({S.COMPLETED, S.CONFIRMED, S.FAILED, S.CANCELLED}),
    S.COMPLETED: frozenset({S.REFUNDED, S.PARTIALLY_REFUNDED, S.DISPUTED, S.CHARGEBACK}),
    S.CONFIRMED: frozenset({S.REFUNDED, S.PARTIALLY_REFUNDED, S.DISPUTED, S.CHARGEBACK}),
    # Only explicit refund operations move these forward.
    S.PARTIALLY_REFUNDED: frozenset({S.PARTIALLY_REFUNDED, S.REFUNDED}),
    S.DISPUTED: frozenset({S.PARTIALLY_REFUNDED, S.REFUNDED}),
    S.REFUNDED: frozenset(),
    S.CHARGEBACK: frozenset(),
    S.CANCELLED: frozenset(),
    S.FAILED: frozenset(),
}
TERMINAL_STATUSES = frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if not targets)
REFUNDABLE_STATUSES = frozenset({S.COMPLETED, S.CONFIRMED, S.PARTIALLY_REFUNDED, S.DISPUTED})


def can_transition(current: PaymentStatus, target: PaymentStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def new_reference_number() -> str:
    return REFERENCE_PREFIX + secrets.token_hex(4).upper()


def month_bounds(now: datetime) -> tuple[datetime, datetime]:
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


class PaymentLedger(BaseService):
    """
    Authoritative record of payments and the status state machine.

    The ledger mutates Payment rows inside the caller's transaction and never talks
    to the gateway; PaymentService sequences ledger writes around gateway calls.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        reference_factory: Callable[[], str] = new_reference_number,
        max_reference_attempts: Optional[int] = None,
    ) -> None:
        super().__init__(session)
        self.payments = PaymentRepository(session)
        self.reference_factory = reference_factory
        self.max_reference_attempts = max_reference_attempts or get_app_settings().REFERENCE_MAX_ATTEMPTS

    async def generate_reference_number(self) -> str:
        """Return a PAY- reference not yet present in the ledger."""
        for _ in range(self.max_reference_attempts):
            ref = self.reference_factory()
            if not await self.payments.exists_reference(ref):
                return ref
            logger.debug("Reference number collision; retrying")
        raise CodeSpaceExhausted("Could not generate a unique payment reference number")

    # PUBLIC_INTERFACE
    async def create_pending(
        self,
        *,
        tenant_id: UUID,
        unit_id: UUID,
        amount: Decimal,
        payment_type: PaymentType,
        payment_method: PaymentMethod,
        currency: str,
        late_fee: Decimal = ZERO,
        description: Optional[str] = None,
        payment_method_token: Optional[str] = None,
        notes: Optional[str] = None,
        due_date: Optional[datetime] = None,
        period_start: Optional[datetime] = None,
        period_end: Optional[datetime] = None,
    ) -> Payment:
        """
        Add a new PENDING row with a fresh reference number. The caller commits.

        Raises:
            ValidationError: amount not positive, late fee negative, or more than
                two decimal places on either.
        """
        late_fee = ZERO if late_fee is None else late_fee
        if amount is None or amount <= 0:
            raise ValidationError("Amount must be positive", field="amount")
        if late_fee < 0:
            raise ValidationError("Late fee must not be negative", field="late_fee")
        to_minor_units(amount)
        to_minor_units(late_fee)

        payment = Payment(
            tenant_id=tenant_id,
            unit_id=unit_id,
            amount=amount,
            currency=currency,
            payment_type=payment_type,
            payment_method=payment_method,
            status=PaymentStatus.PENDING,
            payment_method_token=payment_method_token,
            payment_date=utcnow(),
            due_date=due_date,
            period_start=period_start,
            period_end=period_end,
            description=description,
            notes=notes,
            late_fee=late_fee,
            is_late=late_fee > 0,
            refund_amount=ZERO,
            reference_number=await self.generate_reference_number(),
        )
        return await self.payments.persist(payment)

    # PUBLIC_INTERFACE
    def transition(self, payment: Payment, target: PaymentStatus) -> bool:
        """
        Move ``payment`` to ``target`` along the state machine.

        Returns False when the payment is already in ``target`` (no-op).

        Raises:
            InvalidStatusTransition: the move is not allowed from the current status.
        """
        current = PaymentStatus(payment.status)
        if current == target:
            return False
        if not can_transition(current, target):
            raise InvalidStatusTransition(
                f"Cannot move payment from {current.value} to {target.value}",
                details={"from": current.value, "to": target.value},
            )
        payment.status = target
        if target in (PaymentStatus.COMPLETED, PaymentStatus.CONFIRMED):
            payment.processed_at = utcnow()
        logger.info("Payment %s: %s -> %s", payment.reference_number, current.value, target.value)
        return True

    # PUBLIC_INTERFACE
    def finalize_from_gateway_result(self, payment: Payment, result: GatewayResult) -> PaymentStatus:
        """
        Map a gateway answer onto the ledger.

        succeeded -> COMPLETED (charge id and receipt stamped); requires further
        action -> stays PENDING; processing -> PROCESSING; anything else -> FAILED.
        """
        if result.payment_intent_id and not payment.gateway_payment_intent_id:
            payment.gateway_payment_intent_id = result.payment_intent_id

        if result.succeeded:
            payment.gateway_charge_id = result.charge_id or payment.gateway_charge_id
            payment.receipt_url = result.receipt_url or payment.receipt_url
            self.transition(payment, PaymentStatus.COMPLETED)
        elif result.requires_action:
            pass
        elif result.status == GATEWAY_PROCESSING:
            self.transition(payment, PaymentStatus.PROCESSING)
        else:
            if not payment.description:
                payment.description = f"Payment failed: gateway status {result.status}"
            self.transition(payment, PaymentStatus.FAILED)
        return PaymentStatus(payment.status)

    # PUBLIC_INTERFACE
    def mark_failed(self, payment: Payment, reason: str) -> None:
        """Record a failed attempt with the reason embedded in the description."""
        payment.description = f"Payment failed: {reason}"[:500]
        self.transition(payment, PaymentStatus.FAILED)

    # PUBLIC_INTERFACE
    def check_refund(self, payment: Payment, amount: Decimal) -> None:
        """
        Validate a refund request before any gateway call.

        Raises:
            ValidationError: the amount is not positive or has sub-cent digits.
            NotRefundable: no gateway charge is on record.
            InvalidRefund: the amount exceeds what is still refundable.
            InvalidStatusTransition: the payment's status does not allow refunds.
        """
        if amount is None or amount <= 0:
            raise ValidationError("Refund amount must be positive", field="amount")
        to_minor_units(amount)
        if not payment.gateway_charge_id:
            raise NotRefundable("Payment has no gateway charge on record and cannot be refunded")
        remaining = payment.refundable_amount
        if amount > remaining:
            raise InvalidRefund(
                "Refund amount exceeds the remaining refundable amount",
                details={"requested": str(amount), "refundable": str(remaining)},
            )
        if PaymentStatus(payment.status) not in REFUNDABLE_STATUSES:
            raise InvalidStatusTransition(
                f"Payments in status {PaymentStatus(payment.status).value} cannot be refunded"
            )

    # PUBLIC_INTERFACE
    def apply_refund(self, payment: Payment, amount: Decimal, reason: Optional[str]) -> None:
        """Apply a refund the gateway has accepted. Call check_refund first."""
        self.check_refund(payment, amount)
        cumulative = (payment.refund_amount or ZERO) + amount
        target = PaymentStatus.REFUNDED if cumulative == payment.total_amount else PaymentStatus.PARTIALLY_REFUNDED
        self.transition(payment, target)
        payment.refund_amount = cumulative
        payment.refund_date = utcnow()
        payment.refund_reason = reason

    # PUBLIC_INTERFACE
    async def get(self, payment_id: UUID) -> Payment:
        payment = await self.payments.get_payment(payment_id)
        if payment is None:
            raise NotFoundError("Payment not found")
        return payment

    # PUBLIC_INTERFACE
    async def get_for_update(self, payment_id: UUID) -> Payment:
        """Load the row under a write lock; single writer per payment id."""
        payment = await self.payments.get_for_update(payment_id)
        if payment is None:
            raise NotFoundError("Payment not found")
        return payment

    async def list_for_tenant(self, tenant_id: UUID) -> List[Payment]:
        return await self.payments.list_for_tenant(tenant_id)

    async def list_for_owner(self, owner_user_id: UUID) -> List[Payment]:
        return await self.payments.list_for_owner_user(owner_user_id)

    async def list_outstanding(self, owner_user_id: UUID) -> List[Payment]:
        return await self.payments.list_outstanding_for_owner_user(owner_user_id)

    async def latest_rent_payment(self, tenant_id: UUID) -> Optional[Payment]:
        return await self.payments.latest_rent_payment(tenant_id)

    async def is_rent_paid_for_current_month(self, tenant_id: UUID, *, now: Optional[datetime] = None) -> bool:
        start, end = month_bounds(now or utcnow())
        return await self.payments.rent_paid_for_period(tenant_id, start, end)
