from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from property_api.core.errors import (
    ForbiddenError,
    GatewayFailure,
    NotFoundError,
    PaymentNotConfirmable,
    ValidationError,
)
from property_api.core.security import CallerIdentity
from property_api.core.settings import get_app_settings
from property_api.db.models.payments import Payment, PaymentStatus
from property_api.db.models.tenancy import Tenant
from property_api.repositories.tenants import TenantRepository
from property_api.schemas.payments import ManualPaymentRequest, PaymentProcessRequest
from property_api.services.base import BaseService
from property_api.services.gateway import (
    GatewayDeclined,
    GatewayError,
    GatewayResult,
    GatewayTimeout,
    PaymentGateway,
    to_minor_units,
)
from property_api.services.ledger import PaymentLedger
from property_api.services.ownership import OwnershipResolver

logger = logging.getLogger(__name__)

MANUAL_PAYMENT_NOTE = "Manual payment recorded by owner"


@dataclass
class RentStatus:
    tenant_id: UUID
    paid_for_current_month: bool
    latest_rent_payment: Optional[Payment]


class PaymentService(BaseService):
    """
    Sequence ledger writes around gateway calls.

    Every charge attempt is committed as a PENDING row before the gateway is
    contacted, so an attempt is never lost. A gateway error turns that row FAILED;
    a timeout leaves it PENDING for reconciliation. The payment's reference number
    is sent as the gateway idempotency key so retries of one ledger row, by the
    client library or by reconciliation, cannot charge twice.
    """

    def __init__(
        self,
        session: AsyncSession,
        gateway: PaymentGateway,
        ledger: Optional[PaymentLedger] = None,
    ) -> None:
        super().__init__(session)
        self.gateway = gateway
        self.ledger = ledger or PaymentLedger(session)
        self.resolver = OwnershipResolver(session)
        self.tenants = TenantRepository(session)
        self.currency = get_app_settings().PAYMENT_CURRENCY

    async def _tenant_for(self, caller: CallerIdentity) -> Tenant:
        if not caller.is_tenant:
            raise ForbiddenError("Only tenants can perform this action")
        tenant = await self.tenants.get_by_user_id(caller.id)
        if tenant is None:
            raise NotFoundError("Tenant profile not found")
        return tenant

    @staticmethod
    def _charge_metadata(payment: Payment) -> Dict[str, str]:
        return {
            "reference_number": payment.reference_number,
            "tenant_id": str(payment.tenant_id),
            "unit_id": str(payment.unit_id),
            "payment_type": payment.payment_type.value,
        }

    async def _charge(self, payment: Payment) -> GatewayResult:
        """Charge the payment's total; identical arguments on every retry."""
        return await self.gateway.charge(
            to_minor_units(payment.total_amount),
            payment.currency,
            payment.payment_method_token or "",
            self._charge_metadata(payment),
            idempotency_key=payment.reference_number,
            description=f"{payment.payment_type.value} payment {payment.reference_number}",
        )

    async def _fail(self, payment_id: UUID, reason: str) -> str:
        """Persist FAILED with the reason; returns the reference number."""
        payment = await self.ledger.get_for_update(payment_id)
        self.ledger.mark_failed(payment, reason)
        await self.commit()
        logger.warning("Payment %s failed: %s", payment.reference_number, reason)
        return payment.reference_number

    # PUBLIC_INTERFACE
    async def submit_payment(self, caller: CallerIdentity, request: PaymentProcessRequest) -> Payment:
        """
        Charge the calling tenant for their unit.

        Raises:
            ForbiddenError: caller is not a tenant occupying a unit.
            GatewayFailure: the gateway failed (row FAILED) or timed out (row
                PENDING, ``pending=True``); the reference number is attached.
        """
        tenant = await self._tenant_for(caller)
        if tenant.unit_id is None:
            raise ValidationError("Tenant is not assigned to a unit", field="unit_id")
        decision = await self.resolver.check_unit(caller, tenant.unit_id, allow_occupant=True)
        decision.raise_if_denied()

        payment = await self.ledger.create_pending(
            tenant_id=tenant.id,
            unit_id=tenant.unit_id,
            amount=request.amount,
            payment_type=request.payment_type,
            payment_method=request.payment_method,
            currency=self.currency,
            late_fee=request.late_fee,
            description=request.description,
            payment_method_token=request.payment_method_token,
            due_date=request.due_date,
            period_start=request.period_start,
            period_end=request.period_end,
        )
        await self.commit()
        payment_id, reference = payment.id, payment.reference_number
        logger.info("Payment %s created for tenant %s", reference, tenant.id)

        try:
            result = await self._charge(payment)
        except GatewayTimeout as exc:
            logger.warning("Gateway outcome unknown for %s; left pending: %s", reference, exc.message)
            raise GatewayFailure(
                "Payment gateway did not respond; the payment is pending reconciliation",
                reference_number=reference,
                pending=True,
            ) from exc
        except GatewayError as exc:
            await self._fail(payment_id, exc.message)
            raise GatewayFailure(f"Payment failed: {exc.message}", reference_number=reference) from exc

        payment = await self.ledger.get_for_update(payment_id)
        self.ledger.finalize_from_gateway_result(payment, result)
        await self.commit()
        return payment

    # PUBLIC_INTERFACE
    async def record_manual_payment(self, caller: CallerIdentity, request: ManualPaymentRequest) -> Payment:
        """
        Record a payment received outside the gateway. Owner of the unit (or admin) only.

        Raises:
            NotFoundError/ForbiddenError: unit absent or not the caller's.
            ValidationError: the tenant does not occupy the unit.
        """
        decision = await self.resolver.check_unit(caller, request.unit_id, allow_occupant=False)
        decision.raise_if_denied()
        tenant = await self.tenants.get_tenant(request.tenant_id)
        if tenant is None:
            raise NotFoundError("Tenant not found")
        if tenant.unit_id != request.unit_id:
            raise ValidationError("Tenant does not occupy this unit", field="tenant_id")

        try:
            payment = await self.ledger.create_pending(
                tenant_id=tenant.id,
                unit_id=request.unit_id,
                amount=request.amount,
                payment_type=request.payment_type,
                payment_method=request.payment_method,
                currency=self.currency,
                late_fee=request.late_fee,
                description=request.description,
                notes=request.notes or MANUAL_PAYMENT_NOTE,
                due_date=request.due_date,
                period_start=request.period_start,
                period_end=request.period_end,
            )
            self.ledger.transition(payment, PaymentStatus.COMPLETED)
            await self.commit()
        except Exception:
            await self.rollback()
            raise
        logger.info("Manual payment %s recorded by %s", payment.reference_number, caller.id)
        return payment

    # PUBLIC_INTERFACE
    async def refund_payment(
        self,
        caller: CallerIdentity,
        payment_id: UUID,
        amount: Decimal,
        reason: Optional[str] = None,
    ) -> Payment:
        """
        Refund part or all of a settled payment. Owner of the unit (or admin) only.

        The row stays locked across the gateway call. If the gateway refuses, the
        ledger is left unchanged.

        Raises:
            InvalidRefund / NotRefundable / ValidationError: see PaymentLedger.check_refund.
            GatewayFailure: the gateway refund failed.
        """
        decision = await self.resolver.check_payment(caller, payment_id, allow_tenant=False)
        decision.raise_if_denied()

        try:
            payment = await self.ledger.get_for_update(payment_id)
            self.ledger.check_refund(payment, amount)
            idempotency_key = (
                f"{payment.reference_number}:refund:"
                f"{to_minor_units(payment.refund_amount)}:{to_minor_units(amount)}"
            )
            try:
                refund = await self.gateway.refund(
                    payment.gateway_charge_id,
                    to_minor_units(amount),
                    reason,
                    idempotency_key=idempotency_key,
                )
            except GatewayError as exc:
                logger.warning("Refund for %s failed at gateway: %s", payment.reference_number, exc.message)
                raise GatewayFailure(
                    f"Refund failed: {exc.message}",
                    reference_number=payment.reference_number,
                    pending=isinstance(exc, GatewayTimeout),
                ) from exc
            self.ledger.apply_refund(payment, amount, reason)
            await self.commit()
        except Exception:
            await self.rollback()
            raise
        logger.info(
            "Refund %s of %s applied to %s (status %s)",
            refund.refund_id,
            amount,
            payment.reference_number,
            payment.status.value,
        )
        return payment

    # PUBLIC_INTERFACE
    async def confirm_payment(self, caller: CallerIdentity, payment_id: UUID) -> Payment:
        """
        Confirm a payment intent that required further action, then finalize.

        Confirming a payment that is already resolved is a no-op. A PROCESSING
        payment is settling at the gateway and is resolved through reconcile.

        Raises:
            PaymentNotConfirmable: the payment is PROCESSING.
            ValidationError: the pending payment has no gateway intent.
            GatewayFailure: the gateway rejected the confirmation (row FAILED) or
                did not answer (row PENDING, ``pending=True``).
        """
        decision = await self.resolver.check_payment(caller, payment_id, allow_tenant=True)
        decision.raise_if_denied()

        payment = await self.ledger.get_for_update(payment_id)
        status = PaymentStatus(payment.status)
        # Nothing is staged; committing releases the row lock without expiring it.
        if not status.is_in_progress:
            await self.commit()
            return payment
        if status != PaymentStatus.PENDING:
            await self.commit()
            raise PaymentNotConfirmable(
                f"Payment {payment.reference_number} is {status.value}; reconcile it instead"
            )
        if not payment.gateway_payment_intent_id:
            await self.commit()
            raise ValidationError("Payment has no gateway intent to confirm")

        reference = payment.reference_number
        try:
            result = await self.gateway.confirm_intent(payment.gateway_payment_intent_id)
        except GatewayTimeout as exc:
            await self.rollback()
            raise GatewayFailure(
                "Payment gateway did not respond; the payment is pending reconciliation",
                reference_number=reference,
                pending=True,
            ) from exc
        except GatewayError as exc:
            self.ledger.mark_failed(payment, exc.message)
            await self.commit()
            raise GatewayFailure(f"Payment failed: {exc.message}", reference_number=reference) from exc

        self.ledger.finalize_from_gateway_result(payment, result)
        await self.commit()
        return payment

    # PUBLIC_INTERFACE
    async def reconcile_payment(self, caller: CallerIdentity, payment_id: UUID) -> Payment:
        """
        Resolve an in-progress payment against the gateway's own record.

        Idempotent: a payment that is already resolved is returned unchanged. With
        a known intent id the intent is retrieved; otherwise the original charge is
        replayed under the same idempotency key, which returns the first outcome if
        the gateway saw it. Only a definitive answer changes the row: a gateway
        error other than a decline leaves it in progress.
        """
        decision = await self.resolver.check_payment(caller, payment_id, allow_tenant=True)
        decision.raise_if_denied()

        payment = await self.ledger.get_for_update(payment_id)
        reference = payment.reference_number
        if not PaymentStatus(payment.status).is_in_progress:
            await self.commit()
            logger.info("Reconcile of %s skipped; already %s", reference, payment.status.value)
            return payment

        try:
            if payment.gateway_payment_intent_id:
                result = await self.gateway.retrieve_intent(payment.gateway_payment_intent_id)
            elif payment.payment_method_token:
                result = await self._charge(payment)
            else:
                result = None
        except GatewayDeclined as exc:
            self.ledger.mark_failed(payment, exc.message)
            await self.commit()
            raise GatewayFailure(f"Payment failed: {exc.message}", reference_number=reference) from exc
        except GatewayError as exc:
            await self.rollback()
            logger.warning("Reconcile of %s left unresolved: %s", reference, exc.message)
            raise GatewayFailure(
                "Payment gateway could not report the outcome; try reconciling again later",
                reference_number=reference,
                pending=True,
            ) from exc

        if result is None:
            self.ledger.mark_failed(payment, "no gateway charge was attempted")
        else:
            self.ledger.finalize_from_gateway_result(payment, result)
        await self.commit()
        logger.info("Payment %s reconciled to %s", reference, payment.status.value)
        return payment

    # PUBLIC_INTERFACE
    async def get_payment(self, caller: CallerIdentity, payment_id: UUID) -> Payment:
        """Ownership-gated read: the paying tenant, the unit's owner and admins."""
        decision = await self.resolver.check_payment(caller, payment_id, allow_tenant=True)
        decision.raise_if_denied()
        return await self.ledger.get(payment_id)

    # PUBLIC_INTERFACE
    async def list_my_payments(self, caller: CallerIdentity) -> List[Payment]:
        tenant = await self._tenant_for(caller)
        return await self.ledger.list_for_tenant(tenant.id)

    # PUBLIC_INTERFACE
    async def list_owner_payments(self, caller: CallerIdentity) -> List[Payment]:
        if not caller.is_owner:
            raise ForbiddenError("Only owners can list owner payments")
        return await self.ledger.list_for_owner(caller.id)

    # PUBLIC_INTERFACE
    async def list_outstanding(self, caller: CallerIdentity) -> List[Payment]:
        if not caller.is_owner:
            raise ForbiddenError("Only owners can list outstanding payments")
        return await self.ledger.list_outstanding(caller.id)

    # PUBLIC_INTERFACE
    async def rent_status(self, caller: CallerIdentity, tenant_id: Optional[UUID] = None) -> RentStatus:
        """
        Current-month rent status for a tenant.

        Tenants see their own status; owners and admins pass ``tenant_id`` and must
        own the tenant's unit.
        """
        if caller.is_tenant:
            tenant = await self._tenant_for(caller)
        else:
            if tenant_id is None:
                raise ValidationError("tenant_id is required", field="tenant_id")
            found = await self.tenants.get_tenant(tenant_id)
            if found is None:
                raise NotFoundError("Tenant not found")
            if found.unit_id is None:
                if not caller.is_admin:
                    raise ForbiddenError("You do not have access to this tenant")
            else:
                decision = await self.resolver.check_unit(caller, found.unit_id, allow_occupant=False)
                decision.raise_if_denied()
            tenant = found
        return RentStatus(
            tenant_id=tenant.id,
            paid_for_current_month=await self.ledger.is_rent_paid_for_current_month(tenant.id),
            latest_rent_payment=await self.ledger.latest_rent_payment(tenant.id),
        )
