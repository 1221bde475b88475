from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from property_api.core.deps import get_current_caller, get_payment_service, require_roles
from property_api.core.security import CallerIdentity
from property_api.db.models.users import Role
from property_api.schemas.payments import (
    ManualPaymentRequest,
    PaymentProcessRequest,
    PaymentRead,
    RefundRequest,
    RentStatusRead,
)
from property_api.services.payments import PaymentService

router = APIRouter(prefix="/payments", tags=["Payments"])


# PUBLIC_INTERFACE
@router.post(
    "/process",
    response_model=PaymentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Submit payment",
    description=(
        "Charge the calling tenant through the payment gateway. A ledger row is always "
        "written first; gateway failures return 502 with the row's reference number."
    ),
)
async def process_payment(
    payload: PaymentProcessRequest,
    caller: CallerIdentity = Depends(require_roles(Role.TENANT)),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentRead:
    payment = await service.submit_payment(caller, payload)
    return PaymentRead.model_validate(payment)


# PUBLIC_INTERFACE
@router.post(
    "/manual",
    response_model=PaymentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Record manual payment",
    description="Record a payment received outside the gateway (cash, check, ...). Owner of the unit only.",
)
async def record_manual_payment(
    payload: ManualPaymentRequest,
    caller: CallerIdentity = Depends(require_roles(Role.OWNER, Role.ADMIN)),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentRead:
    payment = await service.record_manual_payment(caller, payload)
    return PaymentRead.model_validate(payment)


# PUBLIC_INTERFACE
@router.get(
    "/my-payments",
    response_model=List[PaymentRead],
    summary="List my payments",
    description="Payments of the calling tenant, newest first.",
)
async def list_my_payments(
    caller: CallerIdentity = Depends(require_roles(Role.TENANT)),
    service: PaymentService = Depends(get_payment_service),
) -> List[PaymentRead]:
    items = await service.list_my_payments(caller)
    return [PaymentRead.model_validate(x) for x in items]


# PUBLIC_INTERFACE
@router.get(
    "/owner-payments",
    response_model=List[PaymentRead],
    summary="List owner payments",
    description="All payments for units in the calling owner's buildings, newest first.",
)
async def list_owner_payments(
    caller: CallerIdentity = Depends(require_roles(Role.OWNER)),
    service: PaymentService = Depends(get_payment_service),
) -> List[PaymentRead]:
    items = await service.list_owner_payments(caller)
    return [PaymentRead.model_validate(x) for x in items]


# PUBLIC_INTERFACE
@router.get(
    "/outstanding",
    response_model=List[PaymentRead],
    summary="List outstanding payments",
    description="PENDING and FAILED payments in the calling owner's buildings, by due date.",
)
async def list_outstanding(
    caller: CallerIdentity = Depends(require_roles(Role.OWNER)),
    service: PaymentService = Depends(get_payment_service),
) -> List[PaymentRead]:
    items = await service.list_outstanding(caller)
    return [PaymentRead.model_validate(x) for x in items]


# PUBLIC_INTERFACE
@router.get(
    "/rent-status",
    response_model=RentStatusRead,
    summary="Current-month rent status",
    description=(
        "Whether rent for the current month is paid, plus the latest successful rent "
        "payment. Tenants get their own status; owners pass tenant_id."
    ),
)
async def rent_status(
    tenant_id: Optional[UUID] = Query(None, description="Tenant to inspect (owners and admins)"),
    caller: CallerIdentity = Depends(get_current_caller),
    service: PaymentService = Depends(get_payment_service),
) -> RentStatusRead:
    result = await service.rent_status(caller, tenant_id)
    latest = result.latest_rent_payment
    return RentStatusRead(
        tenant_id=result.tenant_id,
        paid_for_current_month=result.paid_for_current_month,
        latest_rent_payment=PaymentRead.model_validate(latest) if latest else None,
    )


# PUBLIC_INTERFACE
@router.get(
    "/{payment_id}",
    response_model=PaymentRead,
    summary="Get payment",
    description="Read a payment. Allowed for the paying tenant, the unit's owner and admins.",
)
async def get_payment(
    payment_id: UUID = Path(..., description="Payment ID"),
    caller: CallerIdentity = Depends(get_current_caller),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentRead:
    payment = await service.get_payment(caller, payment_id)
    return PaymentRead.model_validate(payment)


# PUBLIC_INTERFACE
@router.post(
    "/{payment_id}/refund",
    response_model=PaymentRead,
    summary="Refund payment",
    description="Refund part or all of a settled payment through the gateway. Owner of the unit only.",
)
async def refund_payment(
    payload: RefundRequest,
    payment_id: UUID = Path(..., description="Payment ID"),
    caller: CallerIdentity = Depends(require_roles(Role.OWNER, Role.ADMIN)),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentRead:
    payment = await service.refund_payment(caller, payment_id, payload.amount, payload.reason)
    return PaymentRead.model_validate(payment)


# PUBLIC_INTERFACE
@router.post(
    "/{payment_id}/confirm",
    response_model=PaymentRead,
    summary="Confirm payment",
    description=(
        "Confirm a pending gateway payment intent that required further action. "
        "Resolved payments are returned unchanged; processing payments are rejected with 409."
    ),
)
async def confirm_payment(
    payment_id: UUID = Path(..., description="Payment ID"),
    caller: CallerIdentity = Depends(get_current_caller),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentRead:
    payment = await service.confirm_payment(caller, payment_id)
    return PaymentRead.model_validate(payment)


# PUBLIC_INTERFACE
@router.post(
    "/{payment_id}/reconcile",
    response_model=PaymentRead,
    summary="Reconcile payment",
    description=(
        "Resolve a pending payment against the gateway's own record. Safe to repeat; "
        "resolved payments are returned unchanged."
    ),
)
async def reconcile_payment(
    payment_id: UUID = Path(..., description="Payment ID"),
    caller: CallerIdentity = Depends(get_current_caller),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentRead:
    payment = await service.reconcile_payment(caller, payment_id)
    return PaymentRead.model_validate(payment)
