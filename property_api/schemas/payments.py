from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from property_api.db.models.payments import PaymentMethod, PaymentStatus, PaymentType


class PaymentProcessRequest(BaseModel):
    """Tenant-initiated card/bank payment charged through the gateway."""
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    payment_type: PaymentType = Field(PaymentType.RENT)
    payment_method: PaymentMethod = Field(PaymentMethod.CREDIT_CARD)
    payment_method_token: str = Field(..., min_length=1, description="Gateway payment method token")
    late_fee: Decimal = Field(Decimal("0.00"), ge=0, max_digits=10, decimal_places=2)
    description: Optional[str] = Field(None, max_length=500)
    due_date: Optional[datetime] = Field(None)
    period_start: Optional[datetime] = Field(None)
    period_end: Optional[datetime] = Field(None)


class ManualPaymentRequest(BaseModel):
    """Owner-recorded payment received outside the gateway (cash, check, ...)."""
    tenant_id: UUID = Field(...)
    unit_id: UUID = Field(...)
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    payment_type: PaymentType = Field(PaymentType.RENT)
    payment_method: PaymentMethod = Field(PaymentMethod.CASH)
    late_fee: Decimal = Field(Decimal("0.00"), ge=0, max_digits=10, decimal_places=2)
    description: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=1000)
    due_date: Optional[datetime] = Field(None)
    period_start: Optional[datetime] = Field(None)
    period_end: Optional[datetime] = Field(None)


class RefundRequest(BaseModel):
    """Refund of part or all of a settled payment."""
    amount: Decimal = Field(..., description="Amount to refund in major currency units")
    reason: Optional[str] = Field(None, max_length=500)


class PaymentRead(BaseModel):
    """Ledger row with its derived totals."""
    id: UUID = Field(..., description="Payment id")
    tenant_id: UUID = Field(...)
    unit_id: UUID = Field(...)
    reference_number: str = Field(...)
    amount: Decimal = Field(...)
    currency: str = Field(...)
    payment_type: PaymentType = Field(...)
    payment_method: PaymentMethod = Field(...)
    status: PaymentStatus = Field(...)
    payment_date: datetime = Field(...)
    due_date: Optional[datetime] = Field(None)
    processed_at: Optional[datetime] = Field(None)
    period_start: Optional[datetime] = Field(None)
    period_end: Optional[datetime] = Field(None)
    description: Optional[str] = Field(None)
    notes: Optional[str] = Field(None)
    gateway_payment_intent_id: Optional[str] = Field(None)
    gateway_charge_id: Optional[str] = Field(None)
    receipt_url: Optional[str] = Field(None)
    late_fee: Decimal = Field(...)
    is_late: bool = Field(...)
    refund_amount: Decimal = Field(...)
    refund_date: Optional[datetime] = Field(None)
    refund_reason: Optional[str] = Field(None)

    total_amount: Decimal = Field(..., description="amount + late_fee")
    net_amount: Decimal = Field(..., description="total_amount - refund_amount")
    is_overdue: bool = Field(...)
    days_overdue: int = Field(...)
    is_refunded: bool = Field(...)
    is_completed: bool = Field(...)

    created_at: datetime = Field(...)
    updated_at: datetime = Field(...)

    class Config:
        from_attributes = True


class RentStatusRead(BaseModel):
    """Whether a tenant's rent for the current month is settled."""
    tenant_id: UUID = Field(...)
    paid_for_current_month: bool = Field(...)
    latest_rent_payment: Optional[PaymentRead] = Field(None)
