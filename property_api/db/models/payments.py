from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from property_api.db.base import Base, UUIDPkMixin, TimestampMixin, as_utc, utcnow

ZERO = Decimal("0.00")


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"
    DISPUTED = "disputed"
    CHARGEBACK = "chargeback"

    @property
    def is_successful(self) -> bool:
        return self in (PaymentStatus.COMPLETED, PaymentStatus.CONFIRMED)

    @property
    def is_in_progress(self) -> bool:
        return self in (PaymentStatus.PENDING, PaymentStatus.PROCESSING)

    @property
    def is_failed(self) -> bool:
        return self in (
            PaymentStatus.FAILED,
            PaymentStatus.CANCELLED,
            PaymentStatus.DISPUTED,
            PaymentStatus.CHARGEBACK,
        )


class PaymentType(str, enum.Enum):
    RENT = "rent"
    SECURITY_DEPOSIT = "security_deposit"
    LATE_FEE = "late_fee"
    UTILITY = "utility"
    MAINTENANCE_FEE = "maintenance_fee"
    PARKING_FEE = "parking_fee"
    PET_FEE = "pet_fee"
    APPLICATION_FEE = "application_fee"
    CLEANING_FEE = "cleaning_fee"
    KEY_REPLACEMENT = "key_replacement"
    DAMAGE_FEE = "damage_fee"
    OTHER = "other"


class PaymentMethod(str, enum.Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BANK_TRANSFER = "bank_transfer"
    ACH = "ach"
    CHECK = "check"
    CASH = "cash"
    MONEY_ORDER = "money_order"
    PAYPAL = "paypal"
    VENMO = "venmo"
    ZELLE = "zelle"
    OTHER = "other"

    @property
    def is_electronic(self) -> bool:
        return self not in (PaymentMethod.CHECK, PaymentMethod.CASH, PaymentMethod.MONEY_ORDER)


class Payment(UUIDPkMixin, TimestampMixin, Base):
    """
    One financial event in the ledger.

    Rows are never deleted. Status changes go through the ledger service so that
    every transition follows the payment state machine.
    """
    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="amount_positive"),
        CheckConstraint("late_fee >= 0", name="late_fee_non_negative"),
        CheckConstraint("refund_amount >= 0", name="refund_amount_non_negative"),
        CheckConstraint("refund_amount <= amount + late_fee", name="refund_within_total"),
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    unit_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("units.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="usd")
    payment_type: Mapped[PaymentType] = mapped_column(
        SAEnum(PaymentType, native_enum=False, length=32), nullable=False, default=PaymentType.RENT
    )
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SAEnum(PaymentMethod, native_enum=False, length=32), nullable=False, default=PaymentMethod.CREDIT_CARD
    )
    status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(PaymentStatus, native_enum=False, length=32),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True,
    )

    payment_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    period_start: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    period_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    # Gateway bookkeeping. The method token is kept so reconciliation can replay
    # the original charge under the same idempotency key.
    payment_method_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    gateway_payment_intent_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True, index=True)
    gateway_charge_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    receipt_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Assigned once at creation, never reassigned.
    reference_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)

    late_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=ZERO)
    is_late: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    refund_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=ZERO)
    refund_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    refund_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    @property
    def total_amount(self) -> Decimal:
        return (self.amount or ZERO) + (self.late_fee or ZERO)

    @property
    def net_amount(self) -> Decimal:
        return self.total_amount - (self.refund_amount or ZERO)

    @property
    def refundable_amount(self) -> Decimal:
        return self.net_amount

    @property
    def is_overdue(self) -> bool:
        if self.due_date is None:
            return False
        return as_utc(self.due_date) < utcnow() and self.status in (
            PaymentStatus.PENDING,
            PaymentStatus.FAILED,
        )

    @property
    def days_overdue(self) -> int:
        if not self.is_overdue or self.due_date is None:
            return 0
        return (utcnow() - as_utc(self.due_date)).days

    @property
    def is_refunded(self) -> bool:
        return (self.refund_amount or ZERO) > ZERO

    @property
    def is_completed(self) -> bool:
        return self.status is not None and PaymentStatus(self.status).is_successful
