"""
Domain error taxonomy for the leasing and payment core.

Every failure the core reports carries an explicit ``ErrorKind`` so the HTTP
boundary can map it to a status code without inspecting messages. Resource-absent
failures are always ``NOT_FOUND`` and resource-exists-but-unrelated failures are
always ``FORBIDDEN``; the two are never collapsed.
"""
from __future__ import annotations

import enum
from typing import Any, Optional


class ErrorKind(str, enum.Enum):
    """Machine-readable error categories."""

    VALIDATION = "validation_error"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    GATEWAY_FAILURE = "gateway_failure"
    INVARIANT_VIOLATION = "invariant_violation"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.CONFLICT: 409,
    ErrorKind.GATEWAY_FAILURE: 502,
    ErrorKind.INVARIANT_VIOLATION: 422,
}


class DomainError(Exception):
    """Base class for all errors raised by the core services."""

    kind: ErrorKind = ErrorKind.VALIDATION
    code: str = "domain_error"

    def __init__(self, message: str, *, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(DomainError):
    """Malformed or out-of-range input; ``details`` holds field-level information."""

    kind = ErrorKind.VALIDATION
    code = "validation_error"

    def __init__(self, message: str, *, field: Optional[str] = None, details: Optional[Any] = None) -> None:
        if details is None and field is not None:
            details = [{"field": field, "message": message}]
        super().__init__(message, details=details)
        self.field = field


class NotFoundError(DomainError):
    kind = ErrorKind.NOT_FOUND
    code = "not_found"


class InvalidRoomCode(NotFoundError):
    code = "invalid_room_code"

    def __init__(self, message: str = "Invalid room code") -> None:
        super().__init__(message)


class ForbiddenError(DomainError):
    kind = ErrorKind.FORBIDDEN
    code = "forbidden"


class ConflictError(DomainError):
    kind = ErrorKind.CONFLICT
    code = "conflict"


class UnitUnavailable(ConflictError):
    code = "unit_unavailable"

    def __init__(self, message: str = "This unit is not available") -> None:
        super().__init__(message)


class EmailInUse(ConflictError):
    code = "email_in_use"

    def __init__(self, message: str = "Email is already in use") -> None:
        super().__init__(message)


class PaymentNotConfirmable(ConflictError):
    """Only a pending payment awaiting customer action can be confirmed."""

    code = "payment_not_confirmable"


class CodeSpaceExhausted(ConflictError):
    """No free code was found within the configured retry budget."""

    code = "code_space_exhausted"


class GatewayFailure(DomainError):
    """
    The payment provider failed or gave no answer.

    ``reference_number`` always points at the durable ledger row for the attempt.
    ``pending`` is true when the outcome is unknown and the row was left PENDING
    for reconciliation.
    """

    kind = ErrorKind.GATEWAY_FAILURE
    code = "gateway_failure"

    def __init__(self, message: str, *, reference_number: Optional[str] = None, pending: bool = False) -> None:
        super().__init__(
            message,
            details={"reference_number": reference_number, "pending": pending},
        )
        self.reference_number = reference_number
        self.pending = pending


class InvariantViolation(DomainError):
    kind = ErrorKind.INVARIANT_VIOLATION
    code = "invariant_violation"


class InvalidRefund(InvariantViolation):
    code = "invalid_refund"


class NotRefundable(InvariantViolation):
    code = "not_refundable"


class InvalidStatusTransition(InvariantViolation):
    code = "invalid_status_transition"
