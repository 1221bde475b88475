from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Standard message response."""
    message: str = Field(..., description="Human readable message")
    details: Optional[dict] = Field(default=None, description="Optional extra data")


class FieldIssue(BaseModel):
    """One invalid input field, shared by request-schema and domain validation errors."""
    field: str = Field(..., description="Dotted path of the offending field, e.g. 'amount'")
    message: str = Field(..., description="What is wrong with it")
    type: Optional[str] = Field(default=None, description="Validator code for schema errors")


class ErrorInfo(BaseModel):
    """Structured error description."""
    type: str = Field(
        ...,
        description="Machine-readable error code, e.g. 'invalid_refund', 'unit_unavailable', 'gateway_failure'",
    )
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Any] = Field(
        default=None,
        description="Field issues for validation errors; reference_number and pending for gateway failures",
    )


# PUBLIC_INTERFACE
class ErrorResponse(BaseModel):
    """Error envelope returned by every exception handler."""
    status: int = Field(..., description="HTTP status code")
    error: ErrorInfo = Field(..., description="Error details")
    correlation_id: Optional[str] = Field(default=None, description="Request correlation ID")
    caller_id: Optional[str] = Field(default=None, description="Authenticated caller id (if available)")
    path: Optional[str] = Field(default=None, description="Request path")
    method: Optional[str] = Field(default=None, description="HTTP method")
    timestamp: datetime = Field(..., description="Error timestamp (UTC)")
