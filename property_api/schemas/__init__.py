"""
Public Pydantic schemas used by FastAPI routes, services, and tests.

Schemas are grouped by domain module (auth, buildings, units, tenants, payments)
and also include the standard message and error envelopes.
"""

from .common import ErrorResponse, MessageResponse  # noqa: F401
