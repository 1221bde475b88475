"""
API route modules for the leasing and payment core.

This package contains subrouters for:
- Auth: owner registration, login, refresh, logout and the current caller
- Buildings and Units: owner-scoped property records and room codes
- Tenants: room-code validation and tenant self-registration
- Payments: gateway charges, manual payments, refunds and reconciliation

Routers are included from property_api.api.main (under the /api/v1 prefix).
"""
