"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for users, buildings, units, tenants
and payments. Ownership checks are explicit joins along unit -> building -> owner.
"""
