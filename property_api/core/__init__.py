"""
Core application utilities shared by the API and the services.

This package provides:
- Application-level settings (separate from DB settings)
- Logging configuration with correlation/caller context
- The domain error taxonomy
- Token and password helpers plus FastAPI dependency helpers
"""
