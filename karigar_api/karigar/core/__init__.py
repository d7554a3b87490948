"""
Core application utilities.

This package provides:
- Application-level settings (separate from DB settings)
- Structured logging with request context
- Domain error types mapped to the standard error envelope
- JWT/password helpers and FastAPI dependencies (merchant header, merchant-scoped session, roles)
"""
