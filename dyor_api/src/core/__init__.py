"""
Core application utilities for settings, logging, security and FastAPI dependencies.

This package provides:
- Application-level settings (separate from DB settings)
- JWT handling and Solana signature verification
- Dependency helpers (DB session, current user, admin guard)
"""
