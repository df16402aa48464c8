"""keygate REST API."""

from .app import (
    build_credential_store,
    build_rate_limiter,
    build_user_store,
    create_app,
)

__all__ = [
    "create_app",
    "build_credential_store",
    "build_rate_limiter",
    "build_user_store",
]
