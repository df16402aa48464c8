"""REST API routers."""

from .access import access_router
from .api_keys import api_keys_router
from .auth import auth_router
from .health import health_router

__all__ = [
    "access_router",
    "api_keys_router",
    "auth_router",
    "health_router",
]
