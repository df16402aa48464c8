"""Request dependencies shared by the routers.

Components live on app.state (set by create_app) and are looked up per
request, so tests can build an app around their own stores.
"""

from fastapi import Request

from keygate.auth.gate import BEARER_PREFIX
from keygate.auth.models import AuthResult, SessionPayload
from keygate.auth.session import SessionManager
from keygate.auth.store import CredentialStore
from keygate.auth.users import UserStore
from keygate.config.models import GateConfig
from keygate.errors import create_error
from keygate.telemetry.metrics import GateMetrics


def get_config(request: Request) -> GateConfig:
    return request.app.state.config


def get_credential_store(request: Request) -> CredentialStore:
    return request.app.state.credential_store


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def get_metrics(request: Request) -> GateMetrics:
    return request.app.state.metrics


def _session_token(request: Request) -> str | None:
    """Session token from the Authorization header, falling back to the cookie."""
    authorization = request.headers.get("Authorization", "")
    if authorization.startswith(BEARER_PREFIX):
        return authorization[len(BEARER_PREFIX):].strip() or None
    cookie_name = request.app.state.config.auth.session_cookie
    return request.cookies.get(cookie_name) or None


def require_session(request: Request) -> SessionPayload:
    """Require a valid dashboard session.

    Raises:
        GateError: MISSING_SESSION without a token, INVALID_SESSION if the
            token fails verification or has expired
    """
    token = _session_token(request)
    if token is None:
        raise create_error("MISSING_SESSION")

    payload = get_session_manager(request).verify(token)
    if payload is None:
        raise create_error("INVALID_SESSION")

    request.state.session = payload
    return payload


def get_auth_result(request: Request) -> AuthResult:
    """AuthResult attached by CredentialAuthMiddleware.

    Raises:
        GateError: MISSING_CREDENTIAL if the route is not behind the middleware
    """
    result = getattr(request.state, "auth_result", None)
    if result is None:
        raise create_error("MISSING_CREDENTIAL")
    return result
