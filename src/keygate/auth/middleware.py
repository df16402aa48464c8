"""Credential middleware for data-plane routes.

Flow for every request under a protected prefix:
1. Run the AuthorizationGate on Authorization / Origin / Referer
2. Attach the AuthResult to request.state.auth_result
3. Add X-RateLimit-* headers to the response

Rejections are returned here as JSON error bodies with any headers the error
carries (Retry-After and X-RateLimit-* for 429).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from keygate.errors import GateError, create_error

if TYPE_CHECKING:
    from .gate import AuthorizationGate

logger = logging.getLogger(__name__)

DEFAULT_PROTECTED_PREFIXES = ["/v1"]

# Management routes use dashboard sessions instead of credentials
DEFAULT_EXCLUDE_PATHS = ["/v1/api-keys"]


def error_response(error: GateError) -> JSONResponse:
    """Render a GateError as the uniform JSON error body."""
    return JSONResponse(
        status_code=error.http_status,
        content={"error": error.to_dict()},
        headers=error.headers or None,
    )


def _matches(path: str, prefix: str) -> bool:
    prefix = prefix.rstrip("/")
    return path == prefix or path.startswith(prefix + "/")


class CredentialAuthMiddleware(BaseHTTPMiddleware):
    """Middleware gating data-plane routes on an API credential."""

    def __init__(
        self,
        app,
        gate: AuthorizationGate,
        protected_prefixes: list[str] | None = None,
        exclude_paths: list[str] | None = None,
    ):
        """Initialize middleware.

        Args:
            app: ASGI application
            gate: Authorization gate
            protected_prefixes: Path prefixes that require a credential
            exclude_paths: Prefixes under a protected prefix that do not
        """
        super().__init__(app)
        self._gate = gate
        self._protected = (
            protected_prefixes if protected_prefixes is not None else DEFAULT_PROTECTED_PREFIXES
        )
        self._exclude_paths = (
            exclude_paths if exclude_paths is not None else DEFAULT_EXCLUDE_PATHS
        )

    def is_protected(self, path: str) -> bool:
        """Whether a path requires a credential."""
        if any(_matches(path, excluded) for excluded in self._exclude_paths):
            return False
        return any(_matches(path, prefix) for prefix in self._protected)

    async def dispatch(self, request: Request, call_next) -> Response:
        """Authorize the request before it reaches a handler."""
        if request.method == "OPTIONS" or not self.is_protected(request.url.path):
            return await call_next(request)

        try:
            result = await self._gate.authorize(
                request.headers.get("Authorization"),
                origin=request.headers.get("Origin"),
                referer=request.headers.get("Referer"),
            )
        except GateError as e:
            if e.detail:
                logger.debug(f"[AUTH] {request.method} {request.url.path} rejected: {e.detail}")
            return error_response(e)
        except Exception as e:
            logger.exception(f"[AUTH] Authorization failed unexpectedly: {e}")
            return error_response(create_error("INTERNAL_ERROR"))

        request.state.auth_result = result
        response = await call_next(request)
        for name, value in result.rate_limit_headers().items():
            response.headers[name] = value
        return response
