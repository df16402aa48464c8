"""Stateless dashboard session tokens.

Token format: {base64url(json_payload)}.{base64url(hmac_sha256(encoded_payload))}
- Payload: {"sub": principal_id, "iat": issued_at, "exp": expires_at}
- Times are Unix seconds
- Signature covers the encoded payload string, not the raw JSON

Tokens are not stored; verification only needs the secret.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta

from .models import SessionPayload, utcnow

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = timedelta(hours=24)


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def generate_session_secret() -> str:
    """Random secret for deployments that do not configure one."""
    return secrets.token_urlsafe(32)


class SessionManager:
    """Issue and verify HMAC-signed session tokens."""

    def __init__(
        self,
        secret: str | None = None,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize session manager.

        Args:
            secret: Signing secret; a random one is generated when omitted
            ttl: Token lifetime
            clock: Returns the current aware UTC datetime (injectable for tests)
        """
        if not secret:
            logger.warning(
                "[AUTH] No session secret configured; generated a random one. "
                "Sessions will not survive a restart."
            )
            secret = generate_session_secret()
        self._key = secret.encode("utf-8")
        self.ttl = ttl
        self._clock = clock or utcnow

    @property
    def max_age(self) -> int:
        """Token lifetime in seconds, for cookie Max-Age."""
        return int(self.ttl.total_seconds())

    def _sign(self, encoded_payload: str) -> str:
        digest = hmac.new(self._key, encoded_payload.encode("ascii"), hashlib.sha256).digest()
        return _b64encode(digest)

    def issue(self, principal_id: str) -> str:
        """Create a session token for a principal.

        Args:
            principal_id: Dashboard user ID

        Returns:
            Signed token string
        """
        issued_at = int(self._clock().timestamp())
        payload = {
            "sub": principal_id,
            "iat": issued_at,
            "exp": issued_at + self.max_age,
        }
        encoded = _b64encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
        return f"{encoded}.{self._sign(encoded)}"

    def verify(self, token: str | None) -> SessionPayload | None:
        """Verify a session token.

        Args:
            token: Token string from a cookie or Authorization header

        Returns:
            SessionPayload if the signature is valid and the token has not
            expired, None otherwise
        """
        if not token:
            return None

        parts = token.split(".")
        if len(parts) != 2:
            return None
        encoded, signature = parts

        try:
            expected = self._sign(encoded)
        except UnicodeEncodeError:
            return None
        if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("ascii")):
            return None

        try:
            data = json.loads(_b64decode(encoded))
        except (binascii.Error, ValueError):
            return None
        if not isinstance(data, dict):
            return None

        principal_id = data.get("sub")
        issued_at = data.get("iat")
        expires_at = data.get("exp")
        if not isinstance(principal_id, str) or not principal_id:
            return None
        if not isinstance(issued_at, int) or not isinstance(expires_at, int):
            return None

        if expires_at <= self._clock().timestamp():
            return None

        return SessionPayload(
            principal_id=principal_id,
            issued_at=issued_at,
            expires_at=expires_at,
        )
