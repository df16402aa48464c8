"""Credential and auth models.

Core concepts:
- Credential: a stored API key record (digest only, never the secret)
- ScopedPermissions: allow-lists restricting a scoped credential
- AuthResult: the gate's decision, attached to request.state
- SessionPayload: decoded dashboard session token
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

# Wildcard entry accepted in any allow-list
WILDCARD = "*"


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(UTC)


class CredentialType(str, Enum):
    """Type of credential."""

    GENERAL = "general"  # Unrestricted, server-side use
    SCOPED = "scoped"  # Allow-list restricted, client-side use

    @property
    def prefix(self) -> str:
        """Literal prefix carried by secrets of this type."""
        if self is CredentialType.GENERAL:
            return "ozw_"
        if self is CredentialType.SCOPED:
            return "ozw_scoped_"
        raise ValueError(f"Unknown credential type: {self!r}")


class Capability(str, Enum):
    """Capability dimensions a scoped credential can be restricted on."""

    AGENT = "agent"
    TOOL = "tool"
    MODEL = "model"
    DOMAIN = "domain"


@dataclass
class ScopedPermissions:
    """Allow-lists for a scoped credential.

    An empty list leaves that dimension unrestricted.
    """

    allowed_agents: list[str] = field(default_factory=list)
    allowed_tools: list[str] = field(default_factory=list)
    allowed_models: list[str] = field(default_factory=list)
    allowed_domains: list[str] = field(default_factory=list)

    def allow_list(self, capability: Capability) -> list[str]:
        """Get the allow-list for a capability dimension."""
        if capability is Capability.AGENT:
            return self.allowed_agents
        if capability is Capability.TOOL:
            return self.allowed_tools
        if capability is Capability.MODEL:
            return self.allowed_models
        if capability is Capability.DOMAIN:
            return self.allowed_domains
        raise ValueError(f"Unknown capability: {capability!r}")

    def to_dict(self) -> dict[str, list[str]]:
        """Serialize to plain lists."""
        return {
            "allowed_agents": list(self.allowed_agents),
            "allowed_tools": list(self.allowed_tools),
            "allowed_models": list(self.allowed_models),
            "allowed_domains": list(self.allowed_domains),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ScopedPermissions:
        """Build from a dict; missing keys become empty lists."""
        data = data or {}
        return cls(
            allowed_agents=list(data.get("allowed_agents") or []),
            allowed_tools=list(data.get("allowed_tools") or []),
            allowed_models=list(data.get("allowed_models") or []),
            allowed_domains=list(data.get("allowed_domains") or []),
        )


@dataclass
class Credential:
    """A stored credential.

    The plaintext secret is never part of this record; only its digest and
    the last four characters (hint) are kept.
    """

    # Identity
    id: str
    owner_id: str
    name: str
    type: CredentialType

    # Secret material (derived)
    prefix: str
    digest: str
    hint: str

    # Lifecycle
    created_at: datetime = field(default_factory=utcnow)
    last_used_at: datetime | None = None
    revoked_at: datetime | None = None

    # Quota
    rate_limit: int = 100

    # Present only for scoped credentials
    permissions: ScopedPermissions | None = None

    @property
    def revoked(self) -> bool:
        """Whether the credential has been revoked."""
        return self.revoked_at is not None

    @property
    def display_key(self) -> str:
        """Masked form for logs and listings: prefix...hint."""
        return f"{self.prefix}...{self.hint}"


@dataclass
class IssuedCredential:
    """Result of issuance: the record plus the one-time plaintext secret."""

    credential: Credential
    secret: str


@dataclass
class AuthResult:
    """Decision object attached to request.state by the credential middleware."""

    valid: bool
    credential: Credential
    limit: int
    remaining: int
    reset_at: datetime
    authenticated_at: datetime = field(default_factory=utcnow)

    @property
    def credential_id(self) -> str:
        """Get credential ID for logging."""
        return self.credential.id

    @property
    def owner_id(self) -> str:
        """Get owning principal ID."""
        return self.credential.owner_id

    def rate_limit_headers(self) -> dict[str, str]:
        """Rate limit headers for the response."""
        return rate_limit_headers(self.limit, self.remaining, self.reset_at)


@dataclass
class SessionPayload:
    """Decoded dashboard session token."""

    principal_id: str
    issued_at: int  # Unix seconds
    expires_at: int  # Unix seconds


def rate_limit_headers(limit: int, remaining: int, reset_at: datetime) -> dict[str, str]:
    """Build X-RateLimit-* headers.

    Args:
        limit: Requests allowed per window
        remaining: Requests left in the current window
        reset_at: Start of the next window

    Returns:
        Header dict
    """
    return {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(max(remaining, 0)),
        "X-RateLimit-Reset": str(int(reset_at.timestamp())),
    }
