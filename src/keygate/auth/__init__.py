"""Credential issuance, authorization and rate limiting.

Provides:
- Credential generation and digests (credentials)
- Credential persistence (store)
- Scoped permission checks (permissions)
- Fixed-window rate limiting (rate_limiter)
- The per-request authorization gate (gate) and its middleware
- Dashboard users and signed session tokens (users, session)
"""

from .credentials import (
    CREDENTIAL_REGEX,
    classify_credential,
    credential_hint,
    digest_credential,
    generate_credential,
    mask_credential,
    validate_credential_format,
)
from .gate import AuthorizationGate, extract_bearer_token
from .last_used import LastUsedRecorder
from .middleware import CredentialAuthMiddleware, error_response
from .models import (
    WILDCARD,
    AuthResult,
    Capability,
    Credential,
    CredentialType,
    IssuedCredential,
    ScopedPermissions,
    SessionPayload,
    rate_limit_headers,
)
from .permissions import (
    can_use,
    can_use_agent,
    can_use_model,
    can_use_tool,
    check_agent,
    check_model,
    check_tool,
    is_allowed,
    matches_domain,
)
from .rate_limiter import (
    RETRY_AFTER_SECONDS,
    InMemoryRateLimiter,
    RateLimiter,
    RedisRateLimiter,
    SQLiteRateLimiter,
)
from .session import SessionManager, generate_session_secret
from .store import (
    DEFAULT_RATE_LIMIT,
    MAX_RATE_LIMIT,
    CredentialStore,
    InMemoryCredentialStore,
    SQLiteCredentialStore,
)
from .users import (
    InMemoryUserStore,
    SQLiteUserStore,
    User,
    UserStore,
    hash_password,
    verify_password,
)

__all__ = [
    # Credentials
    "CREDENTIAL_REGEX",
    "classify_credential",
    "credential_hint",
    "digest_credential",
    "generate_credential",
    "mask_credential",
    "validate_credential_format",
    # Models
    "WILDCARD",
    "AuthResult",
    "Capability",
    "Credential",
    "CredentialType",
    "IssuedCredential",
    "ScopedPermissions",
    "SessionPayload",
    "rate_limit_headers",
    # Permissions
    "can_use",
    "can_use_agent",
    "can_use_model",
    "can_use_tool",
    "check_agent",
    "check_model",
    "check_tool",
    "is_allowed",
    "matches_domain",
    # Rate limiting
    "RETRY_AFTER_SECONDS",
    "RateLimiter",
    "InMemoryRateLimiter",
    "SQLiteRateLimiter",
    "RedisRateLimiter",
    # Stores
    "DEFAULT_RATE_LIMIT",
    "MAX_RATE_LIMIT",
    "CredentialStore",
    "InMemoryCredentialStore",
    "SQLiteCredentialStore",
    # Gate
    "AuthorizationGate",
    "CredentialAuthMiddleware",
    "LastUsedRecorder",
    "error_response",
    "extract_bearer_token",
    # Sessions and users
    "SessionManager",
    "generate_session_secret",
    "User",
    "UserStore",
    "InMemoryUserStore",
    "SQLiteUserStore",
    "hash_password",
    "verify_password",
]
