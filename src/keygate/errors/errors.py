"""keygate error types."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ErrorType(str, Enum):
    """Error families exposed in the `type` field of error bodies."""

    AUTHENTICATION = "authentication_error"
    PERMISSION = "permission_error"
    RATE_LIMIT = "rate_limit_error"
    VALIDATION = "validation_error"
    NOT_FOUND = "not_found_error"
    SERVER = "server_error"


@dataclass
class GateError(Exception):
    """Structured error with context. Base exception for all keygate errors."""

    # Identity
    kind: str  # Registry key, e.g. "INVALID_CREDENTIAL"
    type: ErrorType
    code: str  # Wire code, e.g. "invalid_api_key"

    # Messages
    message: str
    detail: str | None = None  # Logged, never sent to callers

    # Context
    retryable: bool = False
    http_status: int = 500
    headers: dict[str, str] = field(default_factory=dict)
    capability: str | None = None  # "tool", "model", "agent" for permission errors

    # Metadata
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        """Set Exception message."""
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the public part of the error.

        Returns:
            Dictionary with message, type and code only
        """
        return {
            "message": self.message,
            "type": self.type.value,
            "code": self.code,
        }

    def with_headers(self, headers: dict[str, str]) -> "GateError":
        """Return the same error with extra response headers merged in.

        Args:
            headers: Headers to add to the error response

        Returns:
            This error instance (headers are merged in place)
        """
        self.headers = {**self.headers, **headers}
        return self


@dataclass
class ErrorTemplate:
    """Template for creating errors."""

    kind: str
    type: ErrorType
    code: str
    message_template: str  # "API key does not have access to {capability}: {value}"
    detail_template: str | None = None
    default_retryable: bool = False
    default_http_status: int = 500
