"""REST API models."""

from .access import AccessCheckRequest, AccessCheckResponse, CredentialInfo
from .api_keys import (
    KeyActionResponse,
    KeyCreateRequest,
    KeyCreateResponse,
    KeyDetail,
    KeyListResponse,
    KeyTypeEnum,
    KeyUpdateRequest,
    PermissionsModel,
)
from .auth import LoginRequest, LogoutResponse, RegisterRequest, SessionResponse, UserInfo
from .common import ErrorDetail, ErrorResponse, HealthCheck, HealthStatus

__all__ = [
    # Access
    "AccessCheckRequest",
    "AccessCheckResponse",
    "CredentialInfo",
    # API keys
    "KeyActionResponse",
    "KeyCreateRequest",
    "KeyCreateResponse",
    "KeyDetail",
    "KeyListResponse",
    "KeyTypeEnum",
    "KeyUpdateRequest",
    "PermissionsModel",
    # Auth
    "LoginRequest",
    "LogoutResponse",
    "RegisterRequest",
    "SessionResponse",
    "UserInfo",
    # Common
    "ErrorDetail",
    "ErrorResponse",
    "HealthCheck",
    "HealthStatus",
]
