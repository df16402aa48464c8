"""API key management models."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from keygate.auth.models import Credential, ScopedPermissions


class KeyTypeEnum(str, Enum):
    """Credential type accepted by the management API."""

    GENERAL = "general"
    SCOPED = "scoped"


class PermissionsModel(BaseModel):
    """Allow-lists of a scoped key. An empty list leaves that dimension open."""

    allowed_agents: list[str] = Field(default_factory=list, description="Agent IDs")
    allowed_tools: list[str] = Field(default_factory=list, description="Tool names")
    allowed_models: list[str] = Field(default_factory=list, description="Model names")
    allowed_domains: list[str] = Field(
        default_factory=list,
        description="Hosts such as app.example.com, *.example.com or *",
    )

    def to_permissions(self) -> ScopedPermissions:
        return ScopedPermissions(
            allowed_agents=list(self.allowed_agents),
            allowed_tools=list(self.allowed_tools),
            allowed_models=list(self.allowed_models),
            allowed_domains=list(self.allowed_domains),
        )

    @classmethod
    def from_permissions(cls, permissions: ScopedPermissions) -> "PermissionsModel":
        return cls(**permissions.to_dict())


class KeyCreateRequest(BaseModel):
    """Request to create an API key."""

    name: str = Field(description="Human-readable key name", min_length=1, max_length=255)
    type: KeyTypeEnum = Field(description="general (server-side) or scoped (client-side)")
    permissions: PermissionsModel | None = Field(
        default=None, description="Required for scoped keys, ignored for general keys"
    )
    rate_limit: int | None = Field(
        default=None, ge=1, description="Requests per minute (server default when omitted)"
    )


class KeyUpdateRequest(BaseModel):
    """Request to update an API key."""

    permissions: PermissionsModel | None = Field(
        default=None, description="Replacement permissions (scoped keys only)"
    )


class KeyDetail(BaseModel):
    """API key as shown in listings. Never includes the secret."""

    id: str = Field(description="Key ID")
    name: str = Field(description="Key name")
    type: KeyTypeEnum = Field(description="Key type")
    key_prefix: str = Field(description="ozw_ or ozw_scoped_")
    key_hint: str = Field(description="Last four characters of the key")
    created_at: datetime = Field(description="Creation timestamp")
    last_used_at: datetime | None = Field(default=None, description="Last successful use")
    revoked_at: datetime | None = Field(default=None, description="Revocation timestamp")
    rate_limit: int = Field(description="Requests per minute")
    permissions: PermissionsModel | None = Field(
        default=None, description="Scoped key permissions"
    )

    @classmethod
    def from_credential(cls, credential: Credential) -> "KeyDetail":
        return cls(
            id=credential.id,
            name=credential.name,
            type=KeyTypeEnum(credential.type.value),
            key_prefix=credential.prefix,
            key_hint=credential.hint,
            created_at=credential.created_at,
            last_used_at=credential.last_used_at,
            revoked_at=credential.revoked_at,
            rate_limit=credential.rate_limit,
            permissions=PermissionsModel.from_permissions(credential.permissions)
            if credential.permissions is not None
            else None,
        )


class KeyCreateResponse(BaseModel):
    """Response after creating a key. The only response that carries the secret."""

    id: str = Field(description="Key ID")
    name: str = Field(description="Key name")
    type: KeyTypeEnum = Field(description="Key type")
    key: str = Field(description="Full API key - only shown once")
    key_hint: str = Field(description="Last four characters of the key")
    rate_limit: int = Field(description="Requests per minute")
    created_at: datetime = Field(description="Creation timestamp")


class KeyListResponse(BaseModel):
    """List of a user's keys, newest first."""

    object: Literal["list"] = "list"
    data: list[KeyDetail] = Field(default_factory=list)


class KeyActionResponse(BaseModel):
    """Result of revoke or delete."""

    success: bool = True
    message: str
