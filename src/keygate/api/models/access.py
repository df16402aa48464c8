"""Data-plane models for credential introspection and capability checks."""

from datetime import datetime

from pydantic import BaseModel, Field

from keygate.auth.models import AuthResult

from .api_keys import KeyTypeEnum, PermissionsModel


class CredentialInfo(BaseModel):
    """The calling credential and its current quota."""

    id: str = Field(description="Key ID")
    name: str = Field(description="Key name")
    type: KeyTypeEnum = Field(description="Key type")
    key_hint: str = Field(description="Last four characters of the key")
    permissions: PermissionsModel | None = Field(default=None, description="Scoped permissions")
    rate_limit: int = Field(description="Requests per minute")
    remaining: int = Field(description="Requests left in the current window")
    reset_at: datetime = Field(description="Start of the next window")

    @classmethod
    def from_auth_result(cls, result: AuthResult) -> "CredentialInfo":
        credential = result.credential
        return cls(
            id=credential.id,
            name=credential.name,
            type=KeyTypeEnum(credential.type.value),
            key_hint=credential.hint,
            permissions=PermissionsModel.from_permissions(credential.permissions)
            if credential.permissions is not None
            else None,
            rate_limit=result.limit,
            remaining=result.remaining,
            reset_at=result.reset_at,
        )


class AccessCheckRequest(BaseModel):
    """Capabilities a caller intends to use. Omitted fields are not checked."""

    tool: str | None = Field(default=None, description="Tool name")
    model: str | None = Field(default=None, description="Model name")
    agent: str | None = Field(default=None, description="Agent ID")


class AccessCheckResponse(BaseModel):
    """Returned when every requested capability is allowed."""

    allowed: bool = True
    credential_id: str = Field(description="Key ID")
    tool: str | None = None
    model: str | None = None
    agent: str | None = None
