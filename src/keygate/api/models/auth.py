"""Dashboard authentication models."""

from pydantic import BaseModel, Field

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class RegisterRequest(BaseModel):
    """Request to create a dashboard account."""

    email: str = Field(description="Account email", pattern=EMAIL_PATTERN, max_length=320)
    password: str = Field(description="Account password", min_length=6, max_length=256)


class LoginRequest(BaseModel):
    """Request to sign in."""

    email: str = Field(description="Account email", max_length=320)
    password: str = Field(description="Account password", max_length=256)


class UserInfo(BaseModel):
    """Public view of a dashboard user."""

    id: str = Field(description="User ID")
    email: str = Field(description="Account email")


class SessionResponse(BaseModel):
    """Session token issued on register or login."""

    token: str = Field(description="Session token (also set as a cookie)")
    user: UserInfo


class LogoutResponse(BaseModel):
    success: bool = True
