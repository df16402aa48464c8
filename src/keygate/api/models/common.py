"""Common API models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """Health status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthCheck(BaseModel):
    """Health check response."""

    status: HealthStatus
    version: str
    checks: dict[str, str] = Field(default_factory=dict)
    timestamp: datetime


class ErrorDetail(BaseModel):
    """Uniform error body: {"error": {"message", "type", "code"}}."""

    message: str
    type: str
    code: str


class ErrorResponse(BaseModel):
    error: ErrorDetail
