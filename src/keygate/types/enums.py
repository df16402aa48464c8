"""Shared enumerations for keygate."""

from enum import Enum


class LogLevel(str, Enum):
    """Log verbosity level."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class LogFormat(str, Enum):
    """Log output format."""

    JSON = "json"
    TEXT = "text"


class StorageBackend(str, Enum):
    """Credential and user persistence backend."""

    MEMORY = "memory"
    SQLITE = "sqlite"


class RateLimitBackend(str, Enum):
    """Rate limit counter backend."""

    MEMORY = "memory"
    SQLITE = "sqlite"
    REDIS = "redis"
