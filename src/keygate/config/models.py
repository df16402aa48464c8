"""keygate configuration data models."""

from dataclasses import dataclass, field

from keygate.types import LogFormat, LogLevel, RateLimitBackend, StorageBackend


@dataclass
class ServerConfig:
    """Server configuration."""

    host: str = "0.0.0.0"
    port: int = 8080


@dataclass
class AuthConfig:
    """Credential and session configuration."""

    # Signing secret for dashboard sessions; generated at startup when unset
    session_secret: str | None = None
    session_cookie: str = "ozwell_session"
    session_ttl_hours: int = 24

    default_rate_limit: int = 100
    max_rate_limit: int = 10000

    # Credential-gated path prefixes, minus the management surface
    protected_prefixes: list[str] = field(default_factory=lambda: ["/v1"])
    exclude_paths: list[str] = field(default_factory=lambda: ["/v1/api-keys"])

    last_used_queue_size: int = 1000


@dataclass
class StorageConfig:
    """Credential and user storage configuration."""

    backend: StorageBackend = StorageBackend.MEMORY
    sqlite_path: str = "keygate.db"


@dataclass
class RateLimitConfig:
    """Rate limiter backend configuration."""

    backend: RateLimitBackend = RateLimitBackend.MEMORY
    sqlite_path: str = "keygate.db"
    redis_url: str = "redis://localhost:6379/0"
    redis_key_prefix: str = "keygate:rate_limit"
    fail_open: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON


@dataclass
class CORSConfig:
    """CORS configuration for browser clients of scoped credentials."""

    enabled: bool = False
    origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class GateConfig:
    """Complete keygate configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    cors: CORSConfig = field(default_factory=CORSConfig)
