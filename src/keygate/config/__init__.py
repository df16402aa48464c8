"""keygate configuration - config loading and models."""

from .loader import (
    CONFIG_PATH_ENV,
    ConfigLoader,
    get_config_loader,
    load_config,
    resolve_env_vars,
)
from .models import (
    AuthConfig,
    CORSConfig,
    GateConfig,
    LoggingConfig,
    RateLimitConfig,
    ServerConfig,
    StorageConfig,
)

__all__ = [
    # Config models
    "GateConfig",
    "ServerConfig",
    "AuthConfig",
    "StorageConfig",
    "RateLimitConfig",
    "LoggingConfig",
    "CORSConfig",
    # Loader
    "CONFIG_PATH_ENV",
    "ConfigLoader",
    "get_config_loader",
    "load_config",
    "resolve_env_vars",
]
