"""keygate configuration loader."""

import logging
import os
import re
import typing
from dataclasses import fields
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from keygate.errors import create_error
from keygate.types import (
    LogFormat,
    LogLevel,
    RateLimitBackend,
    StorageBackend,
    ValidationIssue,
    ValidationResult,
)

from .models import GateConfig

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "KEYGATE_CONFIG_PATH"
DEFAULT_CONFIG_FILE = "keygate.yaml"

# Allowed values for enum-typed settings
_ENUM_KEYS: dict[tuple[str, str], type] = {
    ("storage", "backend"): StorageBackend,
    ("rate_limit", "backend"): RateLimitBackend,
    ("logging", "level"): LogLevel,
    ("logging", "format"): LogFormat,
}

# Settings that must be positive integers
_POSITIVE_INT_KEYS = [
    ("server", "port"),
    ("auth", "session_ttl_hours"),
    ("auth", "default_rate_limit"),
    ("auth", "max_rate_limit"),
    ("auth", "last_used_queue_size"),
]


def resolve_env_vars(value: str) -> str:
    """Resolve environment variable references in string.

    Supports:
    - ${VAR} - Required, error if not set
    - ${VAR:-default} - With default value
    - ${VAR:?error message} - Required with custom error

    Args:
        value: String with potential env var references

    Returns:
        String with env vars resolved

    Raises:
        GateError: If required var not set
    """
    pattern = r"\$\{([^}:]+)(?::([?-])([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        operator = match.group(2)  # '-' or '?' or None
        operand = match.group(3)  # default value or error message

        env_value = os.environ.get(var_name)

        if env_value is not None:
            return env_value

        if operator == "-":
            return operand or ""
        elif operator == "?":
            error_msg = operand or f"Required environment variable {var_name} not set"
            raise create_error("CONFIG_INVALID", detail=error_msg)
        else:
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Required environment variable {var_name} not set",
            )

    return re.sub(pattern, replacer, value)


def _resolve_env_vars_recursive(data: Any) -> Any:
    """Recursively resolve env vars in data structure."""
    if isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return resolve_env_vars(data)
    else:
        return data


class ConfigLoader:
    """Load and validate keygate configuration."""

    def __init__(self) -> None:
        self._config: GateConfig | None = None
        self._config_path: Path | None = None

    @property
    def config_path(self) -> Path | None:
        """Path of the last loaded file, if any."""
        return self._config_path

    def load(self, path: str | Path | None = None, use_defaults: bool = True) -> GateConfig:
        """Load configuration from file.

        Resolution order if path not specified:
        1. KEYGATE_CONFIG_PATH environment variable
        2. ./keygate.yaml
        3. If use_defaults=True and no file found, use default configuration

        Args:
            path: Optional path to config file
            use_defaults: If True, use default config when no file found

        Returns:
            Loaded GateConfig instance

        Raises:
            GateError: If file not found (when use_defaults=False) or invalid
        """
        if path is None:
            path = self._resolve_config_path()

        config_path = Path(path)

        if not config_path.exists():
            if use_defaults:
                logger.info("No config file found, using default configuration")
                return self.load_defaults()
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Configuration file not found: {config_path}",
            )

        try:
            with config_path.open() as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Invalid YAML in config file: {e}",
            ) from e

        if not isinstance(data, dict):
            raise create_error(
                "CONFIG_INVALID",
                detail="Configuration file must contain a mapping",
            )

        data = _resolve_env_vars_recursive(data)

        return self.load_from_dict(data, config_path)

    def load_defaults(self) -> GateConfig:
        """Load default configuration without a file."""
        return self.load_from_dict({})

    def load_from_dict(self, data: dict[str, Any], config_path: Path | None = None) -> GateConfig:
        """Load configuration from dictionary.

        Args:
            data: Configuration dictionary
            config_path: Optional path to config file (for tracking)

        Returns:
            Loaded GateConfig instance

        Raises:
            GateError: If configuration is invalid
        """
        validation = self.validate(data)
        for warning in validation.warnings:
            logger.warning(warning.message)
        if not validation.valid:
            error_messages = [f"- {issue.message}" for issue in validation.errors]
            raise create_error(
                "CONFIG_INVALID",
                detail="Configuration validation failed:\n" + "\n".join(error_messages),
            )

        try:
            config = self._dict_to_config(data)
        except Exception as e:
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Failed to parse configuration: {e}",
            ) from e

        self._config = config
        self._config_path = config_path
        logger.debug("Configuration loaded successfully")

        return config

    def validate(self, data: dict[str, Any]) -> ValidationResult:
        """Validate config data without loading.

        Args:
            data: Configuration dictionary

        Returns:
            ValidationResult with errors and warnings
        """
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []

        valid_keys = {f.name for f in fields(GateConfig)}

        for key, section in data.items():
            if key not in valid_keys:
                warnings.append(
                    ValidationIssue(
                        path=key,
                        message=f"Unknown configuration key: {key}",
                        severity="warning",
                    )
                )
            elif not isinstance(section, dict):
                errors.append(
                    ValidationIssue(
                        path=key,
                        message=f"{key} must be a dictionary",
                    )
                )

        def section_value(section: str, key: str) -> tuple[bool, Any]:
            block = data.get(section)
            if isinstance(block, dict) and key in block:
                return True, block[key]
            return False, None

        for section, key in _POSITIVE_INT_KEYS:
            present, value = section_value(section, key)
            if present and (not isinstance(value, int) or isinstance(value, bool) or value <= 0):
                errors.append(
                    ValidationIssue(
                        path=f"{section}.{key}",
                        message=f"{key} must be a positive integer",
                    )
                )

        for (section, key), enum_type in _ENUM_KEYS.items():
            present, value = section_value(section, key)
            allowed = [member.value for member in enum_type]
            if present and value not in allowed:
                errors.append(
                    ValidationIssue(
                        path=f"{section}.{key}",
                        message=f"{key} must be one of: {', '.join(allowed)}",
                    )
                )

        _, default_limit = section_value("auth", "default_rate_limit")
        _, max_limit = section_value("auth", "max_rate_limit")
        if isinstance(default_limit, int) and isinstance(max_limit, int):
            if default_limit > max_limit:
                errors.append(
                    ValidationIssue(
                        path="auth.default_rate_limit",
                        message="default_rate_limit must not exceed max_rate_limit",
                    )
                )

        for section, key in [
            ("auth", "protected_prefixes"),
            ("auth", "exclude_paths"),
            ("cors", "origins"),
        ]:
            present, value = section_value(section, key)
            if present and not (
                isinstance(value, list) and all(isinstance(item, str) for item in value)
            ):
                errors.append(
                    ValidationIssue(
                        path=f"{section}.{key}",
                        message=f"{key} must be a list of strings",
                    )
                )

        return ValidationResult(valid=True, errors=errors, warnings=warnings)

    def get(self) -> GateConfig:
        """Get current configuration.

        Raises:
            GateError: If configuration not loaded
        """
        if self._config is None:
            raise create_error("CONFIG_INVALID", detail="Configuration not loaded")
        return self._config

    def _resolve_config_path(self) -> Path:
        """Resolve config file path using resolution order."""
        env_path = os.environ.get(CONFIG_PATH_ENV)
        if env_path:
            return Path(env_path)

        return Path(DEFAULT_CONFIG_FILE)

    def _dict_to_config(self, data: dict[str, Any]) -> GateConfig:
        """Convert dictionary to GateConfig, using dataclass defaults for missing sections."""
        kwargs: dict[str, Any] = {}

        for f in fields(GateConfig):
            if f.name in data:
                kwargs[f.name] = self._convert_field(f.type, data[f.name])

        return GateConfig(**kwargs)

    def _convert_field(self, field_type: Any, value: Any) -> Any:
        """Convert field value to appropriate type.

        Args:
            field_type: Expected field type
            value: Value to convert

        Returns:
            Converted value
        """
        if value is None:
            return None

        origin = typing.get_origin(field_type)

        if origin is list:
            if not isinstance(value, list):
                return value
            args = typing.get_args(field_type)
            if args:
                return [self._convert_field(args[0], item) for item in value]
            return value

        if hasattr(field_type, "__dataclass_fields__"):
            if isinstance(value, dict):
                kwargs = {}
                for f in fields(field_type):
                    if f.name in value:
                        kwargs[f.name] = self._convert_field(f.type, value[f.name])
                return field_type(**kwargs)
            return value

        if isinstance(field_type, type) and issubclass(field_type, Enum):
            if isinstance(value, str):
                return field_type(value)
            return value

        return value


# Convenience singleton
_default_loader: ConfigLoader | None = None


def get_config_loader() -> ConfigLoader:
    """Get default config loader singleton."""
    global _default_loader  # noqa: PLW0603
    if _default_loader is None:
        _default_loader = ConfigLoader()
    return _default_loader


def load_config(path: str | Path | None = None) -> GateConfig:
    """Convenience function to load config.

    Args:
        path: Optional path to config file

    Returns:
        Loaded GateConfig instance
    """
    return get_config_loader().load(path)
