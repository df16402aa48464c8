"""Shared types for keygate.

Import from here rather than submodules:
    from keygate.types import LogFormat, StorageBackend
"""

from .enums import LogFormat, LogLevel, RateLimitBackend, StorageBackend
from .validation import ValidationIssue, ValidationResult

__all__ = [
    "LogLevel",
    "LogFormat",
    "StorageBackend",
    "RateLimitBackend",
    "ValidationIssue",
    "ValidationResult",
]
