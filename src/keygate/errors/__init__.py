"""keygate error handling - structured errors with wire representation."""

from .errors import ErrorTemplate, ErrorType, GateError
from .factory import ErrorFactory, create_error, get_error_factory
from .registry import ErrorRegistry

__all__ = [
    # Core error types
    "GateError",
    "ErrorType",
    "ErrorTemplate",
    # Registry and factory
    "ErrorRegistry",
    "ErrorFactory",
    # Convenience functions
    "get_error_factory",
    "create_error",
]
