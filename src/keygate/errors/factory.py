"""Error factory and convenience helpers."""

from typing import Any

from .errors import GateError
from .registry import ErrorRegistry


class ErrorFactory:
    """Creates GateErrors from registry templates."""

    def __init__(self, registry: ErrorRegistry | None = None):
        """Initialize error factory.

        Args:
            registry: Error registry (defaults to new ErrorRegistry())
        """
        self.registry = registry or ErrorRegistry()

    def create(
        self,
        kind: str,
        context: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> GateError:
        """Create GateError directly from its kind.

        Args:
            kind: Error kind
            context: Context variables for template interpolation
            **kwargs: Additional context variables

        Returns:
            GateError instance
        """
        merged_context = dict(context or {})
        merged_context.update(kwargs)

        return self.registry.create(kind=kind, context=merged_context)


# Convenience singleton
_default_factory: ErrorFactory | None = None


def get_error_factory() -> ErrorFactory:
    """Get default error factory singleton."""
    global _default_factory  # noqa: PLW0603
    if _default_factory is None:
        _default_factory = ErrorFactory()
    return _default_factory


def create_error(kind: str, **context: Any) -> GateError:
    """Convenience function to create error.

    Args:
        kind: Error kind
        **context: Context variables for template interpolation

    Returns:
        GateError instance
    """
    return get_error_factory().create(kind, context)
