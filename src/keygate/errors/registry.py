"""Error registry for creating errors from templates."""

from typing import Any

from .errors import ErrorTemplate, ErrorType, GateError


class ErrorRegistry:
    """Registry of error templates. Creates errors from templates + context."""

    def __init__(self) -> None:
        """Initialize error registry with built-in templates."""
        self._templates: dict[str, ErrorTemplate] = {}
        self._load_builtin_templates()

    def get_template(self, kind: str) -> ErrorTemplate | None:
        """Get template by error kind.

        Args:
            kind: Error kind to look up

        Returns:
            ErrorTemplate if found, None otherwise
        """
        return self._templates.get(kind)

    def list_kinds(self) -> list[str]:
        """List all registered error kinds."""
        return list(self._templates.keys())

    def register(self, template: ErrorTemplate) -> None:
        """Register or replace a template."""
        self._templates[template.kind] = template

    def create(self, kind: str, context: dict[str, Any] | None = None) -> GateError:
        """Create error instance from template + context.

        Args:
            kind: Error kind
            context: Context variables for template interpolation

        Returns:
            GateError instance

        Raises:
            ValueError: If error kind not found
        """
        template = self.get_template(kind)
        if not template:
            msg = f"Unknown error kind: {kind}"
            raise ValueError(msg)

        context = context or {}

        message = self._interpolate(template.message_template, context) or f"Error {kind}"
        detail = context.get("detail") or self._interpolate(template.detail_template, context)

        return GateError(
            kind=template.kind,
            type=template.type,
            code=template.code,
            message=message,
            detail=detail,
            retryable=template.default_retryable,
            http_status=template.default_http_status,
            headers=dict(context.get("headers") or {}),
            capability=context.get("capability"),
        )

    def _interpolate(self, template: str | None, context: dict[str, Any]) -> str | None:
        """Safe string interpolation.

        Missing context variables leave the template untouched.
        """
        if template is None:
            return None

        try:
            return template.format(**context)
        except KeyError:
            return template

    def _load_builtin_templates(self) -> None:
        """Load hardcoded built-in templates."""
        # Credential authentication
        self.register(
            ErrorTemplate(
                kind="MISSING_CREDENTIAL",
                type=ErrorType.AUTHENTICATION,
                code="missing_api_key",
                message_template="API key is required",
                default_http_status=401,
            )
        )
        self.register(
            ErrorTemplate(
                kind="INVALID_FORMAT",
                type=ErrorType.AUTHENTICATION,
                code="invalid_api_key",
                message_template=(
                    "Invalid Authorization header format. Expected: Bearer <api_key>"
                ),
                default_http_status=401,
            )
        )
        # Unknown, revoked and malformed keys share one message on purpose.
        self.register(
            ErrorTemplate(
                kind="INVALID_CREDENTIAL",
                type=ErrorType.AUTHENTICATION,
                code="invalid_api_key",
                message_template="Invalid API key provided",
                default_http_status=401,
            )
        )

        # Quota
        self.register(
            ErrorTemplate(
                kind="RATE_LIMIT_EXCEEDED",
                type=ErrorType.RATE_LIMIT,
                code="rate_limit_exceeded",
                message_template="Rate limit exceeded. Please retry after {retry_after} seconds.",
                default_retryable=True,
                default_http_status=429,
            )
        )

        # Scoped permissions
        self.register(
            ErrorTemplate(
                kind="DOMAIN_NOT_ALLOWED",
                type=ErrorType.PERMISSION,
                code="domain_not_allowed",
                message_template="API key is not authorized for this domain",
                default_http_status=403,
            )
        )
        self.register(
            ErrorTemplate(
                kind="INSUFFICIENT_PERMISSIONS",
                type=ErrorType.PERMISSION,
                code="insufficient_permissions",
                message_template="API key does not have access to {capability}: {value}",
                default_http_status=403,
            )
        )

        # Management surface
        self.register(
            ErrorTemplate(
                kind="VALIDATION_ERROR",
                type=ErrorType.VALIDATION,
                code="invalid_request",
                message_template="{message}",
                default_http_status=400,
            )
        )
        self.register(
            ErrorTemplate(
                kind="MISSING_PERMISSIONS",
                type=ErrorType.VALIDATION,
                code="missing_permissions",
                message_template="Scoped keys require permissions to be specified",
                default_http_status=400,
            )
        )
        self.register(
            ErrorTemplate(
                kind="INVALID_OPERATION",
                type=ErrorType.VALIDATION,
                code="invalid_operation",
                message_template="Cannot set permissions on a general-purpose key",
                default_http_status=400,
            )
        )
        self.register(
            ErrorTemplate(
                kind="NOT_FOUND",
                type=ErrorType.NOT_FOUND,
                code="key_not_found",
                message_template="API key not found",
                default_http_status=404,
            )
        )

        # Dashboard sessions
        self.register(
            ErrorTemplate(
                kind="MISSING_SESSION",
                type=ErrorType.AUTHENTICATION,
                code="missing_session",
                message_template="Authentication required",
                default_http_status=401,
            )
        )
        self.register(
            ErrorTemplate(
                kind="INVALID_SESSION",
                type=ErrorType.AUTHENTICATION,
                code="invalid_session",
                message_template="Invalid or expired session",
                default_http_status=401,
            )
        )
        self.register(
            ErrorTemplate(
                kind="EMAIL_TAKEN",
                type=ErrorType.VALIDATION,
                code="email_taken",
                message_template="An account with this email already exists",
                default_http_status=400,
            )
        )
        self.register(
            ErrorTemplate(
                kind="INVALID_LOGIN",
                type=ErrorType.AUTHENTICATION,
                code="invalid_credentials",
                message_template="Invalid email or password",
                default_http_status=401,
            )
        )

        # SYSTEM
        self.register(
            ErrorTemplate(
                kind="CONFIG_INVALID",
                type=ErrorType.SERVER,
                code="config_invalid",
                message_template="Configuration is invalid",
                detail_template="{detail}",
            )
        )
        self.register(
            ErrorTemplate(
                kind="INTERNAL_ERROR",
                type=ErrorType.SERVER,
                code="internal_error",
                message_template="An unexpected error occurred",
            )
        )
