"""Authorization gate for credential-bearing requests.

Decision order (the first failure ends the request):
1. Authorization header present
2. "Bearer <token>" shape
3. Recognised credential prefix and shape
4. Digest lookup
5. Not revoked
6. Rate limit (check-and-increment)
7. Domain allow-list for scoped credentials
8. Success: AuthResult, last-used update scheduled in the background

Tool, model and agent checks depend on the endpoint and are left to handlers
(see keygate.auth.permissions).
"""

from __future__ import annotations

from keygate.errors import GateError, create_error
from keygate.telemetry.logging import get_logger
from keygate.telemetry.metrics import GateMetrics, MetricLabels

from .credentials import classify_credential, mask_credential, validate_credential_format
from .last_used import LastUsedRecorder
from .models import AuthResult, Credential, CredentialType, rate_limit_headers
from .permissions import matches_domain
from .rate_limiter import RETRY_AFTER_SECONDS, RateLimiter
from .store import CredentialStore

logger = get_logger("auth.gate")

BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: str | None) -> str:
    """Get the token from an Authorization header.

    Raises:
        GateError: MISSING_CREDENTIAL if the header is absent or empty,
            INVALID_FORMAT if it is not "Bearer <token>"
    """
    if not authorization:
        raise create_error("MISSING_CREDENTIAL")
    if not authorization.startswith(BEARER_PREFIX):
        raise create_error("INVALID_FORMAT")
    return authorization[len(BEARER_PREFIX):]


class AuthorizationGate:
    """Decides whether a credential-bearing request may proceed."""

    def __init__(
        self,
        store: CredentialStore,
        rate_limiter: RateLimiter,
        recorder: LastUsedRecorder | None = None,
        metrics: GateMetrics | None = None,
    ):
        """Initialize gate.

        Args:
            store: Credential store used for digest lookups
            rate_limiter: Per-credential rate limiter
            recorder: Background last-used recorder (skipped when None)
            metrics: Optional decision counters
        """
        self._store = store
        self._rate_limiter = rate_limiter
        self._recorder = recorder
        self._metrics = metrics

    async def authorize(
        self,
        authorization: str | None,
        origin: str | None = None,
        referer: str | None = None,
    ) -> AuthResult:
        """Authorize a request.

        Args:
            authorization: Authorization header value
            origin: Origin header value
            referer: Referer header value (used when Origin is absent)

        Returns:
            AuthResult for the admitted request

        Raises:
            GateError: On the first failed step
        """
        try:
            result = await self._authorize(authorization, origin or referer)
        except GateError as e:
            self._record(e.code)
            raise
        self._record(MetricLabels.OUTCOME_ALLOWED)
        return result

    async def _authorize(self, authorization: str | None, origin: str | None) -> AuthResult:
        secret = extract_bearer_token(authorization)

        if classify_credential(secret) is None or not validate_credential_format(secret):
            raise create_error("INVALID_CREDENTIAL", detail="Unrecognised credential format")

        credential = await self._store.find_by_secret(secret)
        if credential is None:
            logger.debug("Unknown credential", key=mask_credential(secret))
            raise create_error("INVALID_CREDENTIAL", detail="Unknown credential")
        if credential.revoked:
            # Same public error as an unknown credential
            raise create_error("INVALID_CREDENTIAL", detail=f"Revoked credential {credential.id}")

        limiter = self._rate_limiter
        now = limiter.now()
        reset_at = limiter.reset_at(now)
        if not await limiter.check_and_increment(credential.id, credential.rate_limit):
            logger.info(
                "Rate limit exceeded",
                credential_id=credential.id,
                key=credential.display_key,
                limit=credential.rate_limit,
            )
            raise create_error(
                "RATE_LIMIT_EXCEEDED", retry_after=RETRY_AFTER_SECONDS
            ).with_headers(
                {
                    **rate_limit_headers(credential.rate_limit, 0, reset_at),
                    "Retry-After": str(RETRY_AFTER_SECONDS),
                }
            )

        self._check_type_restrictions(credential, origin)

        remaining = await limiter.get_remaining(credential.id, credential.rate_limit)
        if self._recorder is not None:
            self._recorder.schedule(credential.id)

        logger.debug(
            "Request authorized",
            credential_id=credential.id,
            key=credential.display_key,
            remaining=remaining,
        )
        return AuthResult(
            valid=True,
            credential=credential,
            limit=credential.rate_limit,
            remaining=remaining,
            reset_at=reset_at,
        )

    def _check_type_restrictions(self, credential: Credential, origin: str | None) -> None:
        if credential.type is CredentialType.GENERAL:
            return
        if credential.type is CredentialType.SCOPED:
            allowed_domains = credential.permissions.allowed_domains if credential.permissions else []
            if allowed_domains and origin and not matches_domain(origin, allowed_domains):
                logger.info(
                    "Domain not allowed",
                    credential_id=credential.id,
                    key=credential.display_key,
                    origin=origin,
                )
                raise create_error("DOMAIN_NOT_ALLOWED")
            return
        raise create_error(
            "INVALID_CREDENTIAL", detail=f"Unknown credential type {credential.type!r}"
        )

    def _record(self, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.record_decision(outcome)
