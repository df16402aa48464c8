"""REST API application factory."""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from keygate import __version__
from keygate.api.errors import setup_error_handlers
from keygate.api.routers import access_router, api_keys_router, auth_router, health_router
from keygate.auth.gate import AuthorizationGate
from keygate.auth.last_used import LastUsedRecorder
from keygate.auth.middleware import CredentialAuthMiddleware
from keygate.auth.rate_limiter import (
    InMemoryRateLimiter,
    RateLimiter,
    RedisRateLimiter,
    SQLiteRateLimiter,
)
from keygate.auth.session import SessionManager
from keygate.auth.store import CredentialStore, InMemoryCredentialStore, SQLiteCredentialStore
from keygate.auth.users import InMemoryUserStore, SQLiteUserStore, UserStore
from keygate.config.models import GateConfig, RateLimitConfig, StorageConfig
from keygate.telemetry.metrics import GateMetrics, get_metrics
from keygate.types import RateLimitBackend, StorageBackend

logger = logging.getLogger(__name__)


def build_credential_store(config: StorageConfig) -> CredentialStore:
    """Create the credential store selected by config."""
    if config.backend is StorageBackend.SQLITE:
        return SQLiteCredentialStore(config.sqlite_path)
    if config.backend is StorageBackend.MEMORY:
        return InMemoryCredentialStore()
    raise ValueError(f"Unknown storage backend: {config.backend!r}")


def build_user_store(config: StorageConfig) -> UserStore:
    """Create the user store selected by config."""
    if config.backend is StorageBackend.SQLITE:
        return SQLiteUserStore(config.sqlite_path)
    if config.backend is StorageBackend.MEMORY:
        return InMemoryUserStore()
    raise ValueError(f"Unknown storage backend: {config.backend!r}")


def build_rate_limiter(config: RateLimitConfig) -> RateLimiter:
    """Create the rate limiter selected by config."""
    if config.backend is RateLimitBackend.MEMORY:
        return InMemoryRateLimiter()
    if config.backend is RateLimitBackend.SQLITE:
        return SQLiteRateLimiter(config.sqlite_path)
    if config.backend is RateLimitBackend.REDIS:
        return RedisRateLimiter.from_url(
            config.redis_url,
            key_prefix=config.redis_key_prefix,
            fail_open=config.fail_open,
        )
    raise ValueError(f"Unknown rate limit backend: {config.backend!r}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the last-used recorder for the lifetime of the app."""
    recorder: LastUsedRecorder = app.state.last_used_recorder
    await recorder.start()
    logger.info("keygate started")

    yield

    await recorder.stop()
    rate_limiter = app.state.rate_limiter
    if isinstance(rate_limiter, RedisRateLimiter):
        await rate_limiter.close()
    logger.info("keygate stopped")


def create_app(
    config: GateConfig | None = None,
    credential_store: CredentialStore | None = None,
    user_store: UserStore | None = None,
    rate_limiter: RateLimiter | None = None,
    session_manager: SessionManager | None = None,
    metrics: GateMetrics | None = None,
) -> FastAPI:
    """Create FastAPI application with all routes.

    Components not passed in are built from config.

    Args:
        config: keygate configuration (defaults when omitted)
        credential_store: Credential persistence
        user_store: Dashboard user persistence
        rate_limiter: Per-credential rate limiter
        session_manager: Dashboard session signer
        metrics: Metrics instruments

    Returns:
        Configured FastAPI application
    """
    config = config or GateConfig()
    credential_store = credential_store or build_credential_store(config.storage)
    user_store = user_store or build_user_store(config.storage)
    rate_limiter = rate_limiter or build_rate_limiter(config.rate_limit)
    session_manager = session_manager or SessionManager(
        secret=config.auth.session_secret,
        ttl=timedelta(hours=config.auth.session_ttl_hours),
    )
    metrics = metrics or get_metrics()

    recorder = LastUsedRecorder(
        credential_store,
        max_queue_size=config.auth.last_used_queue_size,
        metrics=metrics,
    )
    gate = AuthorizationGate(credential_store, rate_limiter, recorder=recorder, metrics=metrics)

    app = FastAPI(
        title="keygate",
        version=__version__,
        lifespan=lifespan,
    )

    # Store dependencies in app state
    app.state.config = config
    app.state.credential_store = credential_store
    app.state.user_store = user_store
    app.state.rate_limiter = rate_limiter
    app.state.session_manager = session_manager
    app.state.metrics = metrics
    app.state.last_used_recorder = recorder
    app.state.gate = gate

    # The last middleware added is the outermost; CORS wraps auth so that
    # browser clients can read rejections.
    app.add_middleware(
        CredentialAuthMiddleware,
        gate=gate,
        protected_prefixes=config.auth.protected_prefixes,
        exclude_paths=config.auth.exclude_paths,
    )

    if config.cors.enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors.origins,
            allow_credentials="*" not in config.cors.origins,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=[
                "X-RateLimit-Limit",
                "X-RateLimit-Remaining",
                "X-RateLimit-Reset",
                "Retry-After",
            ],
        )

    setup_error_handlers(app)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(api_keys_router)
    app.include_router(access_router)

    return app
