"""
Pytest configuration and shared fixtures for keygate tests.
"""

import sys
from collections.abc import Callable, Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from keygate.api import create_app  # noqa: E402
from keygate.auth import (  # noqa: E402
    InMemoryCredentialStore,
    InMemoryRateLimiter,
    InMemoryUserStore,
    SessionManager,
)
from keygate.config import GateConfig  # noqa: E402

TEST_SESSION_SECRET = "test-session-secret"


# =============================================================================
# Clock
# =============================================================================


class FakeClock:
    """Controllable clock returning aware UTC datetimes."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 15, 12, 0, 10, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        """Move the clock forward by timedelta(**kwargs)."""
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    """Clock frozen mid-minute at 2025-01-15T12:00:10Z."""
    return FakeClock()


# =============================================================================
# Component Fixtures
# =============================================================================


@pytest.fixture
def credential_store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def user_store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def rate_limiter(clock: FakeClock) -> InMemoryRateLimiter:
    return InMemoryRateLimiter(clock=clock)


@pytest.fixture
def session_manager(clock: FakeClock) -> SessionManager:
    return SessionManager(secret=TEST_SESSION_SECRET, clock=clock)


# =============================================================================
# App Fixtures
# =============================================================================


@pytest.fixture
def config() -> GateConfig:
    config = GateConfig()
    config.auth.session_secret = TEST_SESSION_SECRET
    return config


@pytest.fixture
def app(config, credential_store, user_store, rate_limiter, session_manager):
    """keygate app wired to in-memory components and the fake clock."""
    return create_app(
        config=config,
        credential_store=credential_store,
        user_store=user_store,
        rate_limiter=rate_limiter,
        session_manager=session_manager,
    )


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Test client with the app lifespan running."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def session_headers(client: TestClient) -> dict[str, str]:
    """Authorization headers for a freshly registered dashboard user."""
    response = client.post(
        "/auth/register",
        json={"email": "owner@example.com", "password": "hunter22"},
    )
    assert response.status_code == 201
    # Use the header, not the cookie jar, so tests control which session is sent
    client.cookies.clear()
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def issue_key(client: TestClient, session_headers: dict[str, str]) -> Callable[..., dict]:
    """Create an API key through the management API and return the response body."""

    def _issue(
        name: str = "test-key",
        key_type: str = "general",
        permissions: dict | None = None,
        rate_limit: int | None = None,
    ) -> dict:
        body: dict = {"name": name, "type": key_type}
        if permissions is not None:
            body["permissions"] = permissions
        if rate_limit is not None:
            body["rate_limit"] = rate_limit
        response = client.post("/v1/api-keys", json=body, headers=session_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _issue


# =============================================================================
# Markers Configuration
# =============================================================================


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
