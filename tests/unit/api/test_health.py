"""Tests for the health endpoint."""

from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from keygate.api import create_app
from keygate.auth.store import SQLiteCredentialStore
from keygate.config import GateConfig
from keygate.types import StorageBackend


class TestHealth:
    """Tests for GET /health."""

    def test_healthy(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["version"] == "0.1.0"
        assert body["checks"] == {"credential_store": "ok", "last_used_recorder": "ok"}

    def test_no_credential_needed(self, client):
        assert "X-RateLimit-Limit" not in client.get("/health").headers

    def test_store_unreachable(self, config, credential_store):
        credential_store.ping = AsyncMock(side_effect=RuntimeError("disk gone"))
        app = create_app(config=config, credential_store=credential_store)
        with TestClient(app) as client:
            response = client.get("/health")
        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "unhealthy"
        assert body["checks"]["credential_store"] == "error: disk gone"

    def test_recorder_stopped_without_lifespan(self, app):
        """Test the recorder reports stopped when the app was not started."""
        response = TestClient(app).get("/health")
        assert response.json()["checks"]["last_used_recorder"] == "stopped"


class TestSQLiteApp:
    """Tests for an app built from a SQLite storage config."""

    def test_sqlite_backend(self, tmp_path):
        config = GateConfig()
        config.auth.session_secret = "secret"
        config.storage.backend = StorageBackend.SQLITE
        config.storage.sqlite_path = str(tmp_path / "keygate.db")
        app = create_app(config=config)

        assert isinstance(app.state.credential_store, SQLiteCredentialStore)
        with TestClient(app) as client:
            token = client.post(
                "/auth/register", json={"email": "a@example.com", "password": "hunter22"}
            ).json()["token"]
            created = client.post(
                "/v1/api-keys",
                json={"name": "k", "type": "general"},
                headers={"Authorization": f"Bearer {token}"},
            )
            assert created.status_code == 201
            response = client.get(
                "/v1/credential", headers={"Authorization": f"Bearer {created.json()['key']}"}
            )
            assert response.status_code == 200
