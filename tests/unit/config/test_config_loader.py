"""Tests for keygate configuration loading."""

import os
from unittest.mock import patch

import pytest

from keygate.config import ConfigLoader, GateConfig, load_config, resolve_env_vars
from keygate.errors import GateError
from keygate.types import LogFormat, LogLevel, RateLimitBackend, StorageBackend


@pytest.fixture
def loader() -> ConfigLoader:
    return ConfigLoader()


class TestDefaults:
    """Tests for default configuration."""

    def test_defaults(self, loader):
        config = loader.load_defaults()

        assert config.server.port == 8080
        assert config.auth.session_secret is None
        assert config.auth.session_cookie == "ozwell_session"
        assert config.auth.session_ttl_hours == 24
        assert config.auth.default_rate_limit == 100
        assert config.auth.max_rate_limit == 10000
        assert config.auth.protected_prefixes == ["/v1"]
        assert config.auth.exclude_paths == ["/v1/api-keys"]
        assert config.storage.backend is StorageBackend.MEMORY
        assert config.rate_limit.backend is RateLimitBackend.MEMORY
        assert config.rate_limit.fail_open is True
        assert config.logging.level is LogLevel.INFO
        assert config.cors.enabled is False

    def test_missing_file_uses_defaults(self, loader, tmp_path):
        config = loader.load(tmp_path / "missing.yaml")
        assert config == GateConfig()

    def test_missing_file_without_defaults(self, loader, tmp_path):
        with pytest.raises(GateError) as exc_info:
            loader.load(tmp_path / "missing.yaml", use_defaults=False)
        assert exc_info.value.code == "config_invalid"
        assert "not found" in exc_info.value.detail


class TestLoadFile:
    """Tests for loading YAML files."""

    def test_load_yaml(self, loader, tmp_path):
        path = tmp_path / "keygate.yaml"
        path.write_text(
            """
server:
  port: 9000
auth:
  session_secret: abc
  default_rate_limit: 50
storage:
  backend: sqlite
  sqlite_path: /tmp/keys.db
rate_limit:
  backend: redis
  fail_open: false
logging:
  level: DEBUG
  format: text
cors:
  enabled: true
  origins: ["https://app.example.com"]
"""
        )
        config = loader.load(path)

        assert config.server.port == 9000
        assert config.server.host == "0.0.0.0"
        assert config.auth.session_secret == "abc"
        assert config.auth.default_rate_limit == 50
        assert config.storage.backend is StorageBackend.SQLITE
        assert config.rate_limit.backend is RateLimitBackend.REDIS
        assert config.rate_limit.fail_open is False
        assert config.logging.format is LogFormat.TEXT
        assert config.cors.origins == ["https://app.example.com"]
        assert loader.config_path == path
        assert loader.get() is config

    def test_env_vars_resolved(self, loader, tmp_path):
        path = tmp_path / "keygate.yaml"
        path.write_text("auth:\n  session_secret: ${TEST_KEYGATE_SECRET}\n")
        with patch.dict(os.environ, {"TEST_KEYGATE_SECRET": "from-env"}):
            config = loader.load(path)
        assert config.auth.session_secret == "from-env"

    def test_env_path_resolution(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("server:\n  port: 7000\n")
        with patch.dict(os.environ, {"KEYGATE_CONFIG_PATH": str(path)}):
            config = ConfigLoader().load()
        assert config.server.port == 7000

    def test_invalid_yaml(self, loader, tmp_path):
        path = tmp_path / "keygate.yaml"
        path.write_text("server: [unclosed\n")
        with pytest.raises(GateError) as exc_info:
            loader.load(path)
        assert "Invalid YAML" in exc_info.value.detail

    def test_non_mapping(self, loader, tmp_path):
        path = tmp_path / "keygate.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(GateError):
            loader.load(path)

    def test_empty_file(self, loader, tmp_path):
        path = tmp_path / "keygate.yaml"
        path.write_text("")
        assert loader.load(path) == GateConfig()

    def test_load_config_helper(self, tmp_path):
        path = tmp_path / "keygate.yaml"
        path.write_text("server:\n  port: 8181\n")
        assert load_config(path).server.port == 8181

    def test_get_before_load(self, loader):
        with pytest.raises(GateError):
            loader.get()


class TestValidation:
    """Tests for ConfigLoader.validate."""

    def test_valid(self, loader):
        result = loader.validate({"auth": {"default_rate_limit": 10}})
        assert result.valid
        assert result.errors == []

    def test_unknown_key_is_warning(self, loader):
        result = loader.validate({"telemetry": {}})
        assert result.valid
        assert result.warnings[0].path == "telemetry"

    def test_unknown_key_still_loads(self, loader, caplog):
        config = loader.load_from_dict({"telemetry": {}})
        assert config == GateConfig()
        assert "Unknown configuration key: telemetry" in caplog.text

    @pytest.mark.parametrize(
        "data,path",
        [
            ({"server": "nope"}, "server"),
            ({"server": {"port": 0}}, "server.port"),
            ({"server": {"port": "80"}}, "server.port"),
            ({"auth": {"session_ttl_hours": True}}, "auth.session_ttl_hours"),
            ({"auth": {"last_used_queue_size": -1}}, "auth.last_used_queue_size"),
            ({"storage": {"backend": "postgres"}}, "storage.backend"),
            ({"rate_limit": {"backend": "Redis"}}, "rate_limit.backend"),
            ({"logging": {"level": "verbose"}}, "logging.level"),
            ({"cors": {"origins": "*"}}, "cors.origins"),
            ({"auth": {"protected_prefixes": ["/v1", 2]}}, "auth.protected_prefixes"),
            (
                {"auth": {"default_rate_limit": 500, "max_rate_limit": 100}},
                "auth.default_rate_limit",
            ),
        ],
    )
    def test_errors(self, loader, data, path):
        result = loader.validate(data)
        assert not result.valid
        assert [issue.path for issue in result.errors] == [path]

    def test_invalid_load_raises(self, loader):
        with pytest.raises(GateError) as exc_info:
            loader.load_from_dict({"server": {"port": -5}})
        assert exc_info.value.kind == "CONFIG_INVALID"
        assert "port must be a positive integer" in exc_info.value.detail


class TestResolveEnvVars:
    """Tests for resolve_env_vars."""

    def test_default(self):
        with patch.dict(os.environ, {}, clear=True):
            assert resolve_env_vars("${MISSING_VAR:-fallback}") == "fallback"
            assert resolve_env_vars("${MISSING_VAR:-}") == ""

    def test_required_missing(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(GateError) as exc_info:
                resolve_env_vars("${MISSING_VAR}")
        assert "MISSING_VAR" in exc_info.value.detail

    def test_custom_error(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(GateError) as exc_info:
                resolve_env_vars("${MISSING_VAR:?set the secret}")
        assert exc_info.value.detail == "set the secret"

    def test_embedded(self):
        with patch.dict(os.environ, {"HOST": "db"}):
            assert resolve_env_vars("redis://${HOST}:6379/0") == "redis://db:6379/0"
