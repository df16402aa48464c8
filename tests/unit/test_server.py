"""Tests for the keygate server entry point."""

from unittest.mock import AsyncMock, patch

from keygate.server import main


class TestMain:
    """Tests for main()."""

    def test_serves_loaded_config(self, tmp_path):
        path = tmp_path / "keygate.yaml"
        path.write_text("server:\n  port: 9123\nauth:\n  session_secret: s\n")

        with (
            patch("keygate.server.serve", new=AsyncMock()) as serve,
            patch("keygate.server.configure_logging") as configure_logging,
        ):
            assert main(["--config", str(path)]) == 0

        config = serve.await_args.args[0]
        assert config.server.port == 9123
        configure_logging.assert_called_once_with("INFO", config.logging.format)

    def test_invalid_config_exits_nonzero(self, tmp_path):
        path = tmp_path / "keygate.yaml"
        path.write_text("server:\n  port: -1\n")

        with (
            patch("keygate.server.serve", new=AsyncMock()) as serve,
            patch("keygate.server.configure_logging"),
        ):
            assert main(["--config", str(path)]) == 1
        serve.assert_not_awaited()
