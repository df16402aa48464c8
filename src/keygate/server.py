"""Run keygate under uvicorn.

Usage:
    keygate [--config keygate.yaml]
"""

import argparse
import asyncio
import logging

from keygate.api import create_app
from keygate.config import load_config
from keygate.config.models import GateConfig
from keygate.errors import GateError
from keygate.telemetry.logging import configure_logging

logger = logging.getLogger(__name__)


async def serve(config: GateConfig) -> None:
    """Serve the app until interrupted."""
    import uvicorn

    app = create_app(config)
    uvicorn_config = uvicorn.Config(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level.value.lower(),
    )
    server = uvicorn.Server(uvicorn_config)
    await server.serve()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="keygate", description="Run the keygate server")
    parser.add_argument("--config", help="Path to keygate.yaml (default: $KEYGATE_CONFIG_PATH)")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except GateError as e:
        configure_logging()
        logger.error(f"{e.message}: {e.detail}")
        return 1

    configure_logging(config.logging.level.value, config.logging.format)
    logger.info(f"Starting keygate on {config.server.host}:{config.server.port}")
    asyncio.run(serve(config))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
