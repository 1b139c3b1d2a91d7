"""
Shelly Exporter - Main Entry Point.

Loads the exporter config, then serves /metrics while polling every
configured plug on a fixed interval.
"""
import asyncio
import logging
import sys
from typing import Optional

import uvicorn
from pydantic import ValidationError

from .app import create_app
from .config import ExporterSettings, get_exporter_settings
from .exceptions import ConfigError
from .loader import ConfigLoader

logger = logging.getLogger(__name__)


def setup_logging(level: str) -> None:
    """Configure root logging to stdout."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )


async def main(settings: Optional[ExporterSettings] = None) -> int:
    """Main entry point."""
    try:
        settings = settings or get_exporter_settings()
    except ValidationError as e:
        setup_logging("INFO")
        logger.error(f"Invalid exporter settings: {e}")
        return 1
    setup_logging(settings.log_level)

    try:
        config = ConfigLoader(settings).load()
    except ConfigError as e:
        logger.error(f"Failed to load config: {e}", extra={"error": e.code})
        return 1

    app = create_app(config, settings)
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=config.listen_addr,
            port=config.port,
            log_level=settings.log_level.lower(),
        )
    )

    try:
        await server.serve()
    except KeyboardInterrupt:
        logger.info("Interrupted")

    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
