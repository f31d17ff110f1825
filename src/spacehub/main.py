"""Application entry point for SpaceHub backend server."""

import structlog

from spacehub.app import App
from spacehub.config import Config
from spacehub.logging import setup_logging
from spacehub.web.runner import run_server

logger = structlog.get_logger(__name__)


def main() -> None:
    config = Config()
    setup_logging(config.debug)
    logger.info("starting", environment=config.environment, otp_mode=config.otp_mode, port=config.port)
    if config.environment == "production" and config.otp_debug_codes:
        logger.warning("otp_debug_codes_ignored", reason="debug codes are never exposed in production")
    run_server(App(config), config)


if __name__ == "__main__":
    main()
