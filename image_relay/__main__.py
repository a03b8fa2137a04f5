"""Command line entry point: load the config file and serve the relay."""

import argparse
import logging
import sys

import uvicorn

from image_relay.config import DEFAULT_CONFIG_FILE, ConfigError, load_settings
from image_relay.logging_config import configure_logging
from image_relay.main import create_app

logger = logging.getLogger("image_relay")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="image-relay",
        description="Relay uploaded images to Telegram and return their public URL",
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_FILE,
        help=f"Path to YAML/JSON config file (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL from the config file",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    # Logging first so config errors are reported
    configure_logging(args.log_level or "INFO")

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        logger.error(str(e))
        return 1

    if not args.log_level:
        logging.getLogger().setLevel(settings.LOG_LEVEL.upper())

    logger.info("Starting server...")
    logger.debug(f"Configuration loaded: {settings.public_summary()}")

    uvicorn.run(
        create_app(settings),
        host=settings.HOST,
        port=settings.PORT,
        log_config=None,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
