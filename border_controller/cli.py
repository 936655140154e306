"""Argument parsing, configuration loading, and daemon bootstrap."""

from __future__ import annotations

import argparse
import logging
import sys

from .config import load_config
from .daemon import Daemon
from .exceptions import BorderControllerError, ConfigError
from .logging_config import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="border-controller",
        description="Keeps an nginx proxy configured with the current backends of a service",
    )
    parser.add_argument(
        "-c", "--config",
        required=True,
        help="Path to the YAML configuration file",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single reconciliation tick and exit",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate the configuration file and exit",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Discover backends, print the rendered proxy configuration to stdout and exit "
             "without installing it or touching the proxy",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Load config (minimal logging until config is loaded)
    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    configure_logging(config.logging)

    if args.validate:
        logger.info("Configuration is valid")
        return 0

    try:
        daemon = Daemon(config)
        if args.dry_run:
            sys.stdout.buffer.write(daemon.preview())
            sys.stdout.flush()
            return 0
        if args.once:
            logger.info("Running single reconciliation tick (--once)")
            if not daemon.run_once():
                return 1
        else:
            daemon.run()
    except BorderControllerError as exc:
        logger.error("Fatal error: %s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 0

    return 0


if __name__ == "__main__":
    sys.exit(main())
