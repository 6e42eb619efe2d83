"""CLI entry point: python -m reauth."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from reauth import build_chain
from reauth.config import CONFIG_ENV_VAR
from reauth.errors import ConfigurationError
from reauth.server import ForwardAuthServer

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the reauth CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m reauth",
        description="Run a forward-auth server backed by a chain of authentication backends.",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Path to the JSON configuration document (default: ${CONFIG_ENV_VAR}).",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host address to listen on (default: 127.0.0.1).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to listen on (default: 8000, range: 1-65535).",
    )
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default="INFO",
        help="Logging level (default: INFO).",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        default=False,
        help="Validate the configuration (including backend connectivity) and exit.",
    )

    return parser


def _validate_port(port: int, parser: argparse.ArgumentParser) -> None:
    """Validate port is in range 1-65535."""
    if port < 1 or port > 65535:
        parser.error(f"--port must be in range 1-65535, got {port}")


def main() -> None:
    """CLI entry point for the forward-auth server.

    Exit codes:
        0 - Normal shutdown, or --check passed
        1 - Configuration error (missing file, unknown backend, failed validation)
        2 - Startup failure (argparse error, server exception)
    """
    parser = _build_parser()
    args = parser.parse_args()

    _validate_port(args.port, parser)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    config_path = args.config or os.environ.get(CONFIG_ENV_VAR)
    if not config_path:
        print(f"Error: --config is required when ${CONFIG_ENV_VAR} is not set.", file=sys.stderr)
        sys.exit(1)

    try:
        chain = build_chain(config_path)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.check:
        chain.close()
        logger.info("Configuration OK: %d backend(s), failure mode %s", len(chain.backends), chain.failure.tag)
        return

    try:
        asyncio.run(ForwardAuthServer(chain).serve(host=args.host, port=args.port))
    except Exception:
        logger.exception("Server startup failed.")
        sys.exit(2)


if __name__ == "__main__":
    main()
