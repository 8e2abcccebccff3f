"""Entry point for running the CLI as a module."""

import argparse
import asyncio
import sys

from .config import CLIConfig
from .intake_cli import main


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Guided incident report against the SafeReport API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--host",
        type=str,
        default="localhost",
        help="Server host (default: localhost)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8080,
        help="Server port (default: 8080)",
    )
    parser.add_argument(
        "--user-id",
        type=str,
        default=None,
        help="Reporter id sent as X-User-Id (required to upload evidence)",
    )
    parser.add_argument(
        "--max-turns",
        type=int,
        default=3,
        help="Exchanges before the summary is generated (default: 3)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=90.0,
        help="Seconds to wait for each reply (default: 90)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args()


def cli_entry() -> None:
    """CLI entry point."""
    args = parse_args()
    config = CLIConfig(
        host=args.host,
        port=args.port,
        user_id=args.user_id,
        max_turns=args.max_turns,
        timeout=args.timeout,
    )

    try:
        asyncio.run(main(config, debug=args.debug))
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    cli_entry()
