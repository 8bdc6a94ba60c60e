"""Command-line entry for recurcal."""

from __future__ import annotations

import argparse
import sys
from typing import NoReturn, Optional

from . import run_server


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the recurcal CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="recurcal",
        description="recurcal - recurring calendar event server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m recurcal                        # Start server on default port (8080)
  python -m recurcal --port 3000            # Start server on port 3000
  python -m recurcal --config cal.yaml      # Load settings from cal.yaml
        """,
    )

    parser.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 8080, or from RECURCAL_WEB_PORT env var)",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="YAML or JSON config file (default: ./recurcal.yaml)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    return parser


def main(argv: Optional[list[str]] = None) -> NoReturn:
    """Run the recurcal CLI."""
    parser = _create_parser()
    args = parser.parse_args(argv)
    run_server(args)
    sys.exit(0)


if __name__ == "__main__":
    main()
