"""
=============================================================================
WEB SERVER CLI ENTRY POINT
=============================================================================

    # Serve ./www on localhost:8080
    python -m webserver

    # Another directory and port
    python -m webserver --root ./public --port 3000

    # Drop silent clients after 10 seconds
    python -m webserver --timeout 10

Flags override the WEB_* environment variables, which override the
ServerConfig defaults.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .server import WebServer
from .config import ServerConfig


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    """Build the argument parser, with defaults taken from the environment."""
    parser = argparse.ArgumentParser(
        prog="webserver",
        description="Minimal static web server: one request per connection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m webserver                        # Serve ./www on 127.0.0.1:8080
  python -m webserver --root ./public        # Another content root
  python -m webserver --host 0.0.0.0 -p 80   # All interfaces, port 80
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})"
    )

    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=defaults.read_timeout,
        help="Per-read/write deadline in seconds (default: wait forever)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--root", "-r",
        default=defaults.content_root,
        help=f"Directory to serve files from (default: {defaults.content_root})"
    )

    parser.add_argument(
        "--preserve-line-endings",
        action="store_true",
        help="Send html lines with their line terminators"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level.upper()})"
    )

    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=defaults.log_format,
        help=f"Access log format (default: {defaults.log_format})"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"webserver {__version__}"
    )

    return parser


def main(argv=None):
    """Main CLI entry point."""
    defaults = ServerConfig.from_env()
    args = build_parser(defaults).parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        read_timeout=args.timeout,
        content_root=args.root,
        preserve_line_endings=args.preserve_line_endings,
        log_level=args.log_level,
        log_format=args.log_format,
    )

    try:
        server = WebServer(config)
        server.run()
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
