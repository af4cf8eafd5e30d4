"""
=============================================================================
CLI ENTRY POINT
=============================================================================

    # Serve the current directory on 127.0.0.1:5500
    python -m staticserver

    # Another directory, all interfaces, port 8000
    staticserver --root ./public --host 0.0.0.0 --port 8000

    # Production-ish
    staticserver --root /srv/www --workers 8 --timeout 30 --log-format json

Environment variables (STATIC_PORT, STATIC_ROOT, ...) supply the
defaults; flags given on the command line win.

Exit codes:
    0  clean shutdown
    1  the address could not be bound
    2  invalid arguments or configuration

=============================================================================
"""

import argparse
import sys
from typing import Optional

from . import __version__
from .config import ServerConfig, LOG_LEVELS, LOG_FORMATS
from .server import StaticFileServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="staticserver",
        description="Serve a directory tree over HTTP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  staticserver                          # Serve the current directory
  staticserver --root ./public          # Serve another directory
  staticserver --port 0                 # Let the OS pick a port
  staticserver --timeout 30             # Drop clients idle for 30s
        """
    )

    # Defaults are None so that only flags actually given override the
    # environment

    parser.add_argument(
        "--host", "-H",
        help="Address to bind (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port to listen on (default: 5500)"
    )

    parser.add_argument(
        "--root", "-r",
        help="Directory to serve (default: current directory)"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Number of worker threads (default: 4)"
    )

    parser.add_argument(
        "--queue-size", "-q",
        type=int,
        help="Connections that may wait for a worker before 503 (default: 100)"
    )

    parser.add_argument(
        "--timeout", "-t",
        type=float,
        help="Socket timeout in seconds (default: none)"
    )

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"staticserver {__version__}"
    )

    return parser


def build_config(argv: Optional[list[str]] = None) -> ServerConfig:
    """
    Combine environment defaults with command-line flags.

    Raises:
        SystemExit: On unparseable arguments (argparse exits with 2).
        ValueError: On an unparseable environment variable.
    """
    args = build_parser().parse_args(argv)
    config = ServerConfig.from_env()

    overrides = {
        "host": args.host,
        "port": args.port,
        "root_dir": args.root,
        "workers": args.workers,
        "queue_size": args.queue_size,
        "timeout": args.timeout,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }

    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)

    return config


def main(argv: Optional[list[str]] = None) -> int:
    try:
        config = build_config(argv)
        server = StaticFileServer(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
