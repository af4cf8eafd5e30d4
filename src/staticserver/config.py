"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Everything the server needs to know at startup, in one dataclass.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── staticserver --port 8000 --root ./public                  │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── STATIC_PORT=8000 staticserver                             │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    └─────────────────────────────────────────────────────────────────────┘

The address and the root are read once, here. Nothing downstream looks
at the environment or the working directory again, so tests can run a
server against any temporary directory on any free port.

=============================================================================
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the static file server.

    Development:
        ServerConfig(root_dir="./site", log_level="DEBUG")

    Tests:
        ServerConfig(port=0, root_dir=tmp_path, timeout=5.0)
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind. Loopback only by default."""

    port: int = 5500
    """Port to listen on. 0 lets the OS pick a free one."""

    backlog: int = 128
    """Pending connections the kernel queues before refusing."""

    buffer_size: int = 4096
    """Size of the single read that must contain the request line."""

    timeout: Optional[float] = None
    """
    Per-connection socket timeout in seconds.
    None = no deadline: a client that connects and never sends holds a
    worker until it goes away. Set this in production.
    """

    max_request_size: int = 4096
    """
    Requests larger than this are answered with 413. At most buffer_size,
    since the parser only ever sees one read.
    """

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    workers: int = 4
    """Number of worker threads. Fixed for the life of the server."""

    queue_size: int = 100
    """Connections allowed to wait for a worker. Beyond this: 503."""

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    root_dir: Optional[str] = None
    """Directory to serve. None = the working directory at startup."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    log_format: str = "text"
    """Access log format: 'text' (Apache-like) or 'json'."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "staticserver/1.0"
    """Value of the Server response header."""

    @property
    def root_path(self) -> Path:
        """The root to serve, falling back to the current directory."""
        return Path(self.root_dir) if self.root_dir else Path.cwd()

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        STATIC_HOST        Bind address (default: 127.0.0.1)
        STATIC_PORT        Port (default: 5500)
        STATIC_ROOT        Directory to serve (default: working directory)
        STATIC_WORKERS     Worker threads (default: 4)
        STATIC_QUEUE_SIZE  Waiting connections (default: 100)
        STATIC_TIMEOUT     Socket timeout in seconds (default: none)
        STATIC_LOG_LEVEL   Logging level (default: INFO)
        STATIC_LOG_FORMAT  text or json (default: text)

        Raises:
            ValueError: If a numeric variable does not parse.
        """
        timeout = os.getenv("STATIC_TIMEOUT", "").strip()

        return cls(
            host=os.getenv("STATIC_HOST", "127.0.0.1"),
            port=int(os.getenv("STATIC_PORT", "5500")),
            root_dir=os.getenv("STATIC_ROOT") or None,
            workers=int(os.getenv("STATIC_WORKERS", "4")),
            queue_size=int(os.getenv("STATIC_QUEUE_SIZE", "100")),
            timeout=float(timeout) if timeout else None,
            log_level=os.getenv("STATIC_LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("STATIC_LOG_FORMAT", "text").lower(),
        )

    def validate(self) -> None:
        """
        Check every value before anything binds or spawns.

        Raises:
            ValueError: On the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")

        if self.queue_size < 1:
            raise ValueError(f"queue_size must be >= 1, got {self.queue_size}")

        if self.backlog < 1:
            raise ValueError(f"backlog must be >= 1, got {self.backlog}")

        if self.buffer_size < 256:
            raise ValueError(f"buffer_size must be >= 256, got {self.buffer_size}")

        if not 1 <= self.max_request_size <= self.buffer_size:
            raise ValueError(
                f"max_request_size must be 1-{self.buffer_size} (buffer_size), "
                f"got {self.max_request_size}"
            )

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Invalid log_format: {self.log_format}. Must be 'text' or 'json'.")

        if not self.root_path.is_dir():
            raise ValueError(f"Root directory does not exist: {self.root_path}")
