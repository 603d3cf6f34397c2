"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the web server and its workers.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m webserver --port 3000                           │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── WEB_PORT=3000 python -m webserver                         │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Workers only read from the configuration. One ServerConfig instance is
shared by every worker thread and is never mutated after startup.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


DEFAULT_SERVER_NAME = "SimpleWebServer/1.0"


@dataclass
class ServerConfig:
    """
    Configuration for the web server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog

    WORKER SETTINGS
    - read_timeout, max_line_size

    CONTENT
    - content_root, preserve_line_endings

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only (development)
    - "0.0.0.0" - All network interfaces
    """

    port: int = 8080
    """The port number to listen on."""

    backlog: int = 128
    """Maximum number of queued connections before new ones are refused."""

    # ─────────────────────────────────────────────────────────────────────
    # WORKER SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    read_timeout: Optional[float] = None
    """
    Deadline in seconds for each blocking read or write on a connection.
    None = block forever. A silent client then holds its worker thread
    until it goes away.
    """

    max_line_size: int = 8192
    """
    Longest request line accepted, in bytes.
    A longer line ends request parsing the same way a reset does.
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    content_root: str = "www"
    """
    Directory that holds the served files.
    Relative paths are taken from the current working directory.
    """

    preserve_line_endings: bool = False
    """
    Write html lines with their terminators.
    Off by default: every line is sent with its CR/LF stripped.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """Access log format: 'json' or 'text'."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = DEFAULT_SERVER_NAME
    """Value of the Server header line."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        WEB_HOST           Server host (default: 127.0.0.1)
        WEB_PORT           Server port (default: 8080)
        WEB_CONTENT_ROOT   Served directory (default: www)
        WEB_READ_TIMEOUT   Per-read deadline in seconds (default: none)
        WEB_LOG_LEVEL      Logging level (default: INFO)
        WEB_LOG_FORMAT     Access log format (default: text)

        =====================================================================
        """
        read_timeout = os.getenv("WEB_READ_TIMEOUT")
        return cls(
            host=os.getenv("WEB_HOST", "127.0.0.1"),
            port=int(os.getenv("WEB_PORT", "8080")),
            content_root=os.getenv("WEB_CONTENT_ROOT", "www"),
            read_timeout=float(read_timeout) if read_timeout else None,
            log_level=os.getenv("WEB_LOG_LEVEL", "INFO"),
            log_format=os.getenv("WEB_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at startup so a bad value fails before the first
        connection is accepted.
        """
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 1-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.read_timeout is not None and self.read_timeout <= 0:
            raise ValueError("read_timeout must be > 0")

        if self.max_line_size < 256:
            raise ValueError("max_line_size must be >= 256")

        if not os.path.isdir(self.content_root):
            raise ValueError(f"Content root does not exist: {self.content_root}")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"Invalid log_format: {self.log_format}")
