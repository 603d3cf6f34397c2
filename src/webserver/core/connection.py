"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module wraps one client socket with the small API a worker needs:
read a line, write bytes, close once.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP does NOT preserve message boundaries. A request line sent as

    GET /index.html HTTP/1.1\r\n

might arrive as "GET /ind" followed by "ex.html HTTP/1.1\r\n". We read
through a buffered file object (socket.makefile) so that readline()
keeps pulling from the socket until it sees the newline, no matter how
the bytes were split on the wire.

=============================================================================
BLOCKING READS WITH AN OPTIONAL DEADLINE
=============================================================================

readline() blocks in the kernel until data is there. There is no
sleep-and-poll loop. If the server was given a read_timeout, the socket
carries it as a deadline and a silent client surfaces as a timeout:

    ┌─────────────────────────────────────────────────────────────────┐
    │   timeout=None     readline() waits as long as the client does  │
    │   timeout=5.0      readline() raises socket.timeout after 5s    │
    └─────────────────────────────────────────────────────────────────┘

Both read and write errors are translated into the worker's own
exceptions at this boundary, so the layers above never see raw OSErrors.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──────► READING ──────► WRITING ──────► CLOSED
     │             │                               ▲
     └─────────────┴───────────────────────────────┘
                  (error or nothing to send)

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import BinaryIO, Optional
import uuid

from ..errors import RequestReadFailure, HeaderOrBodyWriteFailure


logger = logging.getLogger(__name__)

# Limits on what close() reads and discards from a client that keeps sending
DRAIN_MAX_BYTES = 64 * 1024
DRAIN_MAX_SECONDS = 0.5
DRAIN_IDLE_TIMEOUT = 0.1


class ConnectionState(Enum):
    """Connection lifecycle states."""
    NEW = "new"              # Just accepted, haven't read anything yet
    READING = "reading"      # Reading request lines
    WRITING = "writing"      # Sending header or body
    CLOSED = "closed"        # Connection closed, socket released


@dataclass
class Connection:
    """
    Represents one client connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection Responsibilities                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. LINE READING                                                     │
    │     └── Buffered readline() on top of the raw socket                 │
    │     └── Overlong lines rejected (max_line_size)                      │
    │                                                                      │
    │  2. FULL WRITES                                                      │
    │     └── sendall() so no byte is silently dropped                     │
    │     └── Counts bytes written for the access log                      │
    │                                                                      │
    │  3. EXACTLY-ONCE CLOSE                                               │
    │     └── close() is idempotent                                        │
    │     └── Safe to call from error paths and context manager exit      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Unique connection identifier (for logging).
        state: Current connection state.
        created_at: Timestamp when connection was accepted.
        bytes_written: Total bytes sent to the client.
    """

    # Required parameters
    socket: socket.socket
    address: tuple

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    bytes_written: int = 0

    # Configuration (passed from ServerConfig)
    timeout: Optional[float] = None
    max_line_size: int = 8192

    # Internal state (not shown in repr for cleaner logs)
    _reader: Optional[BinaryIO] = field(default=None, repr=False)

    def __post_init__(self):
        """Configure the socket: blocking, with the optional deadline."""
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        if isinstance(self.address, tuple) and self.address:
            return str(self.address[0])
        return str(self.address)

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def readline(self) -> bytes:
        """
        Read one line from the client, terminator included.

        Returns:
            The line bytes. Never empty: end of stream is an error here,
            because a request must end with a blank line.

        Raises:
            RequestReadFailure: On timeout, reset, end of stream, or a line
                                longer than max_line_size.
        """
        self.state = ConnectionState.READING

        if self._reader is None:
            self._reader = self.socket.makefile("rb")

        try:
            # One byte over the limit tells "exactly at limit" from "too long"
            line = self._reader.readline(self.max_line_size + 1)
        except socket.timeout:
            raise RequestReadFailure("Request read timeout", self.id)
        except OSError as e:
            raise RequestReadFailure(f"Request read error: {e}", self.id) from e

        if not line:
            raise RequestReadFailure("Connection closed by client", self.id)

        if len(line) > self.max_line_size:
            raise RequestReadFailure(
                f"Request line exceeds {self.max_line_size} bytes", self.id
            )

        return line

    # =========================================================================
    # WRITING
    # =========================================================================

    def write(self, data: bytes) -> None:
        """
        Send bytes to the client.

        Uses sendall() so that either every byte is handed to the kernel
        or an error is raised.

        Raises:
            HeaderOrBodyWriteFailure: If the client disconnected, the write
                                      timed out, or the connection is
                                      already closed.
        """
        if self.state == ConnectionState.CLOSED:
            raise HeaderOrBodyWriteFailure("Write on closed connection", self.id)

        self.state = ConnectionState.WRITING

        if not data:
            return

        try:
            self.socket.sendall(data)
        except socket.timeout:
            raise HeaderOrBodyWriteFailure("Response write timeout", self.id)
        except OSError as e:
            raise HeaderOrBodyWriteFailure(f"Send failed: {e}", self.id) from e

        self.bytes_written += len(data)

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection.

        1. shutdown(SHUT_WR): tell the client we're done sending (FIN)
        2. Drain briefly, so unread request bytes don't turn the close
           into a reset that could cut off the response
           (bounded by DRAIN_MAX_BYTES and DRAIN_MAX_SECONDS)
        3. close(): release the file descriptor

        Idempotent: only the first call does anything.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSED

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        self._drain()

        if self._reader is not None:
            try:
                self._reader.close()
            except OSError:
                pass
            self._reader = None

        try:
            self.socket.close()
        except OSError:
            pass

        logger.debug(f"[{self.id}] Connection closed, {self.bytes_written} bytes sent")

    def _drain(self):
        """Discard pending client bytes until idle, a byte cap, or a deadline."""
        deadline = time.monotonic() + DRAIN_MAX_SECONDS
        drained = 0

        try:
            while drained < DRAIN_MAX_BYTES:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(min(DRAIN_IDLE_TIMEOUT, remaining))
                chunk = self.socket.recv(4096)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass  # Includes socket.timeout

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        """
        Allows using Connection with 'with' statement for automatic cleanup:

            with conn:
                line = conn.readline()
                conn.write(response)
            # Connection closed here, even if an exception escaped
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - ensure connection is closed."""
        self.close()
        return False  # Don't suppress exceptions
