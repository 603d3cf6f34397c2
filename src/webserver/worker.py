"""
=============================================================================
WEB WORKER
=============================================================================

A Worker handles exactly one client connection, start to finish, and is
then thrown away. The acceptor creates a new one for every connection
and runs it on its own thread, so a worker never has to think about any
other client.

=============================================================================
WORKER STATE MACHINE
=============================================================================

    CREATED
       │
       ▼
    PARSING_REQUEST ───► read lines until the blank line
       │                 └── resource path, or None
       ▼
    RESOLVING_TYPE ────► ResolvedTarget + Content-Type
       │
       ▼
    WRITING_HEADER ────► status decided here, then committed
       │
       ▼
    WRITING_BODY ──────► html lines / re-encoded image / nothing
       │
       ▼
    CLOSED ◄──────────── also reached directly from any state on error

Steps run strictly in this order. There is no retry and no partial
recovery: once the header is out the status stays what it is. Whatever
happens, CLOSED closes the connection exactly once.

=============================================================================
PASSING STATE BETWEEN STEPS
=============================================================================

Each step returns a value that the next one takes as an argument:

    resource_path ──► target ──► (status, content_type) ──► body

Nothing is stashed on the worker in between. The only fields that change
while it runs are `state` and the bookkeeping used for the access log.

=============================================================================
"""

import time
import logging
from enum import Enum
from typing import Optional

from .access_log import ConnectionLog, log_connection
from .config import ServerConfig
from .core.connection import Connection
from .handlers.content import ContentStreamer
from .http.content_types import get_content_type
from .http.request import RequestParser
from .http.response import ResponseStatus, decide_status, write_header
from .http.target import ResolvedTarget, resolve_target


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Worker lifecycle states, in the order they are visited."""
    CREATED = "created"
    PARSING_REQUEST = "parsing_request"
    RESOLVING_TYPE = "resolving_type"
    WRITING_HEADER = "writing_header"
    WRITING_BODY = "writing_body"
    CLOSED = "closed"


class Worker:
    """
    Handles one HTTP request on one connection.

    Usage:
        worker = Worker(conn, config)
        worker.run()   # Returns after the connection is closed

    run() never raises. Failures are logged and end with the connection
    closed, so a bad client can't take the serving thread down with it.
    """

    def __init__(
        self,
        conn: Connection,
        config: Optional[ServerConfig] = None,
        parser: Optional[RequestParser] = None,
        streamer: Optional[ContentStreamer] = None,
    ):
        """
        Args:
            conn: The client connection. The worker owns it from now on.
            config: Server configuration (content root, server name, ...).
            parser: Request parser (default: RequestParser()).
            streamer: Body writer (default: built from config).
        """
        self.conn = conn
        self.config = config or ServerConfig()
        self.parser = parser or RequestParser()
        self.streamer = streamer or ContentStreamer(
            preserve_line_endings=self.config.preserve_line_endings,
        )
        self.state = WorkerState.CREATED

        # Access log bookkeeping
        self._resource: Optional[str] = None
        self._status: Optional[ResponseStatus] = None
        self._content_type: Optional[str] = None

    def run(self) -> None:
        """
        Worker starting point.

        Reads the request, writes the header, writes the body, closes.
        """
        logger.debug(f"[{self.conn.id}] Handling connection from {self.conn.client_ip}")
        completed = False

        try:
            with self.conn:  # Context manager ensures connection is closed
                self.state = WorkerState.PARSING_REQUEST
                resource_path = self.parser.read_request(self.conn)

                self.state = WorkerState.RESOLVING_TYPE
                target = self._resolve(resource_path)
                content_type = get_content_type(target.extension if target else None)

                self.state = WorkerState.WRITING_HEADER
                status = decide_status(target)
                self._status = status
                self._content_type = content_type
                write_header(self.conn, status, content_type, self.config.server_name)

                self.state = WorkerState.WRITING_BODY
                self.streamer.stream(self.conn, target)

            completed = True

        except Exception as e:
            # run() never raises
            logger.exception(
                f"[{self.conn.id}] Output error in state {self.state.value}: {e}"
            )
            # The with block already closed it; this covers a failing __enter__
            self.conn.close()

        finally:
            self.state = WorkerState.CLOSED
            self._log_access(completed)
            logger.debug(f"[{self.conn.id}] Done handling connection")

    def _resolve(self, resource_path: Optional[str]) -> Optional[ResolvedTarget]:
        """Turn the parsed resource path into a target under the served root."""
        if resource_path is None:
            return None

        self._resource = "/" + resource_path
        return resolve_target(resource_path, self.config.content_root)

    def _log_access(self, completed: bool) -> None:
        log_connection(
            ConnectionLog(
                connection_id=self.conn.id,
                client_ip=self.conn.client_ip,
                resource=self._resource or "-",
                status_code=self._status.code if self._status else None,
                content_type=self._content_type,
                bytes_sent=self.conn.bytes_written,
                duration_ms=self.conn.age * 1000,
                completed=completed,
                timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
            ),
            self.config.log_format,
        )
