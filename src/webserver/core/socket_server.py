"""
=============================================================================
ACCEPTOR: LOW-LEVEL TCP SOCKET SERVER
=============================================================================

Listens for incoming connections, accepts them, and hands each one over
as a Connection. It never reads or writes client data itself.

=============================================================================
WHAT THE ACCEPTOR OWNS
=============================================================================

Only the listening socket. Every accepted client socket is wrapped in a
Connection and given away at once; from then on the handler (in practice
a Worker on its own thread) is the only thing that touches it.

    listen socket ──accept()──► client socket
                                      │
                                      ▼
                           Connection(timeout, max_line_size)
                                      │
                                      ▼
                           connection_handler(conn)   returns at once

accept() times out every second so the loop notices shutdown() even when
no client shows up.

=============================================================================
STOPPING
=============================================================================

SIGINT (Ctrl+C) and SIGTERM stop the accept loop. Python only lets the
main thread install signal handlers, so when the server runs on another
thread (tests, embedding) shutdown() has to be called explicitly.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Accepts TCP clients and passes each one on as a Connection.

    Usage:
        acceptor = SocketServer(config)
        acceptor.start(lambda conn: spawn_worker(conn))  # Blocks
    """

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Host, port and backlog, plus the per-connection limits
                    copied onto every Connection.

        Nothing is bound until start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set once the listening socket is bound; tests wait on this
        self._ready_event = threading.Event()
        self._shutdown_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """Get the bound address (IP, port); the real port if 0 was asked for."""
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create and configure the server socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Avoid "Address already in use" when restarting
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Headers are written as several small sends; don't let Nagle hold them
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() wakes up every second to check the running flag
        sock.settimeout(1.0)

        return sock

    def _setup_signals(self):
        """Install SIGTERM/SIGINT handlers (main thread only)."""
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, stopping")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen, and hand out connections.

        Blocks until shutdown() is called or a signal arrives.

        Args:
            connection_handler: Called once per accepted connection. It
                                must return quickly; the web server starts
                                a thread and returns.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)

        self._running = True
        self._shutdown_event.clear()
        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Accept until shutdown() clears the running flag.

        Each pass accepts one client, wraps it and calls the handler. A
        handler that raises gets its connection closed; the loop goes on.
        """
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue  # Check running flag, loop again
            except OSError as e:
                if self._running:
                    logger.error(f"accept() failed: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                timeout=self.config.read_timeout,
                max_line_size=self.config.max_line_size,
            )

            try:
                connection_handler(conn)
            except Exception as e:
                # A failing hand-off must not stop the accept loop
                logger.exception(f"[{conn.id}] Failed to dispatch connection: {e}")
                conn.close()

    def shutdown(self):
        """
        Stop the accept loop after its current accept() call.

        Safe to call from a signal handler or another thread, and more
        than once.
        """
        logger.info("Acceptor stopping")
        self._running = False
        self._shutdown_event.set()

    def _cleanup(self):
        """Clean up resources on shutdown."""
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._ready_event.clear()
        logger.info("Acceptor stopped, listening socket closed")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Wait until the server is listening. Returns False on timeout."""
        return self._ready_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Wait for the server to shut down. Returns False on timeout."""
        return self._shutdown_event.wait(timeout)
