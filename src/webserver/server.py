"""
=============================================================================
WEB SERVER
=============================================================================

Glues the acceptor to the workers:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer.accept()                                              │
    │         │                                                            │
    │         ▼                                                            │
    │   WebServer._handle_connection(conn)                                 │
    │         │                                                            │
    │         └──► threading.Thread(target=Worker(conn, config).run)      │
    │                    │                                                 │
    │                    └──► parse ─► header ─► body ─► close            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ONE THREAD PER CONNECTION
=============================================================================

Every accepted connection gets a brand-new Worker on a brand-new thread.
Workers share nothing but the read-only configuration and the served
files, so they need no locks and never wait on each other. The flip side
is that there is no upper bound on threads: a flood of slow clients means
a flood of threads. Set read_timeout to put a limit on how long a silent
client can hold one.

=============================================================================
"""

import logging
import threading
from typing import Optional

from .config import ServerConfig
from .core import SocketServer, Connection
from .worker import Worker


logger = logging.getLogger(__name__)


class WebServer:
    """
    Serves files from the content root, one worker thread per connection.

    Usage:
        server = WebServer(ServerConfig(port=8080, content_root="www"))
        server.run()   # Blocks until Ctrl+C
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Uses defaults if not provided.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        self._socket_server = SocketServer(self.config)
        self._running = False

    @property
    def socket_server(self) -> SocketServer:
        return self._socket_server

    def run(self):
        """
        Start the server (blocking).

        Returns once shutdown() is called or SIGINT/SIGTERM arrives.
        Worker threads still running at that point finish on their own.
        """
        self._setup_logging()
        self._running = True

        logger.info(
            f"Serving {self.config.content_root} on "
            f"{self.config.host}:{self.config.port}"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._running = False
            logger.info("Server stopped")

    def shutdown(self):
        """Stop accepting connections."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("webserver").setLevel(level)

    def _handle_connection(self, conn: Connection):
        """
        Start a worker thread for a new connection.

        Called by SocketServer on the accept thread, so it only starts
        the thread and returns.
        """
        worker = Worker(conn, self.config)
        thread = threading.Thread(
            target=worker.run,
            name=f"WebWorker-{conn.id}",
            daemon=True,  # Don't keep the process alive on exit
        )
        thread.start()
