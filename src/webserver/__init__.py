"""
=============================================================================
WEBSERVER - Minimal per-connection static web server
=============================================================================

Each accepted connection is handled by one Worker, on its own thread:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   bytes in ──► resource path ──► file under content root            │
    │                                        │                             │
    │                                        ▼                             │
    │   connection closed ◄── body ◄── header block (200 / 404)           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    webserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m webserver)
    ├── server.py            # WebServer: acceptor + one thread per connection
    ├── worker.py            # Worker: the per-connection state machine
    ├── config.py            # ServerConfig dataclass
    ├── errors.py            # Error taxonomy
    ├── access_log.py        # One access record per connection
    ├── core/
    │   ├── socket_server.py # TCP accept loop
    │   └── connection.py    # Client socket wrapper
    ├── http/
    │   ├── request.py       # Request line parsing
    │   ├── target.py        # Path resolution under the content root
    │   ├── content_types.py # Extension -> MIME type
    │   └── response.py      # Status line and header block
    └── handlers/
        └── content.py       # Body: html lines, re-encoded images

=============================================================================
QUICK START
=============================================================================

    from webserver import WebServer, ServerConfig

    server = WebServer(ServerConfig(port=8080, content_root="www"))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import WebServer
from .worker import Worker, WorkerState

__all__ = ["WebServer", "ServerConfig", "Worker", "WorkerState", "__version__"]
