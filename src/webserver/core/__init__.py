"""
=============================================================================
CORE MODULE
=============================================================================

Socket-level building blocks:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SocketServer   Accepts connections (the acceptor)                  │
    │  Connection     Wraps one client socket: readline, write, close     │
    └─────────────────────────────────────────────────────────────────────┘

Neither knows anything about HTTP. The worker on top of them does.

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState

__all__ = [
    "SocketServer",     # TCP listener - accepts connections
    "Connection",       # Wrapper for client socket - handles I/O
    "ConnectionState",  # Enum for connection lifecycle states
]
