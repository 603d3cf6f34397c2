"""
=============================================================================
ACCESS LOG
=============================================================================

One record per handled connection, written after the connection closes.

=============================================================================
LOG FORMATS
=============================================================================

    TEXT (default):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 127.0.0.1 - - [19/Oct/2026:10:55:36 +0000] "GET /index.html" 200   │
    │ text/html 1234 5.00ms                                               │
    └─────────────────────────────────────────────────────────────────────┘

    JSON (for log aggregators):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"connection_id": "a1b2c3d4", "client_ip": "127.0.0.1",            │
    │  "resource": "/index.html", "status_code": 200, ...}               │
    └─────────────────────────────────────────────────────────────────────┘

A connection that never sent a fetch line is logged with resource "-".
A connection whose response could not be completed is logged with
completed=false (text format: a trailing "aborted").

=============================================================================
"""

import json
import logging
from dataclasses import dataclass, asdict
from typing import Optional


# Namespaced so it can be routed separately:
#   logging.getLogger("webserver.access").addHandler(file_handler)
logger = logging.getLogger("webserver.access")


@dataclass
class ConnectionLog:
    """
    Structured log entry for one connection.

    Fields:
        connection_id:  Connection id, matches the [id] prefix of other logs
        client_ip:      Client's IP address
        resource:       Requested resource ("/index.html") or "-"
        status_code:    Status sent, or None if no header went out
        content_type:   Content-Type sent, or None
        bytes_sent:     Header plus body bytes written
        duration_ms:    Time from accept to close
        completed:      False if the worker stopped on an error
        timestamp:      When the connection finished
    """

    connection_id: str
    client_ip: str
    resource: str
    status_code: Optional[int]
    content_type: Optional[str]
    bytes_sent: int
    duration_ms: float
    completed: bool
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        """Format close to the Apache common log format."""
        status = self.status_code if self.status_code is not None else "-"
        text = (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"GET {self.resource}" {status} '
            f'{self.content_type or "-"} {self.bytes_sent} {self.duration_ms:.2f}ms'
        )
        if not self.completed:
            text += " aborted"
        return text


def log_connection(entry: ConnectionLog, log_format: str = "text") -> None:
    """Emit an access log record in the configured format."""
    if log_format == "json":
        logger.info(json.dumps(entry.to_dict()))
    else:
        logger.info(entry.to_text())
