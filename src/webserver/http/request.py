"""
=============================================================================
REQUEST PARSING
=============================================================================

Reads the request header lines off a connection and picks out the one
thing this server routes on: the resource path of the fetch line.

=============================================================================
WHAT WE LOOK AT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────┐
    │  GET /images/logo.png HTTP/1.1\r\n   ← fetch line               │
    │      └──────┬────────┘                                          │
    │        resource path = "images/logo.png"                        │
    │                                                                  │
    │  Host: localhost:8080\r\n            ← read, ignored            │
    │  User-Agent: curl/8.0\r\n            ← read, ignored            │
    │  \r\n                                ← blank line: stop         │
    └─────────────────────────────────────────────────────────────────┘

A line is a fetch line if it contains "GET" and does not mention the
browser's automatic favicon request. The resource path is the text
between the first '/' and the next space.

The parser is deliberately tolerant:

- Only the FIRST fetch line counts. Later ones are read and ignored.
- A fetch line without a '/' or without a space after it is malformed
  and skipped; reading carries on.
- If the stream fails (timeout, reset, EOF) parsing just stops. The
  caller gets whatever was found so far, usually nothing.

Headers are still read up to the blank line so the client has finished
sending before we answer.

=============================================================================
"""

import logging
from typing import Optional

from ..core.connection import Connection
from ..errors import RequestReadFailure


logger = logging.getLogger(__name__)


class RequestParser:
    """
    Extracts the resource path from the request header lines.

    Usage:
        parser = RequestParser()
        resource_path = parser.read_request(conn)
        if resource_path is None:
            ...  # No fetch line, or the read failed
    """

    # Marker that identifies a resource fetch
    FETCH_MARKER = "GET"

    # Resource that browsers request on their own; never routed
    RESERVED_RESOURCE = "favicon"

    def read_request(self, conn: Connection) -> Optional[str]:
        """
        Read header lines until the blank line.

        Args:
            conn: Connection to read from.

        Returns:
            The resource path of the first fetch line, or None.
        """
        resource_path: Optional[str] = None

        while True:
            try:
                raw = conn.readline()
            except RequestReadFailure as e:
                logger.debug(f"[{conn.id}] Request error: {e}")
                break

            line = self.decode_line(raw)
            logger.debug(f"[{conn.id}] Request line: ({line})")

            if not line:
                break  # End of headers

            if resource_path is None and self.is_fetch_line(line):
                resource_path = self.extract_resource_path(line)
                if resource_path is None:
                    logger.debug(f"[{conn.id}] Malformed fetch line ignored: {line!r}")

        return resource_path

    @staticmethod
    def decode_line(raw: bytes) -> str:
        """
        Decode a raw header line and strip its terminator.

        HTTP header bytes are ISO-8859-1, which maps every byte to a
        character, so decoding never fails.
        """
        return raw.decode("iso-8859-1").rstrip("\r\n")

    def is_fetch_line(self, line: str) -> bool:
        """Check if a line asks for a resource."""
        return self.FETCH_MARKER in line and self.RESERVED_RESOURCE not in line

    @staticmethod
    def extract_resource_path(line: str) -> Optional[str]:
        """
        Get the text between the first '/' and the following space.

        Examples:
            >>> RequestParser.extract_resource_path("GET /index.html HTTP/1.1")
            'index.html'

            >>> RequestParser.extract_resource_path("GET / HTTP/1.1")
            ''

            >>> RequestParser.extract_resource_path("GET") is None
            True
        """
        slash = line.find("/")
        if slash == -1:
            return None

        space = line.find(" ", slash)
        if space == -1:
            return None

        return line[slash + 1:space]
