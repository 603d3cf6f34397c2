"""
=============================================================================
HTTP RESPONSE HEADERS
=============================================================================

Builds and writes the status line and header block.

=============================================================================
WIRE FORMAT
=============================================================================

Every response starts with exactly these lines, in this order, each one
ended by a single '\n':

    HTTP/1.1 200 OK\n                          ← or 404 NOT FOUND
    Date: Mon, 19 Oct 2026 10:00:00 GMT\n      ← RFC 7231, always GMT
    Server: SimpleWebServer/1.0\n
    Connection: close\n                        ← one request per connection
    Content-Type: text/html\n
    \n                                         ← header block ends here

There is no Content-Length: the body simply runs until the connection is
closed, which "Connection: close" announces.

Once these bytes are written the status is committed. Nothing written
afterwards can turn a 200 into a 404 or the other way around.

=============================================================================
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from ..core.connection import Connection
from .target import ResolvedTarget


class ResponseStatus(Enum):
    """
    The two statuses this server answers with.

    Each member is a (code, reason) pair; the reason is sent upper-case.
    """
    OK = (200, "OK")
    NOT_FOUND = (404, "NOT FOUND")

    @property
    def code(self) -> int:
        return self.value[0]

    @property
    def reason(self) -> str:
        return self.value[1]

    @property
    def status_line(self) -> str:
        """Example: "HTTP/1.1 404 NOT FOUND" """
        return f"HTTP/1.1 {self.code} {self.reason}"


def decide_status(target: Optional[ResolvedTarget]) -> ResponseStatus:
    """
    Decide the response status.

    200 when nothing specific was asked for or the target exists,
    404 when a target was asked for and is not there.
    """
    if target is None or target.exists:
        return ResponseStatus.OK
    return ResponseStatus.NOT_FOUND


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Mon, 19 Oct 2026 10:00:00 GMT

    Day and month names are spelled out from fixed tables rather than
    strftime, which would follow the process locale.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    dt = dt.astimezone(timezone.utc)
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def build_header(
    status: ResponseStatus,
    content_type: str,
    server_name: str,
    now: Optional[datetime] = None,
) -> bytes:
    """
    Serialize the status line and header block.

    Args:
        status: Response status.
        content_type: MIME type for the Content-Type line.
        server_name: Value of the Server line.
        now: Time for the Date line (default: current time).

    Returns:
        Header bytes, ending with the blank line.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    lines = [
        status.status_line,
        f"Date: {format_http_date(now)}",
        f"Server: {server_name}",
        "Connection: close",
        f"Content-Type: {content_type}",
    ]

    # Two newlines in a row end the header block
    return ("\n".join(lines) + "\n\n").encode("iso-8859-1")


def write_header(
    conn: Connection,
    status: ResponseStatus,
    content_type: str,
    server_name: str,
) -> None:
    """
    Write the header block to the client.

    Raises:
        HeaderOrBodyWriteFailure: If the connection is gone.
    """
    conn.write(build_header(status, content_type, server_name))
