"""
=============================================================================
ERROR TAXONOMY
=============================================================================

Every failure a worker can run into while serving one connection maps to
one of the exceptions below. None of them is ever fatal to the process:
each worker's failure stays with its own connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    WHERE EACH ERROR ENDS UP                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   RequestReadFailure        Caught by the request parser.            │
    │                             The worker carries on with "no target". │
    │                                                                      │
    │   TargetNotFound            Normally just a 404 status. Raised only │
    │                             when a file disappears after a 200      │
    │                             header went out.                         │
    │                                                                      │
    │   ImageDecodeFailure        Caught by the content streamer.          │
    │                             Logged, body left empty.                 │
    │                                                                      │
    │   HeaderOrBodyWriteFailure  Propagates to the worker's top level.   │
    │                             Logged, connection force-closed.         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from typing import Optional


class WebServerError(Exception):
    """
    Base class for all errors raised while handling a connection.

    Carries the id of the connection it happened on so log lines from
    the worker's top level can be correlated with the earlier ones.
    """

    def __init__(self, message: str, connection_id: Optional[str] = None):
        super().__init__(message)
        self.connection_id = connection_id


class RequestReadFailure(WebServerError):
    """The request stream was closed, reset or timed out during parsing."""


class TargetNotFound(WebServerError):
    """
    The requested file is not there.

    Raised with the resolved filesystem path so the log says which
    file vanished.
    """

    def __init__(self, path: str, connection_id: Optional[str] = None):
        super().__init__(f"Target not found: {path}", connection_id)
        self.path = path


class ImageDecodeFailure(WebServerError):
    """An image file could not be decoded."""

    def __init__(self, path: str, reason: str, connection_id: Optional[str] = None):
        super().__init__(f"Cannot decode image {path}: {reason}", connection_id)
        self.path = path
        self.reason = reason


class HeaderOrBodyWriteFailure(WebServerError):
    """Writing the response failed because the client went away."""
