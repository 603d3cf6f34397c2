"""
=============================================================================
HTTP MODULE
=============================================================================

The protocol side of a worker:

    request.py        Read header lines, extract the resource path
    target.py         Resolve the resource path under the served root
    content_types.py  Extension -> Content-Type
    response.py       Status decision and header block

=============================================================================
"""

from .request import RequestParser
from .target import ResolvedTarget, resolve_target
from .content_types import get_extension, get_content_type, is_image
from .response import (
    ResponseStatus,
    decide_status,
    build_header,
    write_header,
    format_http_date,
)

# Public API - what you get when you do:
# from webserver.http import *
__all__ = [
    # Request parsing
    "RequestParser",

    # Path resolution
    "ResolvedTarget",
    "resolve_target",

    # Content types
    "get_extension",
    "get_content_type",
    "is_image",

    # Response headers
    "ResponseStatus",
    "decide_status",
    "build_header",
    "write_header",
    "format_http_date",
]
