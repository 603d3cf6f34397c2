"""
=============================================================================
CONTENT TYPE RESOLUTION
=============================================================================

Maps a file extension to the MIME type sent in the Content-Type line.

Only four kinds of content are recognized. Everything else, including a
resource with no extension at all, is announced as text/html:

    ┌────────────────────────────────────────────────────────────────────┐
    │  EXTENSION        CONTENT-TYPE                                     │
    ├────────────────────────────────────────────────────────────────────┤
    │  html             text/html                                        │
    │  gif              image/gif                                        │
    │  jpeg             image/jpg                                        │
    │  png              image/png                                        │
    │  (anything else)  text/html                                        │
    └────────────────────────────────────────────────────────────────────┘

Note the jpeg entry: the server has always answered image/jpg, and
clients in the wild accept it, so the value is kept as is.

=============================================================================
"""

from typing import Optional


CONTENT_TYPES = {
    "html": "text/html",
    "gif": "image/gif",
    "jpeg": "image/jpg",
    "png": "image/png",
}

# Used for absent and unrecognized extensions
DEFAULT_CONTENT_TYPE = "text/html"

# Extensions whose body goes through the image decode/re-encode pass
IMAGE_EXTENSIONS = frozenset({"gif", "jpeg", "png"})


def get_extension(resource_path: str) -> Optional[str]:
    """
    Get the extension of a resource path.

    The extension is everything after the LAST '.' in the path, lowercased.
    A path without any '.' has no extension.

    Examples:
        >>> get_extension("index.html")
        'html'

        >>> get_extension("archive.tar.gz")
        'gz'

        >>> get_extension("README") is None
        True
    """
    _, dot, tail = resource_path.rpartition(".")
    if not dot:
        return None
    return tail.lower()


def get_content_type(extension: Optional[str]) -> str:
    """
    Get the MIME type for an extension.

    Pure and total: never raises, unknown input gets the default.
    """
    if extension is None:
        return DEFAULT_CONTENT_TYPE
    return CONTENT_TYPES.get(extension.lower(), DEFAULT_CONTENT_TYPE)


def is_image(extension: Optional[str]) -> bool:
    """Check if an extension selects the image re-encode pass."""
    return extension is not None and extension.lower() in IMAGE_EXTENSIONS
