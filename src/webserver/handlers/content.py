"""
=============================================================================
CONTENT STREAMING
=============================================================================

Writes the response body once the header block is out.

=============================================================================
WHAT GETS SENT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  Target                      Body                                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │  none requested              nothing                                 │
    │  requested, missing (404)    nothing                                 │
    │  a directory (/, dir.html)   nothing                                 │
    │  .html                       file lines, terminators stripped       │
    │  .gif / .jpeg / .png         decoded, re-encoded image bytes        │
    │  any other extension         nothing                                 │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
HTML LINES
=============================================================================

Html is copied line by line and, unless preserve_line_endings is set,
each line goes out WITHOUT its "\n" / "\r\n". A file containing

    <p>hello</p>\n
    <p>world</p>\n

is sent as "<p>hello</p><p>world</p>". Browsers render that the same,
and clients built against this server expect it.

=============================================================================
IMAGES
=============================================================================

Images are not copied byte for byte. Each one is decoded with Pillow and
encoded again in the same format into an in-memory buffer:

    file ──► Image.open() + load() ──► Image.save(buffer, FORMAT) ──► client

The pixels survive; the bytes may not (JPEG quality, PNG compression
level and GIF palettes can all change). A file that does not decode
gives an ImageDecodeFailure. The header has already promised a 200, so
we log it and send an empty body instead of a broken one.

=============================================================================
"""

import io
import logging
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

from ..core.connection import Connection
from ..errors import ImageDecodeFailure, TargetNotFound
from ..http.content_types import is_image
from ..http.target import ResolvedTarget


logger = logging.getLogger(__name__)


# Extension -> Pillow format name used for re-encoding
IMAGE_FORMATS = {
    "gif": "GIF",
    "jpeg": "JPEG",
    "png": "PNG",
}

# Modes JPEG can store as is; anything else is converted to RGB first
JPEG_MODES = frozenset({"1", "L", "RGB", "CMYK"})


class ContentStreamer:
    """
    Writes the body for a resolved target.

    Usage:
        streamer = ContentStreamer()
        streamer.stream(conn, target)
    """

    def __init__(self, preserve_line_endings: bool = False):
        """
        Args:
            preserve_line_endings: Send html lines with their terminators.
        """
        self.preserve_line_endings = preserve_line_endings

    def stream(self, conn: Connection, target: Optional[ResolvedTarget]) -> None:
        """
        Write the body for target to conn.

        Raises:
            TargetNotFound: If the file disappeared after the header went out.
            HeaderOrBodyWriteFailure: If the client went away.
        """
        if target is None or not target.exists:
            return

        if target.filesystem_path.is_dir():
            logger.debug(f"[{conn.id}] {target.resource_path!r} is a directory, no body")
            return

        extension = (target.extension or "").lower()

        try:
            if extension == "html":
                self.copy_lines(conn, target.filesystem_path)
            elif is_image(extension):
                self.send_image(conn, target.filesystem_path, extension)
            else:
                logger.debug(f"[{conn.id}] No body for extension {target.extension!r}")
        except FileNotFoundError:
            raise TargetNotFound(str(target.filesystem_path), conn.id)

    def copy_lines(self, conn: Connection, path: Path) -> None:
        """Copy a text file to the client line by line."""
        with path.open("rb") as f:
            for line in f:
                if not self.preserve_line_endings:
                    line = line.rstrip(b"\r\n")
                conn.write(line)

    def send_image(self, conn: Connection, path: Path, extension: str) -> None:
        """Re-encode an image and send it; a bad image gets an empty body."""
        try:
            data = encode_image(path, IMAGE_FORMATS[extension])
        except ImageDecodeFailure as e:
            logger.warning(f"[{conn.id}] {e}")
            return

        conn.write(data)


def decode_image(path: Path) -> Image.Image:
    """
    Decode an image file completely.

    Image.open() only reads the header; load() forces the pixel data to
    be decoded so a truncated file fails here and not halfway through
    encoding. The returned copy no longer needs the file.

    Raises:
        ImageDecodeFailure: If Pillow cannot read the file.
        FileNotFoundError: If the file is gone.
    """
    try:
        with Image.open(path) as img:
            img.load()
            return img.copy()
    except FileNotFoundError:
        raise
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        # Pillow reports corrupt data with any of these
        raise ImageDecodeFailure(str(path), str(e)) from e


def encode_image(path: Path, image_format: str) -> bytes:
    """
    Decode an image and encode it again in image_format.

    Args:
        path: Image file.
        image_format: Pillow format name ("GIF", "JPEG" or "PNG").

    Returns:
        The encoded image bytes.

    Raises:
        ImageDecodeFailure: If the file does not decode or won't re-encode.
    """
    img = decode_image(path)

    if image_format == "JPEG" and img.mode not in JPEG_MODES:
        img = img.convert("RGB")

    buffer = io.BytesIO()
    try:
        img.save(buffer, format=image_format)
    except (OSError, ValueError) as e:
        raise ImageDecodeFailure(str(path), f"re-encode as {image_format} failed: {e}") from e

    return buffer.getvalue()
