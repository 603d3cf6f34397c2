"""
=============================================================================
HANDLERS MODULE
=============================================================================

Body writers. A handler runs after the header block is out and sends the
requested file's content, converted where the content type calls for it.

=============================================================================
"""

from .content import ContentStreamer, decode_image, encode_image

__all__ = [
    "ContentStreamer",
    "decode_image",
    "encode_image",
]
