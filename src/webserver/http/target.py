"""
=============================================================================
PATH RESOLUTION
=============================================================================

Turns the resource path taken from the request line into a concrete file
beneath the served root.

=============================================================================
PATH TRAVERSAL
=============================================================================

The resource path comes straight from the client. Joined naively, a
request like

    GET /../../etc/passwd HTTP/1.1

would read files far outside the served root. We therefore:

1. Resolve the served root to an absolute, symlink-free path
2. Join the resource path and resolve the result the same way
3. Check the result is still inside the root

A target that fails step 3, or that the OS refuses to resolve, is marked
as not contained. It never exists as far as the rest of the worker is
concerned, so the client gets a 404. Anything else that exists under the
root, directories included, exists.

=============================================================================
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .content_types import get_extension


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedTarget:
    """
    The file a request asked for.

    Created once, after request parsing completes, and handed down the
    worker's steps as a plain value instead of being stored on the worker.

    Attributes:
        resource_path: Path as sent by the client, relative to the served
                       root (e.g. "images/logo.png").
        filesystem_path: Canonical path on disk.
        extension: Text after the last '.' of resource_path, or None.
        contained: False if filesystem_path escapes the served root.
    """

    resource_path: str
    filesystem_path: Path
    extension: Optional[str]
    contained: bool = True

    @property
    def exists(self) -> bool:
        """
        True if something exists at the target inside the served root.

        Directories count. A path the OS refuses to stat (a component
        longer than NAME_MAX, say) does not.
        """
        if not self.contained:
            return False
        try:
            return self.filesystem_path.exists()
        except OSError:
            return False


def resolve_target(resource_path: str, content_root: Union[str, Path]) -> ResolvedTarget:
    """
    Resolve a resource path beneath the served root.

    Args:
        resource_path: Path extracted from the request line.
        content_root: The served root directory.

    Returns:
        A ResolvedTarget. Never raises for a bad path; the result is just
        marked as not contained.
    """
    root = Path(content_root).resolve()
    full_path = root / resource_path

    try:
        # resolve() follows symlinks and normalizes .. components
        full_path = full_path.resolve()
        full_path.relative_to(root)
        contained = True
    except OSError as e:
        # Containment can't be proven, so nothing is served
        logger.debug(f"Cannot resolve {resource_path!r}: {e}")
        contained = False
    except ValueError:
        # Outside the root, or a path the OS cannot represent (NUL bytes)
        logger.warning(f"Path traversal attempt: {resource_path!r}")
        contained = False

    return ResolvedTarget(
        resource_path=resource_path,
        filesystem_path=full_path,
        extension=get_extension(resource_path),
        contained=contained,
    )
