"""Resolution of virtual paths against the attachment registry.

Suppose we have /1/2/hello_world.txt on the host and /1/2 is attached
as 'sandbox'. Then the virtual path 'sandbox/hello_world.txt' resolves
to /1/2/hello_world.txt. The longest attached prefix of the virtual
path wins and the remaining segments are joined onto its real path,
provided that real path is a directory.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

from taskfiles.registry import PathRegistry

logger = logging.getLogger(__name__)


class ResolutionStatus(Enum):
    """Outcome of resolving a virtual path."""
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class Resolution:
    """Result of :meth:`PathResolver.resolve`.

    Attributes:
        status: Found, not found, or error
        path: Canonical real path (only when found)
        is_directory: Whether the found path is a directory
        error: Reason for an error resolution
    """
    status: ResolutionStatus
    path: Optional[str] = None
    is_directory: bool = False
    error: Optional[str] = None

    @classmethod
    def found(cls, path: str, is_directory: bool) -> 'Resolution':
        return cls(ResolutionStatus.FOUND, path=path, is_directory=is_directory)

    @classmethod
    def not_found(cls) -> 'Resolution':
        return cls(ResolutionStatus.NOT_FOUND)

    @classmethod
    def failed(cls, reason: str) -> 'Resolution':
        return cls(ResolutionStatus.ERROR, error=reason)

    @property
    def is_found(self) -> bool:
        return self.status is ResolutionStatus.FOUND

    @property
    def is_error(self) -> bool:
        return self.status is ResolutionStatus.ERROR


def is_contained(path: str, root: str) -> bool:
    """Check that canonical ``path`` lies at or below canonical ``root``.

    The comparison is segment-aware: '/foo' does not contain '/foobar'.
    """
    if path == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return path.startswith(prefix)


class PathResolver:
    """Resolves virtual paths using longest-prefix matching.

    Containment is always checked against the attachment root as it
    canonicalizes now, so a root whose symlinks were retargeted after
    attach is still compared canonical-to-canonical.
    """

    def __init__(self, registry: PathRegistry):
        """Initialize path resolver.

        Args:
            registry: Attachments to resolve against
        """
        self.registry = registry

    def resolve(self, virtual_path: str) -> Resolution:
        """Resolve a virtual path to a canonical real path.

        Args:
            virtual_path: '/'-separated client path, e.g. 'sandbox/stdout'

        Returns:
            Found with the canonical path, NotFound when no attachment
            matches (or a file attachment is addressed as a directory),
            or an error when the path cannot be canonicalized or escapes
            its attachment.
        """
        if not virtual_path:
            return Resolution.not_found()

        tokens = self._split(virtual_path)
        suffix: List[str] = []

        while tokens:
            prefix = "/".join(tokens)
            root = self.registry.get(prefix)

            if root is None:
                suffix.insert(0, tokens.pop())
                continue

            return self._resolve_in(root, suffix)

        return Resolution.not_found()

    def _resolve_in(self, root: str, suffix: List[str]) -> Resolution:
        """Resolve the outstanding suffix below a matched attachment."""
        if not os.path.isdir(root):
            if suffix:
                # A file attachment addressed as if it had children.
                return Resolution.not_found()
            return Resolution.found(root, is_directory=False)

        candidate = os.path.join(root, *suffix)

        try:
            canonical_root = str(Path(root).resolve(strict=True))
            canonical = str(Path(candidate).resolve(strict=True))
        except (OSError, RuntimeError, ValueError) as e:
            reason = f"Failed to determine canonical path of '{candidate}': {e}"
            logger.warning(reason)
            return Resolution.failed(reason)

        if not is_contained(canonical, canonical_root):
            reason = f"'{candidate}' is inaccessible"
            logger.warning(f"{reason} (resolves to '{canonical}' outside '{canonical_root}')")
            return Resolution.failed(reason)

        return Resolution.found(canonical, is_directory=os.path.isdir(canonical))

    @staticmethod
    def _split(virtual_path: str) -> List[str]:
        """Drop one trailing separator and split into segments."""
        if virtual_path.endswith("/"):
            virtual_path = virtual_path[:-1]
        return virtual_path.split("/")
