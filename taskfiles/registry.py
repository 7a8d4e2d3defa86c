"""Registry of attached host paths.

Maps short virtual names to canonical real paths. The registry has a
single owner (see :class:`taskfiles.files.Files`); it is never shared
across threads.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from taskfiles.errors import FileAccessError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Attachment:
    """One name -> real path mapping."""
    name: str
    real_path: str


def clean_name(name: str) -> str:
    """Strip a trailing separator from an attachment name."""
    if name.endswith("/"):
        return name[:-1]
    return name


class PathRegistry:
    """Last-writer-wins table of attachments."""

    def __init__(self):
        self._paths: Dict[str, str] = {}

    def attach(self, host_path: str, name: str) -> Attachment:
        """Attach a host file or directory under a virtual name.

        Args:
            host_path: Path on the host; must exist and be readable
            name: Virtual name, a trailing '/' is dropped

        Returns:
            The stored attachment

        Raises:
            FileAccessError: If the path cannot be canonicalized or read
            ValueError: If the name is empty
        """
        cleaned = clean_name(name)
        if not cleaned:
            raise ValueError("Attachment name must not be empty")

        try:
            real_path = str(Path(host_path).resolve(strict=True))
        except (OSError, RuntimeError, ValueError) as e:
            raise FileAccessError(
                f"Failed to get realpath of '{host_path}': {e}"
            ) from e

        if not os.access(real_path, os.R_OK):
            raise FileAccessError(f"Failed to access '{host_path}': Access denied")

        previous = self._paths.get(cleaned)
        if previous is not None and previous != real_path:
            logger.debug(f"Replacing attachment '{cleaned}': {previous} -> {real_path}")

        self._paths[cleaned] = real_path
        logger.debug(f"Attached '{real_path}' as '{cleaned}'")
        return Attachment(cleaned, real_path)

    def detach(self, name: str) -> None:
        """Remove an attachment; unknown names are ignored."""
        if self._paths.pop(name, None) is not None:
            logger.debug(f"Detached '{name}'")

    def get(self, name: str) -> Optional[str]:
        return self._paths.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._paths

    def __len__(self) -> int:
        return len(self._paths)

    def debug_snapshot(self) -> Dict[str, str]:
        """Copy of the name -> real path table for diagnostics."""
        return dict(self._paths)
