"""The Files service: attached directories served by virtual name.

A ``Files`` instance owns its registry. All of its methods are meant to
be called from one asyncio event loop (the request handlers of
:mod:`taskfiles.server`), which serializes them: the synchronous part
of each call runs to completion before another starts, and the only
suspension point is the wait for data inside :meth:`Files.read`.
"""

import logging
from typing import Dict, List, Mapping, Optional

from taskfiles.download import Download, DownloadResponder
from taskfiles.errors import ClientInputError, ContainmentError, FileAccessError, NotFoundError
from taskfiles.listing import DirectoryLister, FileEntry
from taskfiles.reader import DEFAULT_MAX_PAGES, RangeReader, ReadResult
from taskfiles.registry import Attachment, PathRegistry
from taskfiles.resolver import PathResolver, Resolution

logger = logging.getLogger(__name__)


class Files:
    """Attach/detach host paths and serve them by virtual path."""

    def __init__(self, max_pages: int = DEFAULT_MAX_PAGES,
                 mime_types: Optional[Mapping[str, str]] = None):
        self.registry = PathRegistry()
        self.resolver = PathResolver(self.registry)
        self.lister = DirectoryLister()
        self.reader = RangeReader(max_pages=max_pages)
        self.downloader = DownloadResponder(mime_types)

    def attach(self, host_path: str, name: str) -> Attachment:
        """Expose ``host_path`` as ``name``; replaces any previous mapping."""
        return self.registry.attach(host_path, name)

    def detach(self, name: str) -> None:
        self.registry.detach(name)

    def debug(self) -> Dict[str, str]:
        return self.registry.debug_snapshot()

    def resolve(self, virtual_path: str) -> Resolution:
        return self.resolver.resolve(virtual_path)

    def browse(self, virtual_path: str) -> List[FileEntry]:
        """List the directory at ``virtual_path``.

        Raises:
            ClientInputError: If the path is empty or names a file
            NotFoundError: If nothing is attached there
            ContainmentError: If resolution fails
            FileAccessError: If the directory cannot be read
        """
        resolution = self._resolve_required(virtual_path)

        if not resolution.is_directory:
            raise ClientInputError("Cannot browse a file")

        try:
            return self.lister.list(resolution.path, virtual_path)
        except OSError as e:
            error = f"Failed to list directory at '{resolution.path}': {e.strerror or e}"
            logger.warning(error)
            raise FileAccessError(error) from e

    async def read(
        self,
        virtual_path: str,
        offset: Optional[int] = None,
        length: Optional[int] = None,
    ) -> ReadResult:
        """Bounded read of the file at ``virtual_path``.

        See :meth:`taskfiles.reader.RangeReader.read_range`.
        """
        resolution = self._resolve_required(virtual_path)
        return await self.reader.read_range(resolution.path, offset, length)

    def download(self, virtual_path: str) -> Download:
        resolution = self._resolve_required(virtual_path)
        return self.downloader.download(resolution.path)

    def _resolve_required(self, virtual_path: str) -> Resolution:
        """Resolve, turning anything but a hit into a typed error."""
        if not virtual_path:
            raise ClientInputError("Expecting 'path=value' in query")

        resolution = self.resolver.resolve(virtual_path)

        if resolution.is_error:
            raise ContainmentError(resolution.error)
        if not resolution.is_found:
            raise NotFoundError()

        return resolution
