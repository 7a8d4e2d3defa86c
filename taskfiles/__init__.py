"""Serve attached host directories under short virtual names.

Host directories (or single files) are attached under virtual names and
served over HTTP: directory listings, bounded pager reads of live files,
and whole-file downloads. Virtual paths are resolved with longest-prefix
matching and never escape the attached directory.

Usage Example:

    ```python
    from taskfiles import Files

    files = Files()
    files.attach("/var/task/7", "sandbox")

    files.browse("sandbox")                  # entries with paths 'sandbox/...'
    await files.read("sandbox/stdout", 0, 5)  # ReadResult(offset=0, data=b'hello')
    files.download("sandbox/stdout").content_type
    ```
"""

from taskfiles.errors import (
    FilesError,
    ClientInputError,
    NotFoundError,
    ContainmentError,
    FileAccessError,
)
from taskfiles.registry import Attachment, PathRegistry
from taskfiles.resolver import PathResolver, Resolution, ResolutionStatus
from taskfiles.listing import DirectoryLister, FileEntry
from taskfiles.reader import RangeReader, ReadResult
from taskfiles.download import Download, DownloadResponder
from taskfiles.files import Files

__version__ = "0.1.0"

__all__ = [
    # Main entry point
    "Files",
    # Components
    "PathRegistry",
    "Attachment",
    "PathResolver",
    "Resolution",
    "ResolutionStatus",
    "DirectoryLister",
    "FileEntry",
    "RangeReader",
    "ReadResult",
    "DownloadResponder",
    "Download",
    # Errors
    "FilesError",
    "ClientInputError",
    "NotFoundError",
    "ContainmentError",
    "FileAccessError",
]
