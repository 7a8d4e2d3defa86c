"""Whole-file downloads of resolved paths."""

import mimetypes
import os
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import quote

from taskfiles.errors import ClientInputError, FileAccessError

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def guess_content_type(filename: str, types: Optional[Mapping[str, str]] = None) -> str:
    """Look up the content type for the extension after the final '.'.

    Args:
        filename: Base name of the file
        types: Extension (with leading '.') -> content type table;
            defaults to the :mod:`mimetypes` table

    Returns:
        The table entry, or application/octet-stream
    """
    if types is None:
        if not mimetypes.inited:
            mimetypes.init()
        types = mimetypes.types_map

    index = filename.rfind(".")
    if index == -1:
        return DEFAULT_CONTENT_TYPE
    return types.get(filename[index:], DEFAULT_CONTENT_TYPE)


def content_disposition(filename: str) -> str:
    """Attachment disposition telling the client to save as ``filename``.

    Quoting works on the name's filesystem bytes, so names with
    undecodable bytes still produce an ASCII header.
    """
    quoted = quote(os.fsencode(filename))
    if quoted != filename:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{filename}"'


@dataclass(frozen=True)
class Download:
    """Everything needed to stream a file by reference."""
    path: str
    filename: str
    content_type: str

    @property
    def content_disposition(self) -> str:
        return content_disposition(self.filename)

    @property
    def headers(self) -> dict:
        return {"Content-Disposition": self.content_disposition}


class DownloadResponder:
    """Describes whole-file downloads; content is never buffered here."""

    def __init__(self, types: Optional[Mapping[str, str]] = None):
        self.types = types

    def download(self, path: str) -> Download:
        """Describe a download of ``path``.

        Raises:
            ClientInputError: If the path is a directory
            FileAccessError: If the file is no longer accessible
        """
        if os.path.isdir(path):
            raise ClientInputError("Cannot download a directory")

        filename = os.path.basename(path)
        if not filename:
            raise FileAccessError(f"Failed to determine basename of '{path}'")

        try:
            os.stat(path)
        except OSError as e:
            raise FileAccessError(f"Failed to stat '{path}': {e.strerror or e}") from e

        return Download(
            path=path,
            filename=filename,
            content_type=guess_content_type(filename, self.types),
        )
