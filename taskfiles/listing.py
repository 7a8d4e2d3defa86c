"""Directory listings for resolved paths."""

import logging
import os
import posixpath
import stat
from dataclasses import dataclass, asdict
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


def printable(text: str) -> str:
    """Make a filesystem name encodable as UTF-8.

    Undecodable bytes (surrogate-escaped by :func:`os.listdir`) become
    U+FFFD replacement characters.
    """
    try:
        raw = os.fsencode(text)
    except UnicodeEncodeError:
        raw = text.encode("utf-8", errors="replace")
    return raw.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class FileEntry:
    """One child of a listed directory.

    ``path`` is the virtual path of the child, never its real path.
    ``name`` and ``path`` keep undecodable filename bytes as surrogate
    escapes; :meth:`to_dict` replaces them for serialization.
    """
    name: str
    path: str
    is_directory: bool
    size: int
    mode: str
    nlink: int
    uid: int
    gid: int
    mtime: float

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["name"] = printable(self.name)
        data["path"] = printable(self.path)
        return data

    @classmethod
    def from_stat(cls, name: str, virtual_path: str, st: os.stat_result) -> 'FileEntry':
        return cls(
            name=name,
            path=virtual_path,
            is_directory=stat.S_ISDIR(st.st_mode),
            size=st.st_size,
            mode=stat.filemode(st.st_mode),
            nlink=st.st_nlink,
            uid=st.st_uid,
            gid=st.st_gid,
            mtime=st.st_mtime,
        )


class DirectoryLister:
    """Lists the direct children of a directory, best-effort.

    Children that vanish (or otherwise fail to stat) between the
    directory read and the stat are logged and skipped.
    """

    def list(self, directory: str, virtual_prefix: str) -> List[FileEntry]:
        """List a directory.

        Args:
            directory: Canonical real path of the directory
            virtual_prefix: Virtual path the client used for the directory

        Returns:
            Entries sorted by their full real path

        Raises:
            OSError: If the directory itself cannot be read
        """
        entries = {}

        for filename in os.listdir(directory):
            full_path = os.path.join(directory, filename)
            try:
                st = os.stat(full_path)
            except OSError as e:
                logger.warning(f"Found {full_path} in ls but stat failed: {e}")
                continue

            entries[full_path] = FileEntry.from_stat(
                filename, posixpath.join(virtual_prefix, filename), st
            )

        return [entries[full_path] for full_path in sorted(entries)]
