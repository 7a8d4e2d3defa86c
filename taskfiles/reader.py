"""Bounded reads of live files.

Implements the pager protocol used to tail growing files (stdout,
stderr, logs): a client first reads without an offset to learn the
current end of the file, then polls from that offset, advancing by the
number of bytes each response actually served.
"""

import asyncio
import logging
import mmap
import os
from dataclasses import dataclass
from typing import Optional

from taskfiles.errors import ClientInputError, FileAccessError

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 16


@dataclass(frozen=True)
class ReadResult:
    """Bytes served by a bounded read and the offset they start at."""
    offset: int
    data: bytes

    @property
    def length(self) -> int:
        return len(self.data)

    def to_dict(self) -> dict:
        return {
            "offset": self.offset,
            "data": self.data.decode("utf-8", errors="replace"),
            "length": self.length,
        }


class RangeReader:
    """Serves capped byte ranges of regular files without blocking the loop."""

    def __init__(self, max_pages: int = DEFAULT_MAX_PAGES):
        """Initialize the reader.

        Args:
            max_pages: Per-read cap, in memory pages
        """
        if max_pages < 1:
            raise ValueError("max_pages must be at least 1")
        self.max_pages = max_pages

    @property
    def max_length(self) -> int:
        """Largest number of bytes a single read will return."""
        return mmap.PAGESIZE * self.max_pages

    async def read_range(
        self,
        path: str,
        offset: Optional[int] = None,
        length: Optional[int] = None,
    ) -> ReadResult:
        """Read up to ``length`` bytes of ``path`` starting at ``offset``.

        Args:
            path: Canonical real path of a file
            offset: Start offset; None means the current end of file
            length: Bytes wanted; None means up to the current end of file

        Returns:
            The served offset and the bytes obtained, which may be fewer
            than requested. Reading at or past the end yields the file
            size as offset and no data.

        Raises:
            ClientInputError: If the path is a directory
            FileAccessError: If the file cannot be opened, sized or read
        """
        if os.path.isdir(path):
            raise ClientInputError("Cannot read a directory")
        if offset is not None and offset < 0:
            raise ClientInputError("Offset must not be negative")
        if length is not None and length < 0:
            raise ClientInputError("Length must not be negative")

        try:
            fd = os.open(path, os.O_RDONLY)
        except OSError as e:
            error = f"Failed to open file at '{path}': {e.strerror or e}"
            logger.warning(error)
            raise FileAccessError(error) from e

        pending: Optional[asyncio.Future] = None
        try:
            try:
                size = os.lseek(fd, 0, os.SEEK_END)
            except OSError as e:
                error = f"Failed to open file at '{path}': {e.strerror or e}"
                logger.warning(error)
                raise FileAccessError(error) from e

            if offset is None:
                offset = size
            if length is None:
                length = size - offset
            length = min(length, self.max_length)

            if offset >= size:
                return ReadResult(offset=size, data=b"")

            try:
                os.lseek(fd, offset, os.SEEK_SET)
            except OSError as e:
                error = f"Failed to seek file at '{path}': {e.strerror or e}"
                logger.warning(error)
                raise FileAccessError(error) from e

            try:
                os.set_blocking(fd, False)
            except OSError as e:
                error = f"Failed to set file descriptor nonblocking: {e.strerror or e}"
                logger.warning(error)
                raise FileAccessError(error) from e

            loop = asyncio.get_running_loop()
            while True:
                pending = loop.run_in_executor(None, os.read, fd, length)
                try:
                    data = await asyncio.shield(pending)
                except BlockingIOError:
                    pending = None
                    await _wait_readable(loop, fd)
                    continue
                except OSError as e:
                    error = f"Failed to read file at '{path}': {e.strerror or e}"
                    logger.warning(error)
                    raise FileAccessError(error) from e
                return ReadResult(offset=offset, data=data)
        finally:
            _close_when_idle(fd, pending)


async def _wait_readable(loop: asyncio.AbstractEventLoop, fd: int) -> None:
    """Suspend until ``fd`` has data (for descriptors that report EAGAIN)."""
    waiter = loop.create_future()

    def ready():
        if not waiter.done():
            waiter.set_result(None)

    loop.add_reader(fd, ready)
    try:
        await waiter
    finally:
        loop.remove_reader(fd)


def _close_when_idle(fd: int, pending: Optional[asyncio.Future]) -> None:
    """Close ``fd`` now, or once an in-flight worker read returns."""
    if pending is None or pending.done():
        os.close(fd)
        return

    # The awaiting task was cancelled while a worker thread is still
    # inside read(2); the descriptor belongs to that worker until it returns.
    def close(future: asyncio.Future) -> None:
        if not future.cancelled() and future.exception() is not None:
            logger.debug(f"Abandoned read on fd {fd} failed: {future.exception()}")
        os.close(fd)

    pending.add_done_callback(close)
