"""
Change detection for the followed file.

Each poll is a single bounded read: stat the file, and if it changed since the
cursor, return the bytes past the cursor's offset together with the new cursor.
Nothing is cached between polls, so any number of sessions can share one
detector.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional, Union

from frontail.cursor import Cursor
from frontail.errors import (
    FileUnavailable,
    FrontailError,
    ReadFailure,
    SeekFailure,
    describe_os_error,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Delta:
    """Result of one poll: new bytes, the cursor after them, or an error."""

    data: bytes
    cursor: Cursor
    error: Optional[FrontailError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _read_exactly(handle: BinaryIO, count: int) -> bytes:
    """Read up to ``count`` bytes, looping on short reads until EOF."""
    chunks: list[bytes] = []
    remaining = count
    while remaining > 0:
        chunk = handle.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


class ChangeDetector:
    """Stateless reader of the bytes appended to ``path`` since a cursor."""

    def __init__(self, path: Union[str, Path], rewind_on_truncate: bool = False):
        self.path = Path(path)
        self.rewind_on_truncate = rewind_on_truncate

    def _seek(self, handle: BinaryIO, offset: int) -> int:
        try:
            return handle.seek(offset)
        except (OSError, ValueError, OverflowError) as exc:
            failure = SeekFailure(f"seek {self.path} to {offset}: {exc}")
            logger.debug("%s; restarting from offset 0", failure)
            return handle.seek(0)

    def poll(self, cursor: Cursor) -> Delta:
        try:
            stat = os.stat(self.path)
        except OSError as exc:
            error = FileUnavailable(describe_os_error("stat", str(self.path), exc))
            error.__cause__ = exc
            return Delta(b"", cursor, error)

        mod_time_ns = stat.st_mtime_ns
        if mod_time_ns <= cursor.mod_time_ns:
            return Delta(b"", cursor)

        size = stat.st_size
        offset = cursor.offset
        if self.rewind_on_truncate and size < offset:
            logger.info("%s shrank below offset %d; rewinding to 0", self.path, offset)
            offset = 0

        try:
            handle = open(self.path, "rb")
        except OSError as exc:
            error = FileUnavailable(describe_os_error("open", str(self.path), exc))
            error.__cause__ = exc
            return Delta(b"", cursor, error)

        with handle:
            position = self._seek(handle, offset)
            available = size - position
            if available <= 0:
                # Truncated or rotated below the offset: keep the offset.
                return Delta(b"", Cursor(mod_time_ns, offset))
            try:
                data = _read_exactly(handle, available)
            except OSError as exc:
                error = ReadFailure(describe_os_error("read", str(self.path), exc))
                error.__cause__ = exc
                return Delta(b"", cursor, error)

        return Delta(data, Cursor(mod_time_ns, position + len(data)))

    def snapshot(self) -> Delta:
        """Whole current content, as served on the bootstrap page."""
        return self.poll(Cursor.start())
