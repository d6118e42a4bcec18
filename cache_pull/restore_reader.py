"""Forward-only stream wrapper that can be rewound to its start exactly once.

HTTP response bodies cannot seek. To look at the first archive entry and
still extract the whole archive from a single download, every byte read
before the rewind point is kept in memory and handed out again after
`RestoreReader.restore()`. Memory use is bounded by what was read before the
restore (the first entry), not by the archive size.

The reader moves through three modes:

* ``CAPTURING`` - reads come from the source and are recorded.
* ``REPLAYING`` - reads are served from the recording.
* ``PASSTHROUGH`` - the recording is used up; reads go to the source again.
"""

from __future__ import annotations

import enum
import io
from typing import BinaryIO

from .errors import ReaderRestoreError


class ReaderMode(enum.Enum):
    CAPTURING = "capturing"
    REPLAYING = "replaying"
    PASSTHROUGH = "passthrough"


class RestoreReader(io.RawIOBase):
    """Raw binary reader over ``source`` supporting one `restore()`.

    The source only needs a ``read(size)`` method. It is never closed by
    this wrapper; whoever opened it owns it.
    """

    def __init__(self, source: BinaryIO) -> None:
        super().__init__()
        self._source = source
        self._buffer = bytearray()
        self._cursor = 0
        self._mode = ReaderMode.CAPTURING
        self.source_exhausted = False

    @property
    def mode(self) -> ReaderMode:
        return self._mode

    @property
    def captured_size(self) -> int:
        """Number of bytes recorded before the restore point."""
        return len(self._buffer)

    def readable(self) -> bool:
        return True

    def restore(self) -> None:
        """Rewind to the first byte ever read.

        Allowed once, while capturing. Restoring before anything was read is
        fine and simply stops any further recording.
        """
        if self._mode is not ReaderMode.CAPTURING:
            raise ReaderRestoreError(
                f"Reader can only be restored once (current mode: {self._mode.value})"
            )
        self._cursor = 0
        self._mode = ReaderMode.REPLAYING

    def readinto(self, b) -> int:
        view = memoryview(b).cast("B")
        if not len(view):
            return 0

        if self._mode is ReaderMode.CAPTURING:
            count = self._read_source(view)
            self._buffer.extend(view[:count])
            return count

        if self._mode is ReaderMode.REPLAYING:
            remaining = len(self._buffer) - self._cursor
            if remaining >= len(view):
                return self._replay(view)
            # Recording runs out in this call. The source is read first so a
            # failing read leaves the unreplayed bytes in place.
            tail = self._read_source(view[remaining:])
            self._replay(view[:remaining])
            self._mode = ReaderMode.PASSTHROUGH
            self._buffer = bytearray()
            self._cursor = 0
            return remaining + tail

        return self._read_source(view)

    def _replay(self, view: memoryview) -> int:
        count = len(view)
        view[:] = self._buffer[self._cursor:self._cursor + count]
        self._cursor += count
        return count

    def _read_source(self, view: memoryview) -> int:
        data = self._source.read(len(view))
        if not data:
            self.source_exhausted = True
            return 0
        count = len(data)
        view[:count] = data
        return count


__all__ = ["ReaderMode", "RestoreReader"]
