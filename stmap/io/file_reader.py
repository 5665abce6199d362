"""
Zero-copy local file reader using mmap + memoryview.
"""

from __future__ import annotations

import mmap
import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class LocalFileSource:
    """Local file source with zero-copy memory mapping.

    Attributes:
        path: Path to the local file.
    """

    path: str

    def open(self) -> "MappedFile":
        """Open and memory-map the file read-only."""
        return MappedFile(self.path).map()


class MappedFile:
    """Read-only mapping of a whole file, exposed as a memoryview.

    The file descriptor is only held while the mapping is created. Slices taken
    from ``view`` must be released before ``close`` can unmap the file.
    """

    __slots__ = ("_m", "_mv", "size", "path")

    def __init__(self, path: str):
        self.path = path
        self._m: Optional[mmap.mmap] = None
        self._mv: Optional[memoryview] = None
        self.size: int = 0

    def map(self) -> "MappedFile":
        """Map the file. Raises OSError (or ValueError from mmap) on failure."""
        fd = os.open(self.path, os.O_RDONLY)
        try:
            self.size = os.fstat(fd).st_size
            if self.size == 0:
                # mmap refuses empty files
                self._mv = memoryview(b"")
            else:
                self._m = mmap.mmap(fd, self.size, access=mmap.ACCESS_READ)
                self._mv = memoryview(self._m)
        finally:
            os.close(fd)
        return self

    def close(self) -> None:
        """Unmap the file. Safe to call more than once.

        Raises BufferError if slices of ``view`` are still alive; the mapping
        is then released when they are garbage-collected.
        """
        if self._mv is not None:
            self._mv.release()
            self._mv = None
        if self._m is not None:
            m, self._m = self._m, None
            m.close()

    @property
    def closed(self) -> bool:
        return self._mv is None

    def __enter__(self) -> "MappedFile":
        if self._mv is None:
            self.map()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def view(self) -> memoryview:
        """Zero-copy memoryview over the file bytes."""
        if self._mv is None:
            raise RuntimeError("MappedFile is not mapped")
        return self._mv
