# stmap/container.py
"""
SafeTensors container handle: a parsed header over a live memory mapping.
"""
from __future__ import annotations

import struct
from typing import Iterator, List, Optional, Tuple

from loguru import logger

from stmap.io.file_reader import LocalFileSource, MappedFile
from stmap.model_formats.safetensors.errors import IoFailure, SafeTensorsError, TruncatedFile
from stmap.model_formats.safetensors.header import HeaderBuilder
from stmap.model_formats.safetensors.records import MetadataRecord, TensorRecord
from stmap.observability import Timer

HEADER_PREFIX = 8


class SafeTensorsFile:
    """Read model of an opened SafeTensors file.

    Tensors and metadata are kept in header order; ``next_tensor`` and
    ``next_metadata`` walk them with independent cursors that ``rewind_*``
    resets. Every name, value and tensor payload is a view into the mapping
    and becomes invalid once ``close`` is called.

    A handle is not thread-safe: callers sharing one across threads must
    serialize cursor operations themselves.

    Usage::

        with SafeTensorsFile.open("model.safetensors") as st:
            while (t := st.next_tensor()) is not None:
                print(t.name, t.dtype.name, t.shape, t.nbytes)
    """

    def __init__(
        self,
        path: str,
        source: MappedFile,
        header_size: int,
        tensors: List[TensorRecord],
        metadata: List[MetadataRecord],
        views: List[memoryview],
    ):
        self.path = path
        self.header_size = header_size
        self.data_start = HEADER_PREFIX + header_size
        self.file_size = source.size
        self._source: Optional[MappedFile] = source
        self._tensors: Tuple[TensorRecord, ...] = tuple(tensors)
        self._metadata: Tuple[MetadataRecord, ...] = tuple(metadata)
        self._views = views
        self._tensor_pos = 0
        self._metadata_pos = 0

    @classmethod
    def open(cls, path: str) -> "SafeTensorsFile":
        """Map ``path`` and parse its header.

        Raises a ``SafeTensorsError`` subclass on any failure; nothing stays
        mapped in that case.
        """
        try:
            source = LocalFileSource(path).open()
        except (OSError, ValueError) as e:
            logger.debug("Failed to map {path}: {error}", path=path, error=e)
            raise IoFailure(f"Cannot map {path}: {e}") from e

        builder: Optional[HeaderBuilder] = None
        try:
            with Timer("parse_header") as t_parse:
                size = source.size
                if size < HEADER_PREFIX:
                    raise TruncatedFile(f"File is {size} bytes, too small for the header length prefix")
                (header_size,) = struct.unpack_from("<Q", source.view, 0)
                data_start = HEADER_PREFIX + header_size
                if data_start > size:
                    raise TruncatedFile(
                        f"Header length {header_size} runs past end of file ({size} bytes)"
                    )
                builder = HeaderBuilder(source.view, HEADER_PREFIX, data_start, size)
                parsed = builder.build()
        except SafeTensorsError as e:
            logger.debug("Failed to open {path}: {error}", path=path, error=e)
            if builder is not None:
                _release(builder.result.views)
            source.close()
            raise

        logger.debug(
            "Opened {path}: size={size} header={header} tensors={nt} metadata={nm} in {ms:.2f}ms",
            path=path,
            size=size,
            header=header_size,
            nt=len(parsed.tensors),
            nm=len(parsed.metadata),
            ms=t_parse.duration_ms,
        )
        return cls(path, source, header_size, parsed.tensors, parsed.metadata, parsed.views)

    @property
    def closed(self) -> bool:
        return self._source is None

    def _check_open(self) -> None:
        if self._source is None:
            raise RuntimeError(f"SafeTensorsFile {self.path} is closed")

    def close(self) -> None:
        """Release all record views and unmap the file. Safe to call twice."""
        if self._source is None:
            return
        source, self._source = self._source, None
        pinned = _release(self._views)
        self._views = []
        self._tensors = ()
        self._metadata = ()
        try:
            source.close()
        except BufferError:
            pinned = True
        if pinned:
            logger.warning(
                "Views into {path} are still referenced; unmapping when they are collected",
                path=self.path,
            )
        logger.debug("Closed {path}", path=self.path)

    def __enter__(self) -> "SafeTensorsFile":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def tensors(self) -> Tuple[TensorRecord, ...]:
        self._check_open()
        return self._tensors

    @property
    def metadata(self) -> Tuple[MetadataRecord, ...]:
        self._check_open()
        return self._metadata

    @property
    def view(self) -> memoryview:
        """The whole mapped file."""
        self._check_open()
        return self._source.view

    def next_tensor(self) -> Optional[TensorRecord]:
        """Return the tensor at the cursor and advance; None when exhausted."""
        self._check_open()
        if self._tensor_pos >= len(self._tensors):
            return None
        rec = self._tensors[self._tensor_pos]
        self._tensor_pos += 1
        return rec

    def next_metadata(self) -> Optional[MetadataRecord]:
        """Return the metadata entry at the cursor and advance; None when exhausted."""
        self._check_open()
        if self._metadata_pos >= len(self._metadata):
            return None
        rec = self._metadata[self._metadata_pos]
        self._metadata_pos += 1
        return rec

    def rewind_tensor(self) -> None:
        self._check_open()
        self._tensor_pos = 0

    def rewind_metadata(self) -> None:
        self._check_open()
        self._metadata_pos = 0

    def iter_tensors(self) -> Iterator[TensorRecord]:
        """Rewind, then yield every tensor."""
        self.rewind_tensor()
        while (rec := self.next_tensor()) is not None:
            yield rec

    def iter_metadata(self) -> Iterator[MetadataRecord]:
        """Rewind, then yield every metadata entry."""
        self.rewind_metadata()
        while (rec := self.next_metadata()) is not None:
            yield rec


def _release(views: List[memoryview]) -> bool:
    """Release every view; True if some could not be released (still exported)."""
    pinned = False
    for v in views:
        try:
            v.release()
        except BufferError:
            pinned = True
    return pinned


def open_safetensors(path: str) -> SafeTensorsFile:
    """Open a SafeTensors file; see ``SafeTensorsFile.open``."""
    return SafeTensorsFile.open(path)
