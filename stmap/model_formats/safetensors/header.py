# stmap/model_formats/safetensors/header.py
"""
SafeTensors header builder.

Drives the value parsers over ``buf[header_start:data_start]`` and produces
tensor and metadata records in header order. Every memoryview slice handed
out is recorded so the owner can release them before unmapping.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntFlag
from typing import List, Optional, Tuple

from stmap.model_formats.safetensors.dtypes import DType
from stmap.model_formats.safetensors.errors import (
    InvalidByteRange,
    InvalidTensorDescriptor,
    MalformedHeader,
    OffsetOutOfBounds,
)
from stmap.model_formats.safetensors.records import MetadataRecord, StringView, TensorRecord
from stmap.model_formats.safetensors.tokenizer import Token, Tokenizer, TokenKind
from stmap.model_formats.safetensors.values import (
    array_length,
    expect,
    parse_array,
    parse_dtype,
    parse_object,
)

METADATA_KEY = b"__metadata__"


class TensorField(IntFlag):
    DTYPE = 1
    SHAPE = 2
    DATA_OFFSETS = 4


ALL_FIELDS = TensorField.DTYPE | TensorField.SHAPE | TensorField.DATA_OFFSETS

_FIELD_KEYS = {
    b"dtype": TensorField.DTYPE,
    b"shape": TensorField.SHAPE,
    b"data_offsets": TensorField.DATA_OFFSETS,
}


@dataclass
class ParsedHeader:
    tensors: List[TensorRecord] = field(default_factory=list)
    metadata: List[MetadataRecord] = field(default_factory=list)
    views: List[memoryview] = field(default_factory=list)


@dataclass
class _TensorState:
    """Fields collected while a tensor object is open."""

    seen: TensorField = TensorField(0)
    dtype: Optional[DType] = None
    shape: Tuple[int, ...] = ()
    offsets: Tuple[int, int] = (0, 0)


class HeaderBuilder:
    """Builds records from the header region of a mapped SafeTensors file."""

    def __init__(self, buf: memoryview, header_start: int, data_start: int, file_size: int):
        self.buf = buf
        self.data_start = data_start
        self.data_len = file_size - data_start
        self.tok = Tokenizer(buf, header_start, data_start)
        self.result = ParsedHeader()
        self._tensor: Optional[_TensorState] = None

    def build(self) -> ParsedHeader:
        parse_object(self.tok, self._header_entry)
        t = self.tok.next_token()
        if t.kind is not TokenKind.EOH:
            raise MalformedHeader(f"Trailing {t.kind.value!r} after header object at offset {t.start}")
        return self.result

    def _slice(self, start: int, end: int) -> memoryview:
        view = self.buf[start:end]
        self.result.views.append(view)
        return view

    def _string(self, token: Token) -> StringView:
        return StringView(self._slice(token.start, token.end))

    def _header_entry(self, key: Token) -> None:
        if self.tok.matches(key, METADATA_KEY):
            parse_object(self.tok, self._metadata_entry)
        else:
            self._parse_tensor(key)

    def _metadata_entry(self, key: Token) -> None:
        t = self.tok.next_token()
        if t.kind is not TokenKind.STRING:
            raise MalformedHeader(
                f"Metadata value for {self.tok.text(key)!r} must be a string, "
                f"found {t.kind.value!r} at offset {t.start}"
            )
        self.result.metadata.append(MetadataRecord(name=self._string(key), value=self._string(t)))

    def _parse_tensor(self, key: Token) -> None:
        self._tensor = state = _TensorState()
        parse_object(self.tok, self._tensor_entry)
        self._tensor = None

        name = self.tok.text(key)
        missing = ALL_FIELDS & ~state.seen
        if missing:
            fields = ", ".join(f.name.lower() for f in TensorField if f & missing)
            raise InvalidTensorDescriptor(f"Incomplete tensor descriptor {name!r}: missing {fields}")

        begin, end = state.offsets
        if end > self.data_len:
            raise OffsetOutOfBounds(
                f"Tensor {name!r} data_offsets [{begin}, {end}) exceed data region of {self.data_len} bytes"
            )
        self.result.tensors.append(
            TensorRecord(
                name=self._string(key),
                dtype=state.dtype,
                shape=state.shape,
                data=self._slice(self.data_start + begin, self.data_start + end),
                data_offsets=state.offsets,
            )
        )

    def _tensor_entry(self, key: Token) -> None:
        state = self._tensor
        flag = _FIELD_KEYS.get(bytes(self.buf[key.start : key.end]))
        if flag is None:
            raise InvalidTensorDescriptor(
                f"Unknown tensor field {self.tok.text(key)!r} at offset {key.start}"
            )
        if state.seen & flag:
            raise InvalidTensorDescriptor(
                f"Duplicate tensor field {self.tok.text(key)!r} at offset {key.start}"
            )

        if flag is TensorField.DTYPE:
            state.dtype = parse_dtype(self.tok)
        elif flag is TensorField.SHAPE:
            # Sizing pass, then an exact-capacity fill.
            n = array_length(self.tok)
            state.shape = tuple(parse_array(self.tok, n))
        else:
            at = self.tok.mark()
            begin, end = parse_array(self.tok, 2)
            if begin > end:
                raise InvalidByteRange(f"data_offsets [{begin}, {end}] out of order at offset {at}")
            state.offsets = (begin, end)
        state.seen |= flag


def build_header(buf: memoryview, header_start: int, data_start: int, file_size: int) -> ParsedHeader:
    """Parse the header region; see ``HeaderBuilder``."""
    return HeaderBuilder(buf, header_start, data_start, file_size).build()
