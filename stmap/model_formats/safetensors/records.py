# stmap/model_formats/safetensors/records.py
"""
Zero-copy records produced by the header builder.

All views point into the mapped file. They stay valid until the owning
``SafeTensorsFile`` is closed; do not keep them past that point.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

from stmap.model_formats.safetensors.dtypes import DType


class StringView:
    """Raw bytes of a JSON string literal, quotes excluded, escapes verbatim."""

    __slots__ = ("_view",)

    def __init__(self, view: memoryview):
        self._view = view

    @property
    def view(self) -> memoryview:
        return self._view

    def tobytes(self) -> bytes:
        return self._view.tobytes()

    def decode(self, errors: str = "replace") -> str:
        return self._view.tobytes().decode("utf-8", errors)

    def __len__(self) -> int:
        return len(self._view)

    def __bytes__(self) -> bytes:
        return self.tobytes()

    def __str__(self) -> str:
        return self.decode()

    def __repr__(self) -> str:
        return f"StringView({self.tobytes()!r})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, StringView):
            return self._view == other._view
        if isinstance(other, str):
            return self.tobytes() == other.encode("utf-8")
        if isinstance(other, (bytes, bytearray, memoryview)):
            return self._view == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.tobytes())


@dataclass(frozen=True)
class TensorRecord:
    name: StringView
    dtype: DType
    shape: Tuple[int, ...]  # slowest-varying dimension first
    data: memoryview  # slice of the data region
    data_offsets: Tuple[int, int]  # relative to the data region

    @property
    def n_elements(self) -> int:
        """Total number of elements; 1 for a scalar (empty shape)."""
        p = 1
        for d in self.shape:
            p *= d
        return p

    @property
    def nbytes(self) -> int:
        return len(self.data)

    @property
    def expected_nbytes(self) -> int:
        """Byte size implied by shape and dtype."""
        return self.n_elements * self.dtype.itemsize


@dataclass(frozen=True)
class MetadataRecord:
    name: StringView
    value: StringView
