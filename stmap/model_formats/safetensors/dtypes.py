# stmap/model_formats/safetensors/dtypes.py
"""
SafeTensors element types.
"""
from __future__ import annotations

from enum import IntEnum
from typing import Dict, Optional


class DType(IntEnum):
    """Tensor element types. Member names are the exact header tags."""

    BOOL = 0
    U8 = 1
    I8 = 2
    F8_E5M2 = 3
    F8_E4M3 = 4
    I16 = 5
    U16 = 6
    F16 = 7
    BF16 = 8
    I32 = 9
    U32 = 10
    F32 = 11
    F64 = 12
    I64 = 13
    U64 = 14

    @property
    def itemsize(self) -> int:
        """Size of one element in bytes."""
        return ITEMSIZE[self]

    @classmethod
    def from_tag(cls, tag: str) -> Optional["DType"]:
        """Exact, case-sensitive lookup of a header tag; None if unknown."""
        return cls.__members__.get(tag)


ITEMSIZE: Dict[DType, int] = {
    DType.BOOL: 1,
    DType.U8: 1,
    DType.I8: 1,
    DType.F8_E5M2: 1,
    DType.F8_E4M3: 1,
    DType.I16: 2,
    DType.U16: 2,
    DType.F16: 2,
    DType.BF16: 2,
    DType.I32: 4,
    DType.U32: 4,
    DType.F32: 4,
    DType.F64: 8,
    DType.I64: 8,
    DType.U64: 8,
}
