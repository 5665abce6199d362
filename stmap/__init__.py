# stmap/__init__.py
"""
stmap
=====

Zero-copy SafeTensors reader: parses the header of a memory-mapped
``.safetensors`` file and hands out views into the mapping instead of copies.
"""
from __future__ import annotations

from importlib.metadata import version as _pkg_version

from stmap.container import SafeTensorsFile, open_safetensors
from stmap.model_formats.safetensors.dtypes import DType
from stmap.model_formats.safetensors.errors import (
    InvalidByteRange,
    InvalidTensorDescriptor,
    IoFailure,
    MalformedHeader,
    OffsetOutOfBounds,
    SafeTensorsError,
    TruncatedFile,
    UnknownDtype,
)
from stmap.model_formats.safetensors.records import MetadataRecord, StringView, TensorRecord

__all__ = [
    "__version__",
    "DType",
    "InvalidByteRange",
    "InvalidTensorDescriptor",
    "IoFailure",
    "MalformedHeader",
    "MetadataRecord",
    "OffsetOutOfBounds",
    "SafeTensorsError",
    "SafeTensorsFile",
    "StringView",
    "TensorRecord",
    "TruncatedFile",
    "UnknownDtype",
    "open_safetensors",
]

try:
    # Read version dynamically from installed package metadata
    __version__: str = _pkg_version("stmap")
except Exception:  # pragma: no cover - fallback for development environments
    __version__ = "0.0.0-dev"
