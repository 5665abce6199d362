# stmap/model_formats/safetensors/errors.py
"""
SafeTensors open/parse exceptions.

Every failure while opening a file derives from ``SafeTensorsError`` so callers
can treat "open failed" as a single outcome, or branch on the subclass.
"""

from __future__ import annotations


class SafeTensorsError(Exception):
    """Raised when a SafeTensors file cannot be opened."""


class IoFailure(SafeTensorsError):
    """The file could not be opened or memory-mapped."""


class TruncatedFile(SafeTensorsError):
    """The declared header length runs past the end of the file."""


class MalformedHeader(SafeTensorsError):
    """The header is not valid in the restricted JSON subset."""


class UnknownDtype(MalformedHeader):
    """A dtype string is not one of the recognized element types."""


class InvalidTensorDescriptor(MalformedHeader):
    """A tensor object has a missing, duplicated or unknown field."""


class InvalidByteRange(InvalidTensorDescriptor):
    """``data_offsets`` are not ordered (start > end)."""


class OffsetOutOfBounds(InvalidByteRange):
    """``data_offsets`` reach past the end of the data region."""
