"""Shared fixtures: build small SafeTensors files on disk."""

import json
import struct

import pytest


@pytest.fixture
def make_file(tmp_path):
    """Write ``<u64 header_len><header><payload>`` and return the path.

    ``header`` may be raw bytes/str (written verbatim) or a dict (JSON-encoded
    and space-padded to a multiple of 8, as safetensors writers do).
    ``header_len`` overrides the declared length.
    """
    counter = {"n": 0}

    def _make(header, payload=b"", *, header_len=None):
        if isinstance(header, dict):
            header = json.dumps(header)
            header += " " * (-len(header) % 8)
        if isinstance(header, str):
            header = header.encode("utf-8")
        declared = len(header) if header_len is None else header_len
        counter["n"] += 1
        path = tmp_path / f"model{counter['n']}.safetensors"
        path.write_bytes(struct.pack("<Q", declared) + header + payload)
        return str(path)

    return _make


@pytest.fixture
def two_tensor_file(make_file):
    """Two F32 tensors plus two metadata entries."""
    weight = struct.pack("<6f", 1.0, 2.0, 3.0, 4.0, 5.0, 6.0)
    bias = struct.pack("<2f", 0.5, -0.5)
    header = {
        "__metadata__": {"format": "pt", "n_layer": "2"},
        "linear.weight": {"dtype": "F32", "shape": [2, 3], "data_offsets": [0, 24]},
        "linear.bias": {"dtype": "F32", "shape": [2], "data_offsets": [24, 32]},
    }
    return make_file(header, weight + bias)
