"""End-to-end tests for SafeTensorsFile over real mapped files."""

import struct

import pytest

from stmap import (
    DType,
    InvalidByteRange,
    InvalidTensorDescriptor,
    IoFailure,
    MalformedHeader,
    SafeTensorsError,
    SafeTensorsFile,
    TruncatedFile,
    open_safetensors,
)


def _drain(next_fn):
    out = []
    while (rec := next_fn()) is not None:
        out.append(rec)
    return out


def test_single_tensor_example(make_file):
    header = b'{"x":{"dtype":"F32","shape":[2,3],"data_offsets":[0,24]}}'.ljust(64, b" ")
    assert len(header) == 64
    payload = struct.pack("<6f", 1, 2, 3, 4, 5, 6)
    path = make_file(header, payload)

    st = open_safetensors(path)
    try:
        assert st.file_size == 8 + 64 + 24
        assert st.header_size == 64
        assert st.data_start == 72

        t = st.next_tensor()
        assert t.name == "x"
        assert t.dtype is DType.F32
        assert t.shape == (2, 3)
        assert len(t.data) == 24
        assert t.data.tobytes() == payload
        assert st.next_tensor() is None
        assert st.next_metadata() is None
    finally:
        st.close()


def test_views_are_zero_copy(two_tensor_file):
    with SafeTensorsFile.open(two_tensor_file) as st:
        weight = st.next_tensor()
        assert weight.data.readonly
        assert weight.data.obj is st.view.obj
        assert struct.unpack("<6f", weight.data) == (1.0, 2.0, 3.0, 4.0, 5.0, 6.0)


def test_order_and_metadata(two_tensor_file):
    with SafeTensorsFile.open(two_tensor_file) as st:
        assert [str(t.name) for t in _drain(st.next_tensor)] == ["linear.weight", "linear.bias"]
        assert [(str(m.name), str(m.value)) for m in _drain(st.next_metadata)] == [
            ("format", "pt"),
            ("n_layer", "2"),
        ]


def test_rewind_is_idempotent(two_tensor_file):
    with SafeTensorsFile.open(two_tensor_file) as st:
        first = [(str(t.name), t.shape) for t in _drain(st.next_tensor)]
        first_meta = [str(m.name) for m in _drain(st.next_metadata)]
        for _ in range(3):
            st.rewind_tensor()
            assert [(str(t.name), t.shape) for t in _drain(st.next_tensor)] == first
            st.rewind_metadata()
            assert [str(m.name) for m in _drain(st.next_metadata)] == first_meta


def test_cursors_are_independent(two_tensor_file):
    with SafeTensorsFile.open(two_tensor_file) as st:
        st.next_tensor()
        assert st.next_metadata().name == "format"
        assert st.next_tensor().name == "linear.bias"
        st.rewind_metadata()
        assert st.next_tensor() is None
        assert st.next_metadata().name == "format"


def test_iter_helpers_rewind_first(two_tensor_file):
    with SafeTensorsFile.open(two_tensor_file) as st:
        st.next_tensor()
        assert len(list(st.iter_tensors())) == 2
        assert len(list(st.iter_metadata())) == 2
        assert len(st.tensors) == 2
        assert len(st.metadata) == 2


def test_scalar_tensor(make_file):
    path = make_file({"s": {"dtype": "F64", "shape": [], "data_offsets": [0, 8]}}, bytes(8))
    with SafeTensorsFile.open(path) as st:
        t = st.next_tensor()
        assert t.shape == ()
        assert t.nbytes == 8 == t.expected_nbytes


def test_empty_header_object(make_file):
    with SafeTensorsFile.open(make_file(b"{}")) as st:
        assert st.next_tensor() is None
        assert st.next_metadata() is None


def test_header_length_past_eof(make_file):
    path = make_file(b'{"x":{"dtype":"U8","shape":[1],"data_offsets":[0,1]}}', b"a", header_len=10_000)
    with pytest.raises(TruncatedFile):
        SafeTensorsFile.open(path)


def test_header_length_wraps_past_eof(make_file):
    with pytest.raises(TruncatedFile):
        SafeTensorsFile.open(make_file(b"{}", header_len=(1 << 64) - 1))


@pytest.mark.parametrize("content", [b"", b"\x02\x00\x00", b"\x00" * 7])
def test_file_too_small(tmp_path, content):
    path = tmp_path / "tiny.safetensors"
    path.write_bytes(content)
    with pytest.raises(TruncatedFile):
        SafeTensorsFile.open(str(path))


def test_missing_file(tmp_path):
    with pytest.raises(IoFailure) as exc:
        SafeTensorsFile.open(str(tmp_path / "non_existent"))
    assert isinstance(exc.value.__cause__, OSError)


def test_missing_leading_brace(make_file):
    path = make_file(b'"x":{"dtype":"F32","shape":[1],"data_offsets":[0,4]}}', bytes(4))
    with pytest.raises(MalformedHeader):
        SafeTensorsFile.open(path)


@pytest.mark.parametrize(
    "tensor,error",
    [
        ({"dtype": "F32", "dtype ": "F32"}, InvalidTensorDescriptor),
        ({"dtype": "F32", "data_offsets": [0, 4]}, InvalidTensorDescriptor),
        ({"dtype": "F32", "shape": [1], "data_offsets": [10, 5]}, InvalidByteRange),
        ({"dtype": "F32", "shape": [1], "data_offsets": [0, 400]}, InvalidByteRange),
    ],
)
def test_invalid_descriptor_fails_open(make_file, tensor, error):
    path = make_file({"a": {"dtype": "U8", "shape": [1], "data_offsets": [0, 1]}, "x": tensor}, bytes(16))
    with pytest.raises(error):
        SafeTensorsFile.open(path)


def test_duplicate_dtype_fails_open(make_file):
    path = make_file(
        b'{"x":{"dtype":"F32","dtype":"F16","shape":[1],"data_offsets":[0,4]}}', bytes(4)
    )
    with pytest.raises(InvalidTensorDescriptor):
        SafeTensorsFile.open(path)


def test_every_failure_is_an_open_failure(make_file):
    for path in (
        make_file(b"{", bytes(4)),
        make_file(b"{}", header_len=99),
        make_file({"x": {"dtype": "Q4", "shape": [1], "data_offsets": [0, 1]}}, b"a"),
    ):
        with pytest.raises(SafeTensorsError):
            SafeTensorsFile.open(path)


def test_close_is_idempotent_and_invalidates(two_tensor_file):
    st = SafeTensorsFile.open(two_tensor_file)
    t = st.next_tensor()
    st.close()
    st.close()
    assert st.closed
    with pytest.raises(RuntimeError):
        st.next_tensor()
    with pytest.raises(RuntimeError):
        st.rewind_metadata()
    with pytest.raises(ValueError):
        t.data.tobytes()


def test_close_with_caller_held_slice(two_tensor_file):
    st = SafeTensorsFile.open(two_tensor_file)
    head = st.next_tensor().data[:4]
    st.close()
    assert st.closed
    # The caller's own slice keeps the mapping alive until it goes away.
    assert head.tobytes() == struct.pack("<f", 1.0)
    head.release()


def test_failed_open_releases_mapping(make_file):
    # A tensor is fully parsed before the failure; its views must not pin the map.
    path = make_file(
        b'{"ok":{"dtype":"U8","shape":[1],"data_offsets":[0,1]},"bad":{"dtype":"U8"}}', b"a"
    )
    with pytest.raises(InvalidTensorDescriptor):
        SafeTensorsFile.open(path)
