"""Logging setup tests."""

import io

from loguru import logger

from stmap import SafeTensorsFile
from stmap.logging import configure_logging


def test_debug_logs_open_and_close(two_tensor_file):
    buf = io.StringIO()
    configure_logging(debug=True, sink=buf)
    try:
        with SafeTensorsFile.open(two_tensor_file):
            pass
    finally:
        logger.remove()
    out = buf.getvalue()
    assert "Opened" in out
    assert "tensors=2 metadata=2" in out
    assert "Closed" in out
    assert "\x1b[" not in out


def test_info_level_hides_debug(two_tensor_file):
    buf = io.StringIO()
    configure_logging(sink=buf)
    try:
        st = SafeTensorsFile.open(two_tensor_file)
        pinned = st.next_tensor().data[:1]
        st.close()
        pinned.release()
    finally:
        logger.remove()
    out = buf.getvalue()
    assert "Opened" not in out
    assert "still referenced" in out
