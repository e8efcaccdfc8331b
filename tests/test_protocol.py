"""Tests for clamd_sdk.protocol framing helpers."""

from __future__ import annotations

import io

import pytest

from clamd_sdk import protocol
from clamd_sdk.exceptions import ClamdOversizedChunkError


class TestChunkHeader:
    def test_big_endian(self):
        assert protocol.chunk_header(4096) == b"\x00\x00\x10\x00"

    def test_zero_is_end_of_stream(self):
        assert protocol.chunk_header(0) == protocol.END_OF_STREAM

    def test_max_length(self):
        assert protocol.chunk_header(2**32 - 1) == b"\xff\xff\xff\xff"

    def test_oversized(self):
        with pytest.raises(ClamdOversizedChunkError, match="4294967296"):
            protocol.chunk_header(2**32)


class TestPathCommand:
    def test_scan(self):
        assert protocol.path_command("SCAN", "/tmp/a b") == b"zSCAN /tmp/a b\0"

    def test_non_ascii_path(self):
        assert protocol.path_command("CONTSCAN", "/tmp/ü") == "zCONTSCAN /tmp/ü\0".encode("utf-8")


class TestSplitBuffer:
    def test_windows(self):
        sizes = [len(c) for c in protocol.split_buffer(b"x" * 9000)]
        assert sizes == [4096, 4096, 808]

    def test_empty(self):
        assert list(protocol.split_buffer(b"")) == []


class TestReadChunks:
    def test_stops_on_empty_read(self):
        chunks = list(protocol.read_chunks(io.BytesIO(b"y" * 5000)))
        assert [len(c) for c in chunks] == [4096, 904]

    def test_custom_window(self):
        chunks = list(protocol.read_chunks(io.BytesIO(b"abcdefg"), chunk_size=3))
        assert chunks == [b"abc", b"def", b"g"]


def test_non_empty_drops_empty_chunks():
    assert list(protocol.non_empty([b"", b"a", bytearray(), b"b"])) == [b"a", b"b"]
