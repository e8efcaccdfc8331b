"""Wire-level constants and ``INSTREAM`` chunk framing.

Shared by the sync and async clients. Commands use the ``z`` prefix, so
every command and every record in a reply is NUL-terminated.
"""

from __future__ import annotations

import struct
from typing import BinaryIO, Iterable, Iterator

from clamd_sdk.exceptions import ClamdOversizedChunkError

DEFAULT_PORT = 3310
CHUNK_SIZE = 4096
MAX_CHUNK_LENGTH = 2**32 - 1

PING = b"zPING\0"
VERSION = b"zVERSION\0"
RELOAD = b"zRELOAD\0"
STATS = b"zSTATS\0"
SHUTDOWN = b"zSHUTDOWN\0"
INSTREAM = b"zINSTREAM\0"

END_OF_STREAM = b"\0\0\0\0"

_LENGTH = struct.Struct("!I")


def path_command(name: str, path: str) -> bytes:
    """Build a path-scanning command such as ``zSCAN /tmp/x\\0``."""
    return f"z{name} {path}\0".encode("utf-8")


def chunk_header(length: int) -> bytes:
    """Return the 4-byte big-endian length prefix for a chunk.

    Raises:
        ClamdOversizedChunkError: If *length* does not fit in 32 bits.
    """
    if length > MAX_CHUNK_LENGTH:
        raise ClamdOversizedChunkError(length)
    return _LENGTH.pack(length)


def split_buffer(data: bytes, chunk_size: int = CHUNK_SIZE) -> Iterator[memoryview]:
    """Yield consecutive *chunk_size* windows over *data* without copying."""
    view = memoryview(data)
    for offset in range(0, len(view), chunk_size):
        yield view[offset : offset + chunk_size]


def read_chunks(reader: BinaryIO, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """Pull chunks of up to *chunk_size* bytes from *reader* until EOF.

    Only an empty read ends the stream. A short read is sent as-is and
    reading continues, so sources that return partial reads before EOF
    (sockets, pipes) are streamed in full.
    """
    while True:
        chunk = reader.read(chunk_size)
        if not chunk:
            return
        yield chunk


def non_empty(chunks: Iterable[bytes]) -> Iterator[bytes]:
    """Drop empty chunks; a zero-length frame would end the stream early."""
    for chunk in chunks:
        if len(chunk):
            yield chunk
