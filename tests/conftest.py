"""Shared test fixtures."""

from __future__ import annotations

import socket
import struct
import threading
from typing import Callable, Iterator

import pytest

STATS_REPLY = (
    "POOLS: 1\n\nSTATE: VALID PRIMARY\nTHREADS: live 1  idle 0 max 12 idle-timeout 30\n"
    "QUEUE: 0 items\n\tSTATS 0.000394\n\n"
    "MEMSTATS: heap 9.082M mmap 0.000M used 6.902M free 2.184M releasable 0.129M "
    "pools 1 pools_used 565.979M pools_total 565.999M\nEND\0"
)

VERSION_REPLY = "ClamAV 0.100.0/24802/Wed Aug  1 08:43:37 2018\0"


def _recv_exact(conn: socket.socket, n: int) -> bytes:
    buf = bytearray()
    while len(buf) < n:
        chunk = conn.recv(n - len(buf))
        if not chunk:
            raise EOFError("connection closed")
        buf.extend(chunk)
    return bytes(buf)


def _recv_until(conn: socket.socket, delim: bytes) -> bytes:
    buf = bytearray()
    while not buf.endswith(delim):
        b = conn.recv(1)
        if not b:
            raise EOFError("connection closed")
        buf.extend(b)
    return bytes(buf)


class FakeClamd:
    """Loopback stand-in for clamd that replies with canned bytes.

    Records every command, every ``INSTREAM`` frame length (including the
    terminating zero) and the reassembled payload.
    """

    def __init__(self, reply: bytes) -> None:
        self.reply = reply
        self.commands: list[bytes] = []
        self.frames: list[int] = []
        self.payload = bytearray()
        self._stop = threading.Event()
        self._server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._server.bind(("127.0.0.1", 0))
        self._server.listen(4)
        self._server.settimeout(0.1)
        self.port = self._server.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self) -> None:
        while not self._stop.is_set():
            try:
                conn, _ = self._server.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            with conn:
                conn.settimeout(5)
                try:
                    self._handle(conn)
                except (EOFError, OSError):
                    continue

    def _handle(self, conn: socket.socket) -> None:
        command = _recv_until(conn, b"\0")
        self.commands.append(command)
        if command == b"zINSTREAM\0":
            while True:
                (length,) = struct.unpack("!I", _recv_exact(conn, 4))
                self.frames.append(length)
                if length == 0:
                    break
                self.payload.extend(_recv_exact(conn, length))
        conn.sendall(self.reply)

    def close(self) -> None:
        self._stop.set()
        self._thread.join(timeout=2)
        self._server.close()


class ResettingClamd(FakeClamd):
    """Reads one command, then aborts the connection with a TCP reset."""

    def __init__(self) -> None:
        super().__init__(b"")

    def _handle(self, conn: socket.socket) -> None:
        self.commands.append(_recv_until(conn, b"\0"))
        # SO_LINGER with a zero timeout turns close() into an RST.
        conn.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0))


@pytest.fixture()
def resetting_clamd() -> Iterator[ResettingClamd]:
    server = ResettingClamd()
    yield server
    server.close()


@pytest.fixture()
def fake_clamd() -> Iterator[Callable[[bytes], FakeClamd]]:
    """Factory starting a :class:`FakeClamd` with the given reply."""
    servers: list[FakeClamd] = []

    def start(reply: bytes) -> FakeClamd:
        server = FakeClamd(reply)
        servers.append(server)
        return server

    yield start
    for server in servers:
        server.close()


@pytest.fixture()
def closed_port() -> int:
    """A loopback port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture()
def stats_reply() -> str:
    return STATS_REPLY


@pytest.fixture()
def version_reply() -> str:
    return VERSION_REPLY


@pytest.fixture()
def sample_bytes() -> bytes:
    return b"Hello, ClamAV!"


@pytest.fixture()
def eicar_bytes() -> bytes:
    """EICAR anti-malware test string (safe; every AV recognises it)."""
    return b"X5O!P%@AP[4\\PZX54(P^)7CC)7}$EICAR-STANDARD-ANTIVIRUS-TEST-FILE!$H+H*"
