"""Synchronous client for the clamd TCP protocol."""

from __future__ import annotations

import logging
import socket
from typing import BinaryIO, Iterable, Optional

from clamd_sdk import protocol
from clamd_sdk.connection import build_config, connection
from clamd_sdk.exceptions import (
    ClamdCommandError,
    ClamdError,
    ClamdMalformedResponseError,
)
from clamd_sdk.models import ClientConfig, ScanResult, Stats, Version
from clamd_sdk.parser import parse_scan_results, parse_stats, parse_version

logger = logging.getLogger(__name__)

_RECV_SIZE = 4096


class ClamdClient:
    """Synchronous client for a ``clamd`` daemon listening on TCP.

    Every operation opens its own connection and closes it before
    returning, so one client can be shared between threads. Replies are
    read until the daemon closes the connection.

    Args:
        host: Host name or address of the daemon.
        port: TCP port of the daemon.
        timeout: Optional connect timeout in seconds. Reads and writes are
            never bounded.

    Raises:
        ClamdAddressResolutionError: If *host*:*port* cannot be resolved.

    Example::

        client = ClamdClient("localhost", 3310, timeout=5)
        result = client.scan_bytes(b"hello")
        if isinstance(result, Found):
            print(result.signature.raw)
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = protocol.DEFAULT_PORT,
        timeout: Optional[float] = None,
    ) -> None:
        self._config = build_config(host, port, timeout)

    @property
    def config(self) -> ClientConfig:
        return self._config

    def ping(self) -> bool:
        """Check whether the daemon answers ``PING`` with ``PONG``.

        Returns:
            ``True`` when the daemon is alive, ``False`` on any clamd error.
        """
        try:
            reply = self._command(protocol.PING)
        except ClamdError as exc:
            logger.warning("clamd ping failed: %s", exc)
            return False
        return reply.rstrip("\0") == "PONG"

    def version(self) -> Version:
        """Retrieve the engine version and signature database build.

        Raises:
            ClamdMalformedResponseError: If the reply has the wrong shape.
            ClamdNumericParseError: If the build number is invalid.
            ClamdDateParseError: If the release date is invalid.
        """
        return parse_version(self._command(protocol.VERSION))

    def reload(self) -> str:
        """Ask the daemon to reload its signature databases."""
        return self._command(protocol.RELOAD)

    def scan_path(self, path: str, continue_on_virus: bool = False) -> list[ScanResult]:
        """Scan a file or directory on the daemon's filesystem.

        Args:
            path: Path as seen by the daemon.
            continue_on_virus: Use ``CONTSCAN`` and keep going after the
                first infected file instead of ``SCAN``.

        Returns:
            One result per record in the reply.
        """
        name = "CONTSCAN" if continue_on_virus else "SCAN"
        return parse_scan_results(self._command(protocol.path_command(name, path)))

    def multiscan_path(self, path: str) -> list[ScanResult]:
        """Scan *path* with ``MULTISCAN``, letting the daemon use its thread pool."""
        return parse_scan_results(self._command(protocol.path_command("MULTISCAN", path)))

    def scan_stream(self, reader: BinaryIO, chunk_size: int = protocol.CHUNK_SIZE) -> ScanResult:
        """Stream the contents of a readable binary object through ``INSTREAM``.

        Args:
            reader: Any object with a ``read(n)`` method returning bytes.
            chunk_size: Read window in bytes.

        Returns:
            The verdict for the streamed content.

        Raises:
            ClamdMalformedResponseError: If the reply holds no verdict.
        """
        return self._instream(protocol.read_chunks(reader, chunk_size))

    def scan_chunks(self, chunks: Iterable[bytes]) -> ScanResult:
        """Stream caller-supplied chunks through ``INSTREAM``, one frame each.

        Raises:
            ClamdOversizedChunkError: If a chunk exceeds the 32-bit frame limit.
        """
        return self._instream(protocol.non_empty(chunks))

    def scan_bytes(self, data: bytes) -> ScanResult:
        """Scan an in-memory buffer through ``INSTREAM``."""
        return self._instream(protocol.split_buffer(data))

    def scan_string(self, text: str, encoding: str = "utf-8") -> ScanResult:
        """Scan *text* encoded with *encoding* through ``INSTREAM``."""
        return self.scan_bytes(text.encode(encoding))

    def stats(self) -> Stats:
        """Retrieve pool, thread, queue and memory statistics.

        Raises:
            ClamdMalformedResponseError: If the reply cannot be parsed.
        """
        return parse_stats(self._command(protocol.STATS))

    def shutdown(self) -> str:
        """Ask the daemon to shut down."""
        return self._command(protocol.SHUTDOWN)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _command(self, command: bytes) -> str:
        # The daemon closes the connection once its reply is complete.
        with connection(self._config) as sock:
            logger.debug("Sending clamd command", extra={"command": command.rstrip(b"\0")})
            _send(sock, command)
            return _read_reply(sock)

    def _instream(self, chunks: Iterable[bytes]) -> ScanResult:
        with connection(self._config) as sock:
            _send(sock, protocol.INSTREAM)
            total = 0
            for chunk in chunks:
                header = protocol.chunk_header(len(chunk))
                _send(sock, header)
                _send(sock, chunk)
                total += len(chunk)
            _send(sock, protocol.END_OF_STREAM)
            logger.debug("Streamed content to clamd", extra={"bytes_sent": total})
            reply = _read_reply(sock)

        results = parse_scan_results(reply)
        if not results:
            raise ClamdMalformedResponseError("INSTREAM reply holds no scan result", reply)
        return results[0]


def _send(sock: socket.socket, data: bytes) -> None:
    try:
        sock.sendall(data)
    except OSError as exc:
        raise ClamdCommandError(f"Failed to write to clamd: {exc}") from exc


def _read_reply(sock: socket.socket) -> str:
    buf = bytearray()
    try:
        while True:
            piece = sock.recv(_RECV_SIZE)
            if not piece:
                break
            buf.extend(piece)
        return buf.decode("utf-8")
    except OSError as exc:
        raise ClamdCommandError(f"Failed to read clamd reply: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise ClamdCommandError(f"clamd reply is not valid UTF-8: {exc}") from exc
