"""Asynchronous client for the clamd TCP protocol (``asyncio`` streams)."""

from __future__ import annotations

import asyncio
import inspect
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Optional

from clamd_sdk import protocol
from clamd_sdk.connection import build_config
from clamd_sdk.exceptions import (
    ClamdCommandError,
    ClamdConnectionError,
    ClamdError,
    ClamdMalformedResponseError,
)
from clamd_sdk.models import ClientConfig, ScanResult, Stats, Version
from clamd_sdk.parser import parse_scan_results, parse_stats, parse_version

logger = logging.getLogger(__name__)


class AsyncClamdClient:
    """Asynchronous client for a ``clamd`` daemon listening on TCP.

    Offers the same operations as :class:`~clamd_sdk.client.ClamdClient`.
    Each call opens and closes its own connection.

    Args:
        host: Host name or address of the daemon.
        port: TCP port of the daemon.
        timeout: Optional connect timeout in seconds.

    Example::

        client = AsyncClamdClient("localhost")
        if await client.ping():
            result = await client.scan_bytes(payload)
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

    async def ping(self) -> bool:
        """Check whether the daemon answers ``PING`` with ``PONG``."""
        try:
            reply = await self._command(protocol.PING)
        except ClamdError as exc:
            logger.warning("clamd ping failed: %s", exc)
            return False
        return reply.rstrip("\0") == "PONG"

    async def version(self) -> Version:
        """Retrieve the engine version and signature database build."""
        return parse_version(await self._command(protocol.VERSION))

    async def reload(self) -> str:
        return await self._command(protocol.RELOAD)

    async def scan_path(self, path: str, continue_on_virus: bool = False) -> list[ScanResult]:
        """Scan a path on the daemon's filesystem with ``SCAN`` or ``CONTSCAN``."""
        name = "CONTSCAN" if continue_on_virus else "SCAN"
        return parse_scan_results(await self._command(protocol.path_command(name, path)))

    async def multiscan_path(self, path: str) -> list[ScanResult]:
        return parse_scan_results(await self._command(protocol.path_command("MULTISCAN", path)))

    async def scan_stream(self, reader: Any, chunk_size: int = protocol.CHUNK_SIZE) -> ScanResult:
        """Stream a readable object through ``INSTREAM``.

        *reader* may be a plain binary file object or an object whose
        ``read(n)`` is a coroutine, such as :class:`asyncio.StreamReader`.
        A blocking ``read`` runs in a worker thread so the event loop is
        not stalled by disk or pipe I/O.
        """
        read_is_async = inspect.iscoroutinefunction(reader.read)

        async def pull() -> AsyncIterator[bytes]:
            while True:
                if read_is_async:
                    chunk = await reader.read(chunk_size)
                else:
                    chunk = await asyncio.to_thread(reader.read, chunk_size)
                    if inspect.isawaitable(chunk):
                        chunk = await chunk
                if not chunk:
                    return
                yield chunk

        return await self._instream(pull())

    async def scan_chunks(self, chunks: Iterable[bytes]) -> ScanResult:
        """Stream caller-supplied chunks through ``INSTREAM``, one frame each."""
        return await self._instream(_aiter(protocol.non_empty(chunks)))

    async def scan_bytes(self, data: bytes) -> ScanResult:
        """Scan an in-memory buffer through ``INSTREAM``."""
        return await self._instream(_aiter(protocol.split_buffer(data)))

    async def scan_string(self, text: str, encoding: str = "utf-8") -> ScanResult:
        return await self.scan_bytes(text.encode(encoding))

    async def stats(self) -> Stats:
        """Retrieve pool, thread, queue and memory statistics."""
        return parse_stats(await self._command(protocol.STATS))

    async def shutdown(self) -> str:
        return await self._command(protocol.SHUTDOWN)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[tuple[asyncio.StreamReader, asyncio.StreamWriter]]:
        config = self._config
        opening = asyncio.open_connection(config.sockaddr[0], config.sockaddr[1])
        try:
            if config.connect_timeout is not None:
                reader, writer = await asyncio.wait_for(opening, config.connect_timeout)
            else:
                reader, writer = await opening
        except (OSError, asyncio.TimeoutError) as exc:
            raise ClamdConnectionError(
                f"Cannot connect to {config.host}:{config.port}: {exc!r}"
            ) from exc

        try:
            yield reader, writer
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as exc:
                logger.debug("Error while closing clamd connection: %s", exc)

    async def _command(self, command: bytes) -> str:
        async with self._connection() as (reader, writer):
            logger.debug("Sending clamd command", extra={"command": command.rstrip(b"\0")})
            await _send(writer, command)
            return await _read_reply(reader)

    async def _instream(self, chunks: AsyncIterator[Any]) -> ScanResult:
        async with self._connection() as (reader, writer):
            await _send(writer, protocol.INSTREAM)
            total = 0
            async for chunk in chunks:
                header = protocol.chunk_header(len(chunk))
                await _send(writer, header + bytes(chunk))
                total += len(chunk)
            await _send(writer, protocol.END_OF_STREAM)
            logger.debug("Streamed content to clamd", extra={"bytes_sent": total})
            reply = await _read_reply(reader)

        results = parse_scan_results(reply)
        if not results:
            raise ClamdMalformedResponseError("INSTREAM reply holds no scan result", reply)
        return results[0]


async def _aiter(chunks: Iterable[Any]) -> AsyncIterator[Any]:
    for chunk in chunks:
        yield chunk


async def _send(writer: asyncio.StreamWriter, data: bytes) -> None:
    try:
        writer.write(data)
        await writer.drain()
    except OSError as exc:
        raise ClamdCommandError(f"Failed to write to clamd: {exc}") from exc


async def _read_reply(reader: asyncio.StreamReader) -> str:
    try:
        raw = await reader.read()
    except OSError as exc:
        raise ClamdCommandError(f"Failed to read clamd reply: {exc}") from exc
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ClamdCommandError(f"clamd reply is not valid UTF-8: {exc}") from exc
