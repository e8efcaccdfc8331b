"""Address resolution and per-operation TCP connections."""

from __future__ import annotations

import logging
import socket
from contextlib import contextmanager
from typing import Iterator, Optional

from clamd_sdk.exceptions import ClamdAddressResolutionError, ClamdConnectionError
from clamd_sdk.models import ClientConfig

logger = logging.getLogger(__name__)


def build_config(host: str, port: int, connect_timeout: Optional[float] = None) -> ClientConfig:
    """Resolve *host*:*port* once and freeze the result into a :class:`ClientConfig`.

    The first address returned by the resolver is used for every later
    connection; the host is never re-resolved.

    Raises:
        ClamdAddressResolutionError: If resolution fails or yields nothing.
    """
    try:
        candidates = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    except (OSError, UnicodeError) as exc:
        raise ClamdAddressResolutionError(f"Cannot resolve {host}:{port}: {exc}") from exc
    if not candidates:
        raise ClamdAddressResolutionError(f"No socket address found for {host}:{port}")

    family, _type, _proto, _canonname, sockaddr = candidates[0]
    logger.debug("Resolved clamd address", extra={"host": host, "port": port, "sockaddr": sockaddr})
    return ClientConfig(
        host=host,
        port=port,
        family=family,
        sockaddr=tuple(sockaddr),
        connect_timeout=connect_timeout,
    )


def connect(config: ClientConfig) -> socket.socket:
    """Open a new TCP connection to the daemon.

    The configured timeout bounds the connect phase only; the returned
    socket is in blocking mode.

    Raises:
        ClamdConnectionError: If the connection cannot be established.
    """
    sock = socket.socket(config.family, socket.SOCK_STREAM)
    try:
        if config.connect_timeout is not None:
            sock.settimeout(config.connect_timeout)
        sock.connect(config.sockaddr)
        sock.settimeout(None)
    except OSError as exc:
        sock.close()
        raise ClamdConnectionError(f"Cannot connect to {config.host}:{config.port}: {exc}") from exc
    return sock


@contextmanager
def connection(config: ClientConfig) -> Iterator[socket.socket]:
    """Context manager yielding a fresh connection that is always closed."""
    sock = connect(config)
    try:
        yield sock
    finally:
        sock.close()
