"""Data models for clamd responses and client configuration."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Union


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Resolved connection settings, fixed for the lifetime of a client.

    Attributes:
        host: Host name or address as given by the caller.
        port: TCP port as given by the caller.
        family: Address family of the resolved socket address.
        sockaddr: Socket address passed to ``connect()``.
        connect_timeout: Seconds allowed for the connect phase, or ``None``
            for an unbounded connect.
    """

    host: str
    port: int
    family: int
    sockaddr: tuple[Any, ...]
    connect_timeout: Optional[float] = None


@dataclass(frozen=True, slots=True)
class Signature:
    """Malware signature name, decomposed on a best-effort basis.

    A name such as ``Win.Test.EICAR_HDB-1`` splits into platform ``Win``,
    category ``Test``, virus ``EICAR_HDB`` and signum ``1``. Names that do
    not follow this shape leave the trailing fields as ``None``.

    Attributes:
        raw: The signature name exactly as reported by the daemon.
    """

    platform: Optional[str]
    category: Optional[str]
    virus: Optional[str]
    signum: Optional[str]
    sigversion: Optional[str]
    raw: str


@dataclass(frozen=True, slots=True)
class Clean:
    """The scanned item is clean (``<path>: OK``)."""


@dataclass(frozen=True, slots=True)
class Found:
    """A signature matched (``<path>: <signature> FOUND``).

    Attributes:
        path: Scanned path (``stream`` for ``INSTREAM`` scans).
        signature: The matched signature.
    """

    path: str
    signature: Signature


@dataclass(frozen=True, slots=True)
class ScanError:
    """The daemon reported a problem instead of a verdict.

    Attributes:
        message: The full record text, e.g. ``"/tmp/x: lstat() failed"``.
    """

    message: str


ScanResult = Union[Clean, Found, ScanError]


@dataclass(frozen=True, slots=True)
class Version:
    """Engine and signature database version reported by ``VERSION``.

    Attributes:
        version_tag: Engine version, e.g. ``"ClamAV 0.100.0"``.
        build_number: Signature database build number.
        release_date: Signature database date, timezone-aware UTC.
    """

    version_tag: str
    build_number: int
    release_date: datetime


@dataclass(frozen=True, slots=True)
class Stats:
    """Pool, thread, queue and memory statistics reported by ``STATS``.

    Memory fields are kept verbatim with their unit suffix (``"9.082M"``).
    """

    pools: int
    state: str
    threads_live: int
    threads_idle: int
    threads_max: int
    threads_idle_timeout_secs: int
    queue: int
    mem_heap: str
    mem_mmap: str
    mem_used: str
    mem_free: str
    mem_releasable: str
    pools_used: str
    pools_total: str
