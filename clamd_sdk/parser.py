"""Parsers turning clamd reply text into :mod:`clamd_sdk.models` objects.

All functions here are pure; they never touch a socket.
"""

from __future__ import annotations

from datetime import datetime, timezone

from clamd_sdk.exceptions import (
    ClamdDateParseError,
    ClamdMalformedResponseError,
    ClamdNumericParseError,
)
from clamd_sdk.models import (
    Clean,
    Found,
    ScanError,
    ScanResult,
    Signature,
    Stats,
    Version,
)

_U64_MAX = 2**64 - 1

# Day and month names are matched here; %a/%b would follow LC_TIME.
_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_NUMERIC_DATE_FORMAT = "%d %m %H:%M:%S %Y"


def parse_scan_results(text: str) -> list[ScanResult]:
    """Parse NUL-delimited scan records into verdicts, in order.

    Empty segments are dropped, so ``"a: OK\\0\\0"`` yields a single result.

    Args:
        text: Reply body of ``SCAN``, ``CONTSCAN``, ``MULTISCAN`` or
            ``INSTREAM``.

    Returns:
        One :data:`~clamd_sdk.models.ScanResult` per non-empty record.
    """
    return [_classify(segment) for segment in text.split("\0") if segment]


def _classify(segment: str) -> ScanResult:
    if segment.endswith("OK"):
        return Clean()

    if "FOUND" in segment:
        tokens = segment.split()
        path = tokens[0].rstrip(":")
        name_tokens = []
        for token in tokens[1:]:
            if token.startswith("FOUND"):
                break
            name_tokens.append(token)
        return Found(path=path, signature=parse_signature("".join(name_tokens)))

    return ScanError(message=segment)


def parse_signature(text: str) -> Signature:
    """Decompose a ``platform.category.virus-signum-sigversion`` name.

    Missing pieces are ``None``; this never raises.
    """
    name_part, _, version_part = text.partition("-")
    has_version = "-" in text

    names = name_part.split(".", 2)
    versions = version_part.split("-", 1) if has_version else []

    return Signature(
        platform=_nth(names, 0),
        category=_nth(names, 1),
        virus=_nth(names, 2),
        signum=_nth(versions, 0),
        sigversion=_nth(versions, 1),
        raw=text,
    )


def _nth(pieces: list[str], index: int) -> str | None:
    return pieces[index] if index < len(pieces) else None


def parse_version(text: str) -> Version:
    """Parse a ``<tag>/<build>/<date>`` reply.

    Raises:
        ClamdMalformedResponseError: If there are not exactly three fields.
        ClamdNumericParseError: If the build number is not an unsigned integer.
        ClamdDateParseError: If the release date does not match
            ``"%a %b %d %H:%M:%S %Y"`` with English names, or the weekday
            does not match the date.
    """
    fields = text.rstrip("\0").split("/")
    if len(fields) != 3:
        raise ClamdMalformedResponseError(
            f"Expected 3 '/'-separated fields in VERSION reply, got {len(fields)}",
            text,
        )

    tag, build, date = fields
    try:
        build_number = _to_u64(build)
    except ValueError as exc:
        raise ClamdNumericParseError(f"Invalid build number {build!r}", text) from exc

    try:
        release_date = _parse_release_date(date)
    except ValueError as exc:
        raise ClamdDateParseError(f"Invalid release date {date!r}", text) from exc

    return Version(version_tag=tag, build_number=build_number, release_date=release_date)


def _parse_release_date(text: str) -> datetime:
    """Parse a ctime-style date such as ``"Wed Aug  1 08:43:37 2018"`` as UTC.

    English names are required whatever the process locale, and the
    weekday must agree with the date.
    """
    pieces = text.split()
    if len(pieces) != 5:
        raise ValueError(f"expected 5 date fields, got {len(pieces)}")
    weekday, month, day, clock, year = pieces
    if month not in _MONTHS:
        raise ValueError(f"unknown month {month!r}")
    if weekday not in _WEEKDAYS:
        raise ValueError(f"unknown weekday {weekday!r}")

    numeric = f"{day} {_MONTHS.index(month) + 1} {clock} {year}"
    parsed = datetime.strptime(numeric, _NUMERIC_DATE_FORMAT)
    if _WEEKDAYS[parsed.weekday()] != weekday:
        raise ValueError(f"{weekday} does not match {parsed.date().isoformat()}")
    return parsed.replace(tzinfo=timezone.utc)


def _to_u64(text: str) -> int:
    # int() would also accept signs, whitespace and underscores.
    if not (text.isascii() and text.isdigit()):
        raise ValueError(f"not an unsigned integer: {text!r}")
    value = int(text)
    if value > _U64_MAX:
        raise ValueError(f"out of range for u64: {text!r}")
    return value


class _AnchorScanner:
    """Forward-only cursor extracting the text between literal anchors."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0

    def expect(self, prefix: str) -> None:
        if not self._text.startswith(prefix, self._pos):
            raise ValueError(f"expected {prefix!r} at offset {self._pos}")
        self._pos += len(prefix)

    def take_until(self, anchor: str, consume: bool = True) -> str:
        end = self._text.find(anchor, self._pos)
        if end == -1:
            raise ValueError(f"anchor {anchor!r} not found after offset {self._pos}")
        value = self._text[self._pos : end]
        self._pos = end + len(anchor) if consume else end
        return value

    def skip_past(self, anchor: str) -> None:
        self.take_until(anchor)

    def take_int(self, anchor: str) -> int:
        return _to_u64(self.take_until(anchor))


def parse_stats(text: str) -> Stats:
    """Parse a ``STATS`` reply block.

    Example input::

        POOLS: 1

        STATE: VALID PRIMARY
        THREADS: live 1  idle 0 max 12 idle-timeout 30
        QUEUE: 0 items
        ...
        MEMSTATS: heap 9.082M mmap 0.000M used 6.902M free 2.184M releasable 0.129M pools 1 pools_used 565.979M pools_total 565.999M
        END

    Raises:
        ClamdMalformedResponseError: If any anchor is missing or a counter
            is not an unsigned integer. No partial :class:`Stats` is built.
    """
    scanner = _AnchorScanner(text)
    try:
        scanner.expect("POOLS: ")
        pools = scanner.take_int("\n\nSTATE: ")
        state = scanner.take_until("\nTHREADS: live ")
        threads_live = scanner.take_int("  idle ")
        threads_idle = scanner.take_int(" max ")
        threads_max = scanner.take_int(" idle-timeout ")
        threads_idle_timeout_secs = scanner.take_int("\nQUEUE: ")
        queue = scanner.take_int(" items\n")
        scanner.skip_past("heap ")
        mem_heap = scanner.take_until(" mmap ")
        mem_mmap = scanner.take_until(" used ")
        mem_used = scanner.take_until(" free ")
        mem_free = scanner.take_until(" releasable ")
        mem_releasable = scanner.take_until(" pools ")
        scanner.skip_past("pools_used ")
        pools_used = scanner.take_until(" pools_total ")
        pools_total = scanner.take_until("\n", consume=False)
    except ValueError as exc:
        raise ClamdMalformedResponseError(f"Malformed STATS reply: {exc}", text) from exc

    return Stats(
        pools=pools,
        state=state,
        threads_live=threads_live,
        threads_idle=threads_idle,
        threads_max=threads_max,
        threads_idle_timeout_secs=threads_idle_timeout_secs,
        queue=queue,
        mem_heap=mem_heap,
        mem_mmap=mem_mmap,
        mem_used=mem_used,
        mem_free=mem_free,
        mem_releasable=mem_releasable,
        pools_used=pools_used,
        pools_total=pools_total,
    )
