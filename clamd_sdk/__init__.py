"""clamd SDK: Python client for the ClamAV daemon TCP protocol."""

import logging

from clamd_sdk.client import ClamdClient
from clamd_sdk.exceptions import (
    ClamdAddressResolutionError,
    ClamdCommandError,
    ClamdConnectionError,
    ClamdDateParseError,
    ClamdError,
    ClamdMalformedResponseError,
    ClamdNumericParseError,
    ClamdOversizedChunkError,
    ClamdResponseError,
)
from clamd_sdk.models import (
    Clean,
    ClientConfig,
    Found,
    ScanError,
    ScanResult,
    Signature,
    Stats,
    Version,
)
from clamd_sdk.parser import parse_scan_results, parse_signature, parse_stats, parse_version

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "ClamdClient",
    "AsyncClamdClient",
    "ClientConfig",
    "ScanResult",
    "Clean",
    "Found",
    "ScanError",
    "Signature",
    "Version",
    "Stats",
    "parse_scan_results",
    "parse_signature",
    "parse_version",
    "parse_stats",
    "ClamdError",
    "ClamdAddressResolutionError",
    "ClamdConnectionError",
    "ClamdCommandError",
    "ClamdOversizedChunkError",
    "ClamdResponseError",
    "ClamdMalformedResponseError",
    "ClamdNumericParseError",
    "ClamdDateParseError",
]


def __getattr__(name: str) -> object:
    """Lazy-import the async client so ``asyncio`` is only loaded when used."""
    if name == "AsyncClamdClient":
        from clamd_sdk.async_client import AsyncClamdClient

        return AsyncClamdClient
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
