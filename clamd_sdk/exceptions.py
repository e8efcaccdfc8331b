"""Exception hierarchy for the clamd SDK."""

from __future__ import annotations


class ClamdError(Exception):
    """Base exception for all clamd SDK errors."""


class ClamdAddressResolutionError(ClamdError):
    """Raised when the daemon host/port cannot be resolved to a socket address."""


class ClamdConnectionError(ClamdError):
    """Raised when a TCP connection to the daemon cannot be opened."""


class ClamdCommandError(ClamdError):
    """Raised when writing a command or reading its reply fails.

    Also covers replies that are not valid UTF-8.
    """


class ClamdOversizedChunkError(ClamdError):
    """Raised when an ``INSTREAM`` chunk does not fit the 32-bit length prefix.

    Nothing belonging to the offending chunk is written to the connection.
    """

    def __init__(self, length: int) -> None:
        super().__init__(f"Chunk of {length} bytes exceeds the 32-bit frame limit")
        self.length = length


class ClamdResponseError(ClamdError):
    """Base class for replies the SDK could not interpret.

    Attributes:
        raw: The offending response text, verbatim.
    """

    def __init__(self, message: str, raw: str) -> None:
        super().__init__(message)
        self.raw = raw


class ClamdMalformedResponseError(ClamdResponseError):
    """Raised when a reply does not match the expected grammar."""


class ClamdNumericParseError(ClamdResponseError):
    """Raised when a numeric field of a reply is not an unsigned 64-bit integer."""


class ClamdDateParseError(ClamdResponseError):
    """Raised when the release date of a ``VERSION`` reply cannot be parsed."""
