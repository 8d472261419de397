"""
Error taxonomy.

- `InvalidParameterError`: bad buffer distance/unit; rejected before any network call.
- `TransportError`: backend unreachable or answering with a non-2xx status.
- `ParseError`: the backend answered, but the payload could not be decoded into features.

An empty result set is not an error; it is the `Empty` query outcome.
"""

from __future__ import annotations


class BufferSearchError(Exception):
    """Base class for all buffersearch errors."""

    code = "BUFFERSEARCH_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidParameterError(BufferSearchError, ValueError):
    code = "INVALID_PARAMETER"


class TransportError(BufferSearchError):
    code = "TRANSPORT_ERROR"

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ParseError(BufferSearchError):
    code = "PARSE_ERROR"
