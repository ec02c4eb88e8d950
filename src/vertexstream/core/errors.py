"""Custom exception types used by vertexstream core utilities."""

from __future__ import annotations


class AdapterError(RuntimeError):
    """Raised when an adapter cannot fulfil a request."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(AdapterError):
    """Raised when a request cannot be sent because configuration is missing."""


class TransportError(AdapterError):
    """Raised when the HTTP exchange fails or returns a non-success status."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ChunkDecodeError(AdapterError):
    """Raised for a single SSE line or chunk that cannot be decoded.

    Parsers recover from this error locally; it never aborts a stream.
    """

    def __init__(self, message: str, *, payload: str | None = None) -> None:
        super().__init__(message)
        self.payload = payload


__all__ = ["AdapterError", "ChunkDecodeError", "ConfigError", "TransportError"]
