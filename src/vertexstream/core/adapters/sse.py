"""Incremental server-sent-event parser for ``alt=sse`` responses."""

from __future__ import annotations

import codecs
import json
import logging
from typing import Any

from ..errors import ChunkDecodeError

LOGGER = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class SSEStreamParser:
    """Turn arbitrarily chunked bytes into decoded JSON objects.

    Bytes are decoded incrementally, so a multi-byte character or a line may
    be split across reads. Only complete lines are parsed; the trailing
    partial line stays buffered until the next :meth:`feed` or :meth:`flush`.
    """

    def __init__(self, *, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""
        self.skipped = 0

    def feed(self, data: bytes) -> list[dict[str, Any]]:
        """Consume one read from the transport and return the chunks it completed."""

        if not data:
            return []
        self._pending += self._decoder.decode(data)
        lines = self._pending.split("\n")
        self._pending = lines.pop()
        return self._parse_lines(lines)

    def flush(self) -> list[dict[str, Any]]:
        """Parse whatever remains once the transport reports end of stream."""

        tail = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        if not tail:
            return []
        return self._parse_lines(tail.split("\n"))

    def _parse_lines(self, lines: list[str]) -> list[dict[str, Any]]:
        chunks: list[dict[str, Any]] = []
        for line in lines:
            try:
                chunk = self._parse_line(line)
            except ChunkDecodeError as exc:
                self.skipped += 1
                LOGGER.warning("skipping undecodable SSE line: %s", exc)
                continue
            if chunk is not None:
                chunks.append(chunk)
        return chunks

    def _parse_line(self, line: str) -> dict[str, Any] | None:
        line = line.rstrip("\r")
        if not line.strip() or line.startswith(":"):
            return None
        if not line.startswith(DATA_PREFIX):
            return None

        payload = line[len(DATA_PREFIX):].strip()
        if not payload or payload == DONE_SENTINEL:
            return None

        try:
            decoded = json.loads(payload)
        except json.JSONDecodeError as exc:
            msg = f"invalid JSON at column {exc.colno}: {exc.msg}"
            raise ChunkDecodeError(msg, payload=payload) from exc

        if not isinstance(decoded, dict):
            msg = f"expected a JSON object, got {type(decoded).__name__}"
            raise ChunkDecodeError(msg, payload=payload)
        return decoded


__all__ = ["DATA_PREFIX", "DONE_SENTINEL", "SSEStreamParser"]
