"""Tool call identity across Vertex request/response round trips.

Vertex refuses an ``id`` on outbound ``functionCall`` parts, yet a caller
must be able to match a later tool result to the exact call that produced it.
The caller's id therefore travels inside the call arguments under a reserved
key. This module is the only place that writes or reads that key.
"""

from __future__ import annotations

import time
from itertools import count
from typing import Any, Callable

from ..message import ToolCall, thaw_json_structure
from .wire import FunctionCallPart

MARKER_KEY = "__vertexstream_tool_call_id__"


def monotonic_seq(*, start: int = 1) -> Callable[[], int]:
    """Return a callable that yields strictly increasing integers."""

    counter = count(start)

    def _next() -> int:
        return next(counter)

    return _next


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def encode_tool_call(call: ToolCall) -> dict[str, Any]:
    """Return the wire ``args`` for ``call``: its arguments plus the id marker."""

    arguments = thaw_json_structure(call.arguments)
    arguments[MARKER_KEY] = call.id
    return arguments


class ToolCallIdentityResolver:
    """Resolve ids for function calls received during a single stream.

    Resolution order is the marker carried in ``args``, then the server
    supplied id, then a synthesized ``<name>_<timestamp>_<seq>`` id. A server
    id already issued earlier in the same stream is treated as absent.

    Create one resolver per request; the sequence counter is not shared.
    """

    def __init__(
        self,
        *,
        counter: Callable[[], int] | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._next_seq = counter or monotonic_seq()
        self._clock = clock or _now_ms
        self._issued: set[str] = set()

    def resolve(self, part: FunctionCallPart) -> ToolCall:
        arguments = dict(part.args)
        marker = arguments.pop(MARKER_KEY, None)

        if isinstance(marker, str) and marker:
            call_id = marker
        elif part.id and part.id not in self._issued:
            call_id = part.id
        else:
            call_id = self._synthesize(part.name)

        self._issued.add(call_id)
        return ToolCall(
            id=call_id,
            name=part.name,
            arguments=arguments,
            thought_signature=part.thought_signature,
        )

    def _synthesize(self, name: str) -> str:
        prefix = name or "call"
        while True:
            candidate = f"{prefix}_{self._clock()}_{self._next_seq()}"
            if candidate not in self._issued:
                return candidate


__all__ = ["MARKER_KEY", "ToolCallIdentityResolver", "encode_tool_call", "monotonic_seq"]
