"""Canonical streaming event schema and base iterator primitives."""

from __future__ import annotations

import abc
import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, AsyncIterator, ClassVar, Deque, Dict, List, Mapping, Optional, Protocol, Union

from ..errors import AdapterError
from ..message import AssistantMessage, StopReason, ToolCall

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StartEvent:
    """First event of every stream that reached the network."""

    type: ClassVar[str] = "start"

    partial: AssistantMessage


@dataclass(frozen=True, slots=True)
class TextStartEvent:
    type: ClassVar[str] = "text_start"

    content_index: int
    partial: AssistantMessage


@dataclass(frozen=True, slots=True)
class TextDeltaEvent:
    type: ClassVar[str] = "text_delta"

    content_index: int
    delta: str
    partial: AssistantMessage


@dataclass(frozen=True, slots=True)
class TextEndEvent:
    type: ClassVar[str] = "text_end"

    content_index: int
    content: str
    partial: AssistantMessage


@dataclass(frozen=True, slots=True)
class ThinkingStartEvent:
    type: ClassVar[str] = "thinking_start"

    content_index: int
    partial: AssistantMessage


@dataclass(frozen=True, slots=True)
class ThinkingDeltaEvent:
    type: ClassVar[str] = "thinking_delta"

    content_index: int
    delta: str
    partial: AssistantMessage


@dataclass(frozen=True, slots=True)
class ThinkingEndEvent:
    type: ClassVar[str] = "thinking_end"

    content_index: int
    content: str
    partial: AssistantMessage


@dataclass(frozen=True, slots=True)
class ToolCallStartEvent:
    type: ClassVar[str] = "toolcall_start"

    content_index: int
    partial: AssistantMessage


@dataclass(frozen=True, slots=True)
class ToolCallDeltaEvent:
    """Serialized arguments of a tool call; Vertex delivers them whole."""

    type: ClassVar[str] = "toolcall_delta"

    content_index: int
    delta: str
    partial: AssistantMessage


@dataclass(frozen=True, slots=True)
class ToolCallEndEvent:
    """Carries the fully resolved tool call, marker-free."""

    type: ClassVar[str] = "toolcall_end"

    content_index: int
    tool_call: ToolCall
    partial: AssistantMessage


@dataclass(frozen=True, slots=True)
class DoneEvent:
    """Terminal event for streams that stopped normally."""

    type: ClassVar[str] = "done"

    reason: StopReason
    message: AssistantMessage


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    """Terminal event for failed, blocked or aborted streams."""

    type: ClassVar[str] = "error"

    reason: StopReason
    error: AssistantMessage


TerminalEvent = Union[DoneEvent, ErrorEvent]

StreamEvent = Union[
    StartEvent,
    TextStartEvent,
    TextDeltaEvent,
    TextEndEvent,
    ThinkingStartEvent,
    ThinkingDeltaEvent,
    ThinkingEndEvent,
    ToolCallStartEvent,
    ToolCallDeltaEvent,
    ToolCallEndEvent,
    DoneEvent,
    ErrorEvent,
]


def terminal_message(event: TerminalEvent) -> AssistantMessage:
    """Return the final assistant message carried by a terminal event."""

    if isinstance(event, DoneEvent):
        return event.message
    return event.error


class StreamAborted(AdapterError):
    """Raised into a normalizer when the consumer stops a stream early."""


class StreamNormalizer(Protocol):
    """Turns provider chunks into canonical events for one stream.

    ``finish`` and ``fail`` must between them yield exactly one terminal
    event; once a terminal event has been produced every method returns an
    empty list.
    """

    def begin(self) -> List[StreamEvent]:
        """Events emitted once the request is about to be sent."""

    async def normalize_chunk(self, chunk: Mapping[str, Any]) -> List[StreamEvent]:
        """Map a provider-specific chunk into canonical stream events."""

    def finish(self) -> List[StreamEvent]:
        """Close open blocks and emit the terminal event after the last chunk."""

    def fail(self, exc: BaseException) -> List[StreamEvent]:
        """Emit the terminal error event for ``exc``."""

    @property
    def terminal(self) -> Optional[TerminalEvent]:
        """The terminal event, once produced."""


class BaseStreamIterator(AsyncIterator[StreamEvent], metaclass=abc.ABCMeta):
    """Shared async iterator driving provider-specific streaming adapters.

    Subclasses prepare the request in :meth:`_open` and source raw provider
    chunks by implementing :meth:`_get_next_chunk`. Each chunk is normalized
    into zero or more :data:`StreamEvent` instances by a
    :class:`StreamNormalizer`. Any exception raised while opening, reading or
    normalizing is routed to :meth:`StreamNormalizer.fail`, so consumers
    always observe exactly one terminal event.
    """

    def __init__(self, normalizer: StreamNormalizer) -> None:
        self._normalizer = normalizer
        self._buffer: Deque[StreamEvent] = deque()
        self._opened = False
        self._closed = False
        self._finalized = False
        self._close_lock = asyncio.Lock()

    def __aiter__(self) -> BaseStreamIterator:
        return self

    async def __anext__(self) -> StreamEvent:
        if self._closed and not self._buffer:
            raise StopAsyncIteration

        buffered = self._pop_buffered_event()
        if buffered is not None:
            return await self._finalize_if_needed(buffered)

        while True:
            if self._closed:
                raise StopAsyncIteration

            if self._finalized:
                await self.close()
                raise StopAsyncIteration

            events = await self._pull_events()
            if not events:
                continue

            self._buffer.extend(events)
            buffered = self._pop_buffered_event()
            if buffered is not None:
                return await self._finalize_if_needed(buffered)

    @property
    def result(self) -> AssistantMessage | None:
        """Final assistant message once the stream reached a terminal state."""

        terminal = self._normalizer.terminal
        if terminal is None:
            return None
        return terminal_message(terminal)

    async def close(self) -> None:
        """Release provider resources and prevent additional iteration.

        Closing before the terminal event was delivered records an aborted
        terminal state without emitting it.
        """

        async with self._close_lock:
            if self._closed:
                return

            self._closed = True
            self._buffer.clear()
            if self._normalizer.terminal is None:
                self._normalizer.fail(StreamAborted("stream closed before completion"))
            await self._on_close()

    async def aclose(self) -> None:
        await self.close()

    async def _pull_events(self) -> List[StreamEvent]:
        if not self._opened:
            self._opened = True
            try:
                await self._open()
            except asyncio.CancelledError as exc:
                self._normalizer.fail(exc)
                await self.close()
                raise
            except Exception as exc:
                return self._normalizer.fail(exc)
            return self._normalizer.begin()

        try:
            chunk = await self._get_next_chunk()
        except StopAsyncIteration:
            return self._normalizer.finish()
        except asyncio.CancelledError as exc:
            self._normalizer.fail(exc)
            await self.close()
            raise
        except Exception as exc:
            return self._normalizer.fail(exc)

        try:
            return await self._normalizer.normalize_chunk(chunk)
        except Exception as exc:
            LOGGER.exception("normalizer failed on chunk")
            return self._normalizer.fail(exc)

    async def _finalize_if_needed(self, event: StreamEvent) -> StreamEvent:
        if isinstance(event, (DoneEvent, ErrorEvent)):
            self._finalized = True
            if not self._buffer:
                await self.close()
        return event

    def _pop_buffered_event(self) -> StreamEvent | None:
        if not self._buffer:
            return None
        return self._buffer.popleft()

    async def _open(self) -> None:
        """Validate configuration before the first chunk is requested."""

    @abc.abstractmethod
    async def _get_next_chunk(self) -> Dict[str, Any]:
        """Retrieve the next raw chunk from the provider stream."""

    async def _on_close(self) -> None:
        """Allow subclasses to dispose provider resources when closing."""


async def replay_stream(iterator: BaseStreamIterator) -> List[StreamEvent]:
    """Collect all events emitted by a stream iterator."""

    events: List[StreamEvent] = []
    try:
        async for event in iterator:
            events.append(event)
    finally:
        await iterator.close()
    return events


async def complete(iterator: BaseStreamIterator) -> AssistantMessage:
    """Drain ``iterator`` and return the final assistant message."""

    final: AssistantMessage | None = None
    try:
        async for event in iterator:
            if isinstance(event, (DoneEvent, ErrorEvent)):
                final = terminal_message(event)
    finally:
        await iterator.close()

    if final is None:
        final = iterator.result
    if final is None:  # pragma: no cover - normalizers always terminate
        msg = "stream ended without a terminal event"
        raise AdapterError(msg)
    return final
