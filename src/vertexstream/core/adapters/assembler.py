"""Assemble Vertex response chunks into ordered content blocks and events."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass
import logging
import time
from typing import Any

from pydantic import ValidationError

from ..errors import ChunkDecodeError
from ..message import AssistantBlock, AssistantMessage, StopReason, TextContent, ThinkingContent, ToolCall, Usage
from .identity import ToolCallIdentityResolver
from .schema import ResponseChunk
from .stream import (
    DoneEvent,
    ErrorEvent,
    StartEvent,
    StreamAborted,
    StreamEvent,
    StreamNormalizer,
    TerminalEvent,
    TextDeltaEvent,
    TextEndEvent,
    TextStartEvent,
    ThinkingDeltaEvent,
    ThinkingEndEvent,
    ThinkingStartEvent,
    ToolCallDeltaEvent,
    ToolCallEndEvent,
    ToolCallStartEvent,
)
from .usage import CostFunction, UsageAggregator
from .wire import FunctionCallPart, TextPart, part_from_wire

LOGGER = logging.getLogger(__name__)

_FINISH_REASONS = {
    "STOP": StopReason.STOP,
    "MAX_TOKENS": StopReason.LENGTH,
    "SAFETY": StopReason.ERROR,
    "RECITATION": StopReason.ERROR,
}
_DONE_REASONS = frozenset({StopReason.STOP, StopReason.LENGTH, StopReason.TOOL_USE})


def map_finish_reason(finish_reason: str | None) -> StopReason:
    """Map a Vertex ``finishReason`` onto a :class:`StopReason`."""

    if not finish_reason:
        return StopReason.STOP
    return _FINISH_REASONS.get(finish_reason, StopReason.STOP)


def retain_signature(existing: str | None, incoming: str | None) -> str | None:
    """Keep the latest non-empty continuation signature."""

    if isinstance(incoming, str) and incoming:
        return incoming
    return existing


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass(slots=True)
class _OpenBlock:
    """The single text or thinking block currently receiving deltas."""

    index: int
    thinking: bool
    text: str = ""
    signature: str | None = None

    def render(self) -> TextContent | ThinkingContent:
        if self.thinking:
            return ThinkingContent(thinking=self.text, thinking_signature=self.signature)
        return TextContent(text=self.text, text_signature=self.signature)


class VertexStreamNormalizer(StreamNormalizer):
    """Stateful block assembler for one Vertex stream.

    At most one text or thinking block is open at a time. A text part of the
    other kind or a function call closes it before anything else happens, and
    :meth:`finish` closes whatever is still open.
    """

    def __init__(
        self,
        *,
        model_id: str,
        provider: str = "vertex-ai",
        api: str = "vertex-ai",
        cost_function: CostFunction | None = None,
        resolver: ToolCallIdentityResolver | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._model_id = model_id
        self._provider = provider
        self._api = api
        self._resolver = resolver or ToolCallIdentityResolver()
        self._usage_aggregator = UsageAggregator(model_id, cost_function)
        self._timestamp = (clock or _now_ms)()

        self._blocks: list[AssistantBlock] = []
        self._open: _OpenBlock | None = None
        self._usage = Usage()
        self._stop_reason = StopReason.STOP
        self._finish_reason: str | None = None
        self._error_message: str | None = None
        self._terminal: TerminalEvent | None = None

    @property
    def terminal(self) -> TerminalEvent | None:
        return self._terminal

    def snapshot(self) -> AssistantMessage:
        """Immutable view of the message assembled so far."""

        return AssistantMessage(
            content=tuple(self._blocks),
            usage=self._usage,
            stop_reason=self._stop_reason,
            timestamp=self._timestamp,
            api=self._api,
            provider=self._provider,
            model=self._model_id,
            error_message=self._error_message,
        )

    def begin(self) -> list[StreamEvent]:
        if self._terminal is not None:
            return []
        return [StartEvent(partial=self.snapshot())]

    async def normalize_chunk(self, chunk: Mapping[str, Any]) -> list[StreamEvent]:
        if self._terminal is not None:
            return []

        try:
            response = ResponseChunk.model_validate(chunk)
        except ValidationError as exc:
            error = ChunkDecodeError(f"chunk does not match the response schema: {exc.error_count()} error(s)")
            LOGGER.warning("skipping chunk: %s", error)
            return []

        if response.prompt_feedback is not None and response.prompt_feedback.block_reason:
            LOGGER.warning("prompt blocked by Vertex: %s", response.prompt_feedback.block_reason)

        events: list[StreamEvent] = []
        candidate = response.first_candidate
        if candidate is not None and candidate.content is not None:
            for raw_part in candidate.content.parts:
                part = part_from_wire(raw_part)
                if isinstance(part, TextPart):
                    events.extend(self._on_text(part))
                elif isinstance(part, FunctionCallPart):
                    events.extend(self._on_function_call(part))

        if candidate is not None and candidate.finish_reason:
            LOGGER.debug("finishReason: %s", candidate.finish_reason)
            self._finish_reason = candidate.finish_reason
            self._stop_reason = map_finish_reason(candidate.finish_reason)
            if self._has_tool_calls():
                self._stop_reason = StopReason.TOOL_USE

        if response.usage_metadata is not None:
            self._usage = self._usage_aggregator.apply(self._usage, response.usage_metadata)

        return events

    def finish(self) -> list[StreamEvent]:
        if self._terminal is not None:
            return []

        events = self._close_open_block()
        if self._has_tool_calls():
            self._stop_reason = StopReason.TOOL_USE

        LOGGER.info(
            "stream completed: content_blocks=%s stop_reason=%s",
            len(self._blocks),
            self._stop_reason.value,
        )
        if not self._blocks:
            LOGGER.warning("stream completed without generating any content")

        if self._stop_reason in _DONE_REASONS:
            self._terminal = DoneEvent(reason=self._stop_reason, message=self.snapshot())
        else:
            self._error_message = f"generation stopped by Vertex: {self._finish_reason}"
            self._terminal = ErrorEvent(reason=self._stop_reason, error=self.snapshot())
        events.append(self._terminal)
        return events

    def fail(self, exc: BaseException) -> list[StreamEvent]:
        if self._terminal is not None:
            return []

        events = self._close_open_block()
        aborted = isinstance(exc, (asyncio.CancelledError, StreamAborted))
        self._stop_reason = StopReason.ABORTED if aborted else StopReason.ERROR
        self._error_message = str(exc) or type(exc).__name__
        if aborted:
            LOGGER.info("stream aborted: %s", self._error_message)
        else:
            LOGGER.error("stream failed: %s", self._error_message)

        self._terminal = ErrorEvent(reason=self._stop_reason, error=self.snapshot())
        events.append(self._terminal)
        return events

    def _on_text(self, part: TextPart) -> list[StreamEvent]:
        events: list[StreamEvent] = []
        if self._open is not None and self._open.thinking != part.thought:
            events.extend(self._close_open_block())

        opened = self._open is None
        if self._open is None:
            self._open = _OpenBlock(index=len(self._blocks), thinking=part.thought)
            self._blocks.append(self._open.render())
            start_type = ThinkingStartEvent if part.thought else TextStartEvent
            events.append(start_type(content_index=self._open.index, partial=self.snapshot()))

        block = self._open
        block.text += part.text
        block.signature = retain_signature(block.signature, part.thought_signature)
        self._blocks[block.index] = block.render()
        # An empty part on an already open block only carries a signature.
        if part.text or opened:
            delta_type = ThinkingDeltaEvent if block.thinking else TextDeltaEvent
            events.append(delta_type(content_index=block.index, delta=part.text, partial=self.snapshot()))
        return events

    def _on_function_call(self, part: FunctionCallPart) -> list[StreamEvent]:
        events = self._close_open_block()

        tool_call = self._resolver.resolve(part)
        index = len(self._blocks)
        self._blocks.append(tool_call)
        events.append(ToolCallStartEvent(content_index=index, partial=self.snapshot()))
        events.append(
            ToolCallDeltaEvent(
                content_index=index,
                delta=tool_call.arguments_json(),
                partial=self.snapshot(),
            )
        )
        events.append(ToolCallEndEvent(content_index=index, tool_call=tool_call, partial=self.snapshot()))
        return events

    def _close_open_block(self) -> list[StreamEvent]:
        block = self._open
        if block is None:
            return []
        self._open = None
        self._blocks[block.index] = block.render()
        end_type = ThinkingEndEvent if block.thinking else TextEndEvent
        return [end_type(content_index=block.index, content=block.text, partial=self.snapshot())]

    def _has_tool_calls(self) -> bool:
        return any(isinstance(block, ToolCall) for block in self._blocks)


__all__ = ["VertexStreamNormalizer", "map_finish_reason", "retain_signature"]
