"""Adapter interfaces and the Vertex AI streaming implementation."""

from __future__ import annotations

from .assembler import VertexStreamNormalizer, map_finish_reason
from .base import ModelAdapter
from .identity import MARKER_KEY, ToolCallIdentityResolver, encode_tool_call
from .sse import SSEStreamParser
from .stream import (
    BaseStreamIterator,
    DoneEvent,
    ErrorEvent,
    StartEvent,
    StreamEvent,
    TextDeltaEvent,
    TextEndEvent,
    TextStartEvent,
    ThinkingDeltaEvent,
    ThinkingEndEvent,
    ThinkingStartEvent,
    ToolCallDeltaEvent,
    ToolCallEndEvent,
    ToolCallStartEvent,
    complete,
    replay_stream,
)
from .toolbridge import ToolSpec, tool_specs_to_vertex
from .usage import ModelRates, per_million_rates
from .utils import context_to_contents, messages_to_vertex
from .vertex import ThinkingOptions, VertexAIAdapter, VertexStreamIterator, build_endpoint

__all__ = [
    "MARKER_KEY",
    "ModelAdapter",
    "VertexAIAdapter",
    "VertexStreamIterator",
    "VertexStreamNormalizer",
    "BaseStreamIterator",
    "ThinkingOptions",
    "ToolSpec",
    "ToolCallIdentityResolver",
    "SSEStreamParser",
    "ModelRates",
    "StreamEvent",
    "StartEvent",
    "TextStartEvent",
    "TextDeltaEvent",
    "TextEndEvent",
    "ThinkingStartEvent",
    "ThinkingDeltaEvent",
    "ThinkingEndEvent",
    "ToolCallStartEvent",
    "ToolCallDeltaEvent",
    "ToolCallEndEvent",
    "DoneEvent",
    "ErrorEvent",
    "build_endpoint",
    "complete",
    "context_to_contents",
    "encode_tool_call",
    "map_finish_reason",
    "messages_to_vertex",
    "per_million_rates",
    "replay_stream",
    "tool_specs_to_vertex",
]
