"""Core data structures and adapter interfaces for vertexstream."""

from __future__ import annotations

from .errors import AdapterError, ChunkDecodeError, ConfigError, TransportError
from .message import (
    AssistantMessage,
    Context,
    ImageContent,
    MessageRole,
    StopReason,
    TextContent,
    ThinkingContent,
    ToolCall,
    ToolResultMessage,
    Usage,
    UserMessage,
)
from .adapters.toolbridge import ToolSpec

__all__ = [
    "AdapterError",
    "AssistantMessage",
    "ChunkDecodeError",
    "ConfigError",
    "Context",
    "ImageContent",
    "MessageRole",
    "StopReason",
    "TextContent",
    "ThinkingContent",
    "ToolCall",
    "ToolResultMessage",
    "ToolSpec",
    "TransportError",
    "Usage",
    "UserMessage",
]
