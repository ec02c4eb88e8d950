"""Streaming client for Vertex AI generative models.

The package converts provider-neutral conversations into Vertex AI
``streamGenerateContent`` requests and turns the server-sent-event response
into an ordered stream of canonical events ending in exactly one ``done`` or
``error`` event.
"""

from __future__ import annotations

from .config import VertexConfig
from .core import AssistantMessage, Context, ToolCall, ToolResultMessage, ToolSpec, UserMessage
from .core.adapters import ThinkingOptions, VertexAIAdapter, complete

__all__ = [
    "AssistantMessage",
    "Context",
    "ThinkingOptions",
    "ToolCall",
    "ToolResultMessage",
    "ToolSpec",
    "UserMessage",
    "VertexAIAdapter",
    "VertexConfig",
    "complete",
]

__version__ = "0.1.0"
