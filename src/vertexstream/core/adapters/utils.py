"""Pure conversion helpers from vertexstream messages to Vertex contents."""

from __future__ import annotations

from collections.abc import Callable, Sequence
import logging
from typing import Any

from ...config import TOOL_RESULT_ROLE
from ..message import (
    AssistantMessage,
    Context,
    ImageContent,
    Message,
    TextContent,
    ThinkingContent,
    ToolCall,
    ToolResultMessage,
    UserMessage,
)
from .identity import encode_tool_call
from .wire import (
    FunctionCallPart,
    FunctionResponsePart,
    InlineDataPart,
    TextPart,
    WireContent,
    WirePart,
    WireRole,
)

LOGGER = logging.getLogger(__name__)

TOOL_RESULT_KEY = "result"


def context_to_contents(
    context: Context,
    *,
    tool_result_role: str | WireRole = TOOL_RESULT_ROLE,
    encode_call: Callable[[ToolCall], dict[str, Any]] = encode_tool_call,
) -> list[WireContent]:
    """Convert the conversation history into ordered Vertex ``contents``.

    Messages or blocks that cannot be represented are dropped, never
    rejected, and a message that ends up without parts produces no entry.
    """

    return messages_to_vertex(
        context.messages,
        tool_result_role=tool_result_role,
        encode_call=encode_call,
    )


def messages_to_vertex(
    messages: Sequence[Message],
    *,
    tool_result_role: str | WireRole = TOOL_RESULT_ROLE,
    encode_call: Callable[[ToolCall], dict[str, Any]] = encode_tool_call,
) -> list[WireContent]:
    result_role = WireRole(tool_result_role)
    converted: list[WireContent] = []
    for message in messages:
        if isinstance(message, UserMessage):
            role, parts = WireRole.USER, _user_parts(message)
        elif isinstance(message, AssistantMessage):
            role, parts = WireRole.MODEL, _assistant_parts(message, encode_call)
        elif isinstance(message, ToolResultMessage):
            role, parts = result_role, _tool_result_parts(message)
        else:
            LOGGER.debug("dropping unsupported message type %s", type(message).__name__)
            continue

        if parts:
            converted.append(WireContent(role=role, parts=tuple(parts)))

    return converted


def contents_to_wire(contents: Sequence[WireContent]) -> list[dict[str, Any]]:
    return [content.to_wire() for content in contents]


def _user_parts(message: UserMessage) -> list[WirePart]:
    if isinstance(message.content, str):
        return [TextPart(text=message.content)] if message.content else []

    parts: list[WirePart] = []
    for block in message.content:
        if isinstance(block, TextContent):
            parts.append(TextPart(text=block.text))
        elif isinstance(block, ImageContent):
            parts.append(InlineDataPart(mime_type=block.mime_type, data=block.data))
    return parts


def _assistant_parts(
    message: AssistantMessage,
    encode_call: Callable[[ToolCall], dict[str, Any]],
) -> list[WirePart]:
    parts: list[WirePart] = []
    for block in message.content:
        if isinstance(block, TextContent):
            if not block.text.strip():
                continue
            parts.append(TextPart(text=block.text, thought_signature=block.text_signature))
        elif isinstance(block, ThinkingContent):
            # Vertex can only resume reasoning it signed itself.
            if not block.thinking_signature or not block.thinking.strip():
                continue
            parts.append(
                TextPart(
                    text=block.thinking,
                    thought=True,
                    thought_signature=block.thinking_signature,
                )
            )
        elif isinstance(block, ToolCall):
            parts.append(
                FunctionCallPart(
                    name=block.name,
                    args=encode_call(block),
                    thought_signature=block.thought_signature,
                )
            )
    return parts


def _tool_result_parts(message: ToolResultMessage) -> list[WirePart]:
    return [
        FunctionResponsePart(
            name=message.tool_name,
            response={TOOL_RESULT_KEY: message.text},
        )
    ]


__all__ = ["TOOL_RESULT_KEY", "context_to_contents", "contents_to_wire", "messages_to_vertex"]
