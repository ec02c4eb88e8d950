"""Provider-agnostic conversation schema shared across adapters."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
import json
import math
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar, Union

if TYPE_CHECKING:
    from .adapters.toolbridge import ToolSpec


class MessageRole(str, Enum):
    """Canonical role names supported by vertexstream."""

    USER = "user"
    ASSISTANT = "assistant"
    TOOL_RESULT = "tool_result"


class StopReason(str, Enum):
    """Why an assistant message stopped generating."""

    STOP = "stop"
    LENGTH = "length"
    TOOL_USE = "tool_use"
    ERROR = "error"
    ABORTED = "aborted"


@dataclass(frozen=True, slots=True)
class TextContent:
    """Plain text block, optionally carrying an opaque continuation signature."""

    type: ClassVar[str] = "text"

    text: str
    text_signature: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.text, str):
            msg = "text content must be a string"
            raise TypeError(msg)


@dataclass(frozen=True, slots=True)
class ThinkingContent:
    """Model reasoning emitted alongside the visible answer."""

    type: ClassVar[str] = "thinking"

    thinking: str
    thinking_signature: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.thinking, str):
            msg = "thinking content must be a string"
            raise TypeError(msg)


@dataclass(frozen=True, slots=True)
class ImageContent:
    """Base64 encoded image supplied by the user."""

    type: ClassVar[str] = "image"

    data: str
    mime_type: str

    def __post_init__(self) -> None:
        if not isinstance(self.data, str) or not self.data:
            msg = "image data must be a non-empty base64 string"
            raise ValueError(msg)
        if not isinstance(self.mime_type, str) or not self.mime_type:
            msg = "image mime_type must be a non-empty string"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class ToolCall:
    """A tool/function invocation emitted by an assistant message."""

    type: ClassVar[str] = "tool_call"

    id: str
    name: str
    arguments: Mapping[str, Any]
    thought_signature: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            msg = "tool call id must be a non-empty string"
            raise ValueError(msg)
        if not isinstance(self.name, str):
            msg = "tool call name must be a string"
            raise TypeError(msg)
        if not isinstance(self.arguments, Mapping):
            msg = "tool call arguments must be a mapping"
            raise TypeError(msg)

        plain_arguments = thaw_json_structure(dict(self.arguments))
        ensure_json_compatible(plain_arguments, path="ToolCall.arguments")

        sanitized = json.loads(json.dumps(plain_arguments, allow_nan=False))
        frozen = freeze_json_structure(sanitized)
        object.__setattr__(self, "arguments", frozen)

    def arguments_json(self) -> str:
        """Serialize the arguments exactly as they are streamed to consumers."""

        return json.dumps(thaw_json_structure(self.arguments), ensure_ascii=False)


UserBlock = Union[TextContent, ImageContent]
AssistantBlock = Union[TextContent, ThinkingContent, ToolCall]


@dataclass(frozen=True, slots=True)
class Cost:
    """Monetary cost of a request, split by token category."""

    input: float = 0.0
    output: float = 0.0
    cache_read: float = 0.0
    cache_write: float = 0.0
    total: float = 0.0


@dataclass(frozen=True, slots=True)
class Usage:
    """Token counters reported by the provider."""

    input: int = 0
    output: int = 0
    cache_read: int = 0
    cache_write: int = 0
    total_tokens: int = 0
    cost: Cost = field(default_factory=Cost)


@dataclass(frozen=True, slots=True)
class UserMessage:
    """A user turn made of text and/or images."""

    role: ClassVar[MessageRole] = MessageRole.USER

    content: str | tuple[UserBlock, ...]
    timestamp: int = 0

    def __post_init__(self) -> None:
        if isinstance(self.content, str):
            return
        blocks = _coerce_blocks(self.content, name="user message content")
        object.__setattr__(self, "content", blocks)


@dataclass(frozen=True, slots=True)
class AssistantMessage:
    """An assistant turn, either replayed as history or produced by a stream.

    Streams never mutate an instance: every event carries a fresh snapshot so
    consumers cannot observe later updates retroactively.
    """

    role: ClassVar[MessageRole] = MessageRole.ASSISTANT

    content: tuple[AssistantBlock, ...] = ()
    usage: Usage = field(default_factory=Usage)
    stop_reason: StopReason = StopReason.STOP
    timestamp: int = 0
    api: str = "vertex-ai"
    provider: str = "vertex-ai"
    model: str = ""
    error_message: str | None = None

    def __post_init__(self) -> None:
        blocks = _coerce_blocks(self.content, name="assistant message content")
        object.__setattr__(self, "content", blocks)

    @property
    def text(self) -> str:
        """Concatenated text blocks, ignoring thinking and tool calls."""

        return "".join(block.text for block in self.content if isinstance(block, TextContent))

    @property
    def tool_calls(self) -> tuple[ToolCall, ...]:
        return tuple(block for block in self.content if isinstance(block, ToolCall))


@dataclass(frozen=True, slots=True)
class ToolResultMessage:
    """The caller's answer to a previously issued tool call."""

    role: ClassVar[MessageRole] = MessageRole.TOOL_RESULT

    tool_call_id: str
    tool_name: str
    content: str | tuple[TextContent, ...]
    timestamp: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.tool_call_id, str) or not self.tool_call_id:
            msg = "tool_call_id must be a non-empty string"
            raise ValueError(msg)
        if not isinstance(self.tool_name, str) or not self.tool_name:
            msg = "tool_name must be a non-empty string"
            raise ValueError(msg)
        if isinstance(self.content, str):
            return
        blocks = _coerce_blocks(self.content, name="tool result content")
        object.__setattr__(self, "content", blocks)

    @property
    def text(self) -> str:
        if isinstance(self.content, str):
            return self.content
        return "\n".join(block.text for block in self.content if isinstance(block, TextContent))


Message = Union[UserMessage, AssistantMessage, ToolResultMessage]
_MESSAGE_TYPES = (UserMessage, AssistantMessage, ToolResultMessage)


@dataclass(frozen=True, slots=True)
class Context:
    """Everything needed to build one request: history, system prompt and tools."""

    messages: tuple[Message, ...]
    system_prompt: str | None = None
    tools: tuple["ToolSpec", ...] | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.messages, Sequence) or isinstance(self.messages, (str, bytes, bytearray)):
            msg = "context messages must be a sequence"
            raise TypeError(msg)
        messages = tuple(self.messages)
        for index, message in enumerate(messages):
            if not isinstance(message, _MESSAGE_TYPES):
                msg = f"messages[{index}] must be a UserMessage, AssistantMessage or ToolResultMessage"
                raise TypeError(msg)
        object.__setattr__(self, "messages", messages)

        if self.system_prompt is not None and not isinstance(self.system_prompt, str):
            msg = "system_prompt must be a string when provided"
            raise TypeError(msg)

        if self.tools is not None:
            if not isinstance(self.tools, Sequence) or isinstance(self.tools, (str, bytes, bytearray)):
                msg = "context tools must be a sequence of ToolSpec instances"
                raise TypeError(msg)
            object.__setattr__(self, "tools", tuple(self.tools))


def _coerce_blocks(value: Any, *, name: str) -> tuple[Any, ...]:
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes, bytearray)):
        msg = f"{name} must be a sequence of content blocks"
        raise TypeError(msg)
    return tuple(value)


def ensure_json_compatible(value: Any, *, path: str) -> None:
    if isinstance(value, Mapping):
        for key, inner in value.items():
            if not isinstance(key, str) or not key:
                msg = f"{path} keys must be non-empty strings"
                raise TypeError(msg)
            ensure_json_compatible(inner, path=f"{path}.{key}")
        return

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        for index, item in enumerate(value):
            ensure_json_compatible(item, path=f"{path}[{index}]")
        return

    if isinstance(value, (bool, type(None), str)):
        return

    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            msg = f"{path} contains non-finite float values"
            raise ValueError(msg)
        return

    msg = f"{path} contains unsupported value type {type(value).__name__}"
    raise TypeError(msg)


def freeze_json_structure(value: Any) -> Any:
    if isinstance(value, dict):
        frozen_dict = {key: freeze_json_structure(inner) for key, inner in value.items()}
        return MappingProxyType(frozen_dict)

    if isinstance(value, list):
        return tuple(freeze_json_structure(inner) for inner in value)

    return value


def thaw_json_structure(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: thaw_json_structure(inner) for key, inner in value.items()}

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [thaw_json_structure(inner) for inner in value]

    return value
