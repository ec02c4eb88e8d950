"""Vertex ``generateContent`` wire shapes.

Each part variant is its own frozen dataclass so exactly one variant is
active per part. Outbound parts serialize themselves with ``to_wire()``;
inbound mappings are parsed with :func:`part_from_wire`.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

_SIGNATURE_KEY = "thoughtSignature"


class WireRole(str, Enum):
    """The only two roles Vertex accepts in ``contents``."""

    USER = "user"
    MODEL = "model"


def _with_signature(payload: dict[str, Any], signature: str | None) -> dict[str, Any]:
    if signature:
        payload[_SIGNATURE_KEY] = signature
    return payload


@dataclass(frozen=True, slots=True)
class TextPart:
    text: str
    thought: bool = False
    thought_signature: str | None = None

    def to_wire(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"text": self.text}
        if self.thought:
            payload["thought"] = True
        return _with_signature(payload, self.thought_signature)


@dataclass(frozen=True, slots=True)
class FunctionCallPart:
    """A model-issued tool invocation.

    ``id`` is only ever read from responses. Vertex rejects an ``id`` on
    outbound function calls, so :meth:`to_wire` never writes it.
    """

    name: str
    args: Mapping[str, Any] = field(default_factory=dict)
    id: str | None = None
    thought_signature: str | None = None

    def to_wire(self) -> dict[str, Any]:
        payload = {"functionCall": {"name": self.name, "args": dict(self.args)}}
        return _with_signature(payload, self.thought_signature)


@dataclass(frozen=True, slots=True)
class FunctionResponsePart:
    name: str
    response: Mapping[str, Any]
    thought_signature: str | None = None

    def to_wire(self) -> dict[str, Any]:
        payload = {"functionResponse": {"name": self.name, "response": dict(self.response)}}
        return _with_signature(payload, self.thought_signature)


@dataclass(frozen=True, slots=True)
class InlineDataPart:
    mime_type: str
    data: str
    thought_signature: str | None = None

    def to_wire(self) -> dict[str, Any]:
        payload = {"inlineData": {"mimeType": self.mime_type, "data": self.data}}
        return _with_signature(payload, self.thought_signature)


WirePart = Union[TextPart, FunctionCallPart, FunctionResponsePart, InlineDataPart]


@dataclass(frozen=True, slots=True)
class WireContent:
    """One entry of the request ``contents`` array."""

    role: WireRole
    parts: tuple[WirePart, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", WireRole(self.role))
        if not isinstance(self.parts, Sequence) or isinstance(self.parts, (str, bytes, bytearray)):
            msg = "wire content parts must be a sequence"
            raise TypeError(msg)
        parts = tuple(self.parts)
        if not parts:
            msg = "wire content must contain at least one part"
            raise ValueError(msg)
        object.__setattr__(self, "parts", parts)

    def to_wire(self) -> dict[str, Any]:
        return {"role": self.role.value, "parts": [part.to_wire() for part in self.parts]}


def part_from_wire(payload: Mapping[str, Any]) -> WirePart | None:
    """Parse one inbound part mapping, returning ``None`` for unsupported parts.

    When a payload carries several variant keys the first match wins, in the
    order functionCall, functionResponse, inlineData, text.
    """

    if not isinstance(payload, Mapping):
        return None

    signature = _optional_str(payload.get(_SIGNATURE_KEY))

    function_call = payload.get("functionCall")
    if isinstance(function_call, Mapping):
        args = function_call.get("args")
        return FunctionCallPart(
            name=_optional_str(function_call.get("name")) or "",
            args=dict(args) if isinstance(args, Mapping) else {},
            id=_optional_str(function_call.get("id")),
            thought_signature=signature,
        )

    function_response = payload.get("functionResponse")
    if isinstance(function_response, Mapping):
        response = function_response.get("response")
        return FunctionResponsePart(
            name=_optional_str(function_response.get("name")) or "",
            response=dict(response) if isinstance(response, Mapping) else {},
            thought_signature=signature,
        )

    inline_data = payload.get("inlineData")
    if isinstance(inline_data, Mapping):
        return InlineDataPart(
            mime_type=_optional_str(inline_data.get("mimeType")) or "",
            data=_optional_str(inline_data.get("data")) or "",
            thought_signature=signature,
        )

    text = payload.get("text")
    if isinstance(text, str):
        return TextPart(text=text, thought=payload.get("thought") is True, thought_signature=signature)

    return None


def _optional_str(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


__all__ = [
    "FunctionCallPart",
    "FunctionResponsePart",
    "InlineDataPart",
    "TextPart",
    "WireContent",
    "WirePart",
    "WireRole",
    "part_from_wire",
]
