from __future__ import annotations

import pytest

from vertexstream.core.adapters.wire import (
    FunctionCallPart,
    FunctionResponsePart,
    InlineDataPart,
    TextPart,
    WireContent,
    WireRole,
    part_from_wire,
)


def test_function_call_part_never_serializes_an_id() -> None:
    part = FunctionCallPart(name="get_weather", args={"location": "NYC"}, id="server-1")

    assert part.to_wire() == {"functionCall": {"name": "get_weather", "args": {"location": "NYC"}}}


def test_parts_attach_signature_only_when_present() -> None:
    assert TextPart(text="hi").to_wire() == {"text": "hi"}
    assert TextPart(text="plan", thought=True, thought_signature="sig").to_wire() == {
        "text": "plan",
        "thought": True,
        "thoughtSignature": "sig",
    }
    assert InlineDataPart(mime_type="image/png", data="AAAA", thought_signature="s").to_wire() == {
        "inlineData": {"mimeType": "image/png", "data": "AAAA"},
        "thoughtSignature": "s",
    }
    assert FunctionResponsePart(name="f", response={"result": "ok"}).to_wire() == {
        "functionResponse": {"name": "f", "response": {"result": "ok"}},
    }


def test_wire_content_requires_parts() -> None:
    with pytest.raises(ValueError):
        WireContent(role=WireRole.USER, parts=())


def test_wire_content_rejects_unknown_roles() -> None:
    with pytest.raises(ValueError):
        WireContent(role="system", parts=(TextPart(text="x"),))


def test_part_from_wire_reads_each_variant() -> None:
    call = part_from_wire({"functionCall": {"name": "f", "args": {"a": 1}, "id": "c1"}, "thoughtSignature": "s"})
    assert call == FunctionCallPart(name="f", args={"a": 1}, id="c1", thought_signature="s")

    response = part_from_wire({"functionResponse": {"name": "f", "response": {"result": "x"}}})
    assert response == FunctionResponsePart(name="f", response={"result": "x"})

    image = part_from_wire({"inlineData": {"mimeType": "image/png", "data": "AAAA"}})
    assert image == InlineDataPart(mime_type="image/png", data="AAAA")

    thought = part_from_wire({"text": "hmm", "thought": True})
    assert thought == TextPart(text="hmm", thought=True)


def test_part_from_wire_treats_only_literal_true_as_thought() -> None:
    part = part_from_wire({"text": "hmm", "thought": "yes"})

    assert isinstance(part, TextPart)
    assert part.thought is False


def test_part_from_wire_prefers_function_call_when_variants_collide() -> None:
    part = part_from_wire({"text": "ignored", "functionCall": {"name": "f", "args": {}}})

    assert isinstance(part, FunctionCallPart)


def test_part_from_wire_ignores_unknown_parts() -> None:
    assert part_from_wire({"executableCode": {"code": "print(1)"}}) is None
    assert part_from_wire("text") is None  # type: ignore[arg-type]
