from __future__ import annotations

import asyncio
import re
from typing import Any, Iterable

import pytest

from vertexstream.core.adapters.assembler import VertexStreamNormalizer, map_finish_reason, retain_signature
from vertexstream.core.adapters.identity import MARKER_KEY
from vertexstream.core.adapters.stream import (
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    TextDeltaEvent,
    ThinkingEndEvent,
    ToolCallDeltaEvent,
    ToolCallEndEvent,
)
from vertexstream.core.adapters.usage import ModelRates, per_million_rates
from vertexstream.core.errors import TransportError
from vertexstream.core.message import StopReason, TextContent, ThinkingContent, ToolCall

from tests.fixtures.vertex_fake import finish_chunk, function_call_chunk, text_chunk, tool_call_chunks
from tests.harness import event_types


def _run(chunks: Iterable[dict[str, Any]], **kwargs: Any) -> tuple[list[StreamEvent], VertexStreamNormalizer]:
    normalizer = VertexStreamNormalizer(model_id="gemini-3-flash-preview", **kwargs)

    async def _drive() -> list[StreamEvent]:
        events = normalizer.begin()
        for chunk in chunks:
            events.extend(await normalizer.normalize_chunk(chunk))
        events.extend(normalizer.finish())
        return events

    return asyncio.run(_drive()), normalizer


def test_incoming_call_without_ids_gets_synthesized_id() -> None:
    chunk = {"candidates": [{"content": {"parts": [{"functionCall": {"name": "get_weather", "args": {"location": "NYC"}}}]}}]}

    events, _ = _run([chunk])

    [end] = [event for event in events if isinstance(event, ToolCallEndEvent)]
    assert re.match(r"^get_weather_\d+_\d+$", end.tool_call.id)
    assert dict(end.tool_call.arguments) == {"location": "NYC"}


def test_text_then_tool_call_orders_events_and_forces_tool_use() -> None:
    events, _ = _run(tool_call_chunks())

    assert event_types(events) == [
        "start",
        "text_start",
        "text_delta",
        "text_end",
        "toolcall_start",
        "toolcall_delta",
        "toolcall_end",
        "done",
    ]
    done = events[-1]
    assert isinstance(done, DoneEvent)
    assert done.reason is StopReason.TOOL_USE
    assert done.message.stop_reason is StopReason.TOOL_USE
    assert done.message.text == "Hi"


def test_marker_is_stripped_from_incoming_arguments() -> None:
    events, _ = _run([function_call_chunk("get_weather", {"location": "NYC", MARKER_KEY: "call_123"})])

    [end] = [event for event in events if isinstance(event, ToolCallEndEvent)]
    [delta] = [event for event in events if isinstance(event, ToolCallDeltaEvent)]
    assert end.tool_call.id == "call_123"
    assert MARKER_KEY not in end.tool_call.arguments
    assert delta.delta == '{"location": "NYC"}'


def test_consecutive_text_parts_share_one_block() -> None:
    events, _ = _run([text_chunk("Hel"), text_chunk("lo"), finish_chunk()])

    assert event_types(events) == ["start", "text_start", "text_delta", "text_delta", "text_end", "done"]
    deltas = [event for event in events if isinstance(event, TextDeltaEvent)]
    assert [delta.content_index for delta in deltas] == [0, 0]
    assert events[-1].message.content == (TextContent(text="Hello"),)


def test_switching_between_thinking_and_text_closes_the_open_block() -> None:
    chunks = [
        text_chunk("plan", thought=True),
        text_chunk(" more", thought=True, signature="sig-a"),
        text_chunk("Answer"),
        text_chunk("again", thought=True),
        finish_chunk(),
    ]

    events, _ = _run(chunks)

    assert event_types(events) == [
        "start",
        "thinking_start",
        "thinking_delta",
        "thinking_delta",
        "thinking_end",
        "text_start",
        "text_delta",
        "text_end",
        "thinking_start",
        "thinking_delta",
        "thinking_end",
        "done",
    ]
    first_end = next(event for event in events if isinstance(event, ThinkingEndEvent))
    assert first_end.content == "plan more"
    assert events[-1].message.content == (
        ThinkingContent(thinking="plan more", thinking_signature="sig-a"),
        TextContent(text="Answer"),
        ThinkingContent(thinking="again"),
    )


def test_empty_text_part_only_updates_the_signature() -> None:
    events, _ = _run([text_chunk("Hi"), text_chunk("", signature="sig-late"), finish_chunk()])

    assert event_types(events) == ["start", "text_start", "text_delta", "text_end", "done"]
    assert events[-1].message.content == (TextContent(text="Hi", text_signature="sig-late"),)


def test_empty_signed_text_after_thinking_opens_a_text_block() -> None:
    events, _ = _run([text_chunk("plan", thought=True), text_chunk("", signature="sig-final"), finish_chunk()])

    assert event_types(events) == [
        "start",
        "thinking_start",
        "thinking_delta",
        "thinking_end",
        "text_start",
        "text_delta",
        "text_end",
        "done",
    ]
    empty_delta = [event for event in events if isinstance(event, TextDeltaEvent)]
    assert [event.delta for event in empty_delta] == [""]
    assert events[-1].message.content == (
        ThinkingContent(thinking="plan"),
        TextContent(text="", text_signature="sig-final"),
    )


def test_empty_signed_text_first_keeps_its_signature() -> None:
    events, _ = _run([text_chunk("", signature="sig-first"), text_chunk("Hi"), finish_chunk()])

    assert event_types(events) == ["start", "text_start", "text_delta", "text_delta", "text_end", "done"]
    assert events[-1].message.content == (TextContent(text="Hi", text_signature="sig-first"),)


def test_null_usage_count_does_not_drop_chunk_content() -> None:
    chunk = {
        **text_chunk("kept"),
        "usageMetadata": {"promptTokenCount": 4, "candidatesTokenCount": None, "totalTokenCount": 4},
    }

    events, _ = _run([chunk, finish_chunk()])

    message = events[-1].message
    assert message.text == "kept"
    assert (message.usage.input, message.usage.output, message.usage.total_tokens) == (4, 0, 4)


def test_non_object_parts_are_skipped_individually() -> None:
    chunk = {"candidates": [{"content": {"parts": ["stray", {"text": "kept"}, None]}}]}

    events, _ = _run([chunk, finish_chunk()])

    assert events[-1].message.text == "kept"


def test_signature_keeps_latest_non_empty_value() -> None:
    assert retain_signature(None, "a") == "a"
    assert retain_signature("a", "b") == "b"
    assert retain_signature("a", None) == "a"
    assert retain_signature("a", "") == "a"


def test_tool_call_signature_is_preserved() -> None:
    events, _ = _run([function_call_chunk("f", {}, call_id="c1", signature="sig-call")])

    [call] = events[-1].message.tool_calls
    assert call == ToolCall(id="c1", name="f", arguments={}, thought_signature="sig-call")


@pytest.mark.parametrize(
    ("finish_reason", "expected"),
    [
        ("STOP", StopReason.STOP),
        ("MAX_TOKENS", StopReason.LENGTH),
        ("SAFETY", StopReason.ERROR),
        ("RECITATION", StopReason.ERROR),
        ("OTHER", StopReason.STOP),
        (None, StopReason.STOP),
    ],
)
def test_finish_reason_mapping(finish_reason: str | None, expected: StopReason) -> None:
    assert map_finish_reason(finish_reason) is expected


def test_max_tokens_ends_with_length_done_event() -> None:
    events, _ = _run([text_chunk("partial"), finish_chunk("MAX_TOKENS")])

    done = events[-1]
    assert isinstance(done, DoneEvent)
    assert done.reason is StopReason.LENGTH


def test_safety_stop_ends_with_error_event_carrying_content() -> None:
    events, _ = _run([text_chunk("partial"), finish_chunk("SAFETY")])

    error = events[-1]
    assert isinstance(error, ErrorEvent)
    assert error.reason is StopReason.ERROR
    assert error.error.text == "partial"
    assert error.error.error_message is not None
    assert "SAFETY" in error.error.error_message
    assert event_types(events).count("error") == 1
    assert "done" not in event_types(events)


def test_usage_is_overwritten_by_later_chunks() -> None:
    events, _ = _run(
        [
            {**text_chunk("a"), "usageMetadata": {"promptTokenCount": 10, "candidatesTokenCount": 1, "totalTokenCount": 11}},
            {**text_chunk("b"), "usageMetadata": {"promptTokenCount": 10, "candidatesTokenCount": 5, "totalTokenCount": 15}},
            finish_chunk("STOP"),
        ]
    )

    usage = events[-1].message.usage
    assert (usage.input, usage.output, usage.total_tokens) == (10, 5, 15)


def test_cost_is_recomputed_from_rates() -> None:
    cost_function = per_million_rates({"gemini-3-flash-preview": ModelRates(input=1.0, output=4.0)})

    events, _ = _run([finish_chunk("STOP", prompt_tokens=1_000_000, output_tokens=500_000)], cost_function=cost_function)

    cost = events[-1].message.usage.cost
    assert cost.input == pytest.approx(1.0)
    assert cost.output == pytest.approx(2.0)
    assert cost.total == pytest.approx(3.0)


def test_partial_snapshots_are_not_mutated_later() -> None:
    events, _ = _run([text_chunk("Hel"), text_chunk("lo"), finish_chunk()])

    deltas = [event for event in events if isinstance(event, TextDeltaEvent)]
    assert deltas[0].partial.text == "Hel"
    assert deltas[1].partial.text == "Hello"


def test_candidate_less_and_invalid_chunks_are_tolerated() -> None:
    events, _ = _run([{"candidates": []}, {"candidates": "nope"}, text_chunk("ok"), finish_chunk()])

    assert event_types(events) == ["start", "text_start", "text_delta", "text_end", "done"]


def test_empty_stream_completes_with_empty_message() -> None:
    events, normalizer = _run([])

    assert event_types(events) == ["start", "done"]
    assert normalizer.terminal is events[-1]
    assert events[-1].message.content == ()


def test_fail_closes_open_block_and_emits_single_error() -> None:
    normalizer = VertexStreamNormalizer(model_id="m")

    async def _drive() -> list[StreamEvent]:
        events = normalizer.begin()
        events.extend(await normalizer.normalize_chunk(text_chunk("partial")))
        events.extend(normalizer.fail(TransportError("connection reset")))
        events.extend(normalizer.finish())
        events.extend(normalizer.fail(RuntimeError("again")))
        return events

    events = asyncio.run(_drive())

    assert event_types(events) == ["start", "text_start", "text_delta", "text_end", "error"]
    error = events[-1]
    assert error.reason is StopReason.ERROR
    assert error.error.error_message == "connection reset"
    assert error.error.text == "partial"


def test_cancellation_is_reported_as_aborted() -> None:
    normalizer = VertexStreamNormalizer(model_id="m")

    [event] = normalizer.fail(asyncio.CancelledError())

    assert isinstance(event, ErrorEvent)
    assert event.reason is StopReason.ABORTED
    assert event.error.error_message == "CancelledError"
