from __future__ import annotations

import logging

import pytest

from vertexstream.core.adapters.toolbridge import ToolSpec, map_tool_choice, tool_specs_to_vertex
from vertexstream.core.errors import AdapterError

PARAMS = {
    "type": "object",
    "properties": {"city": {"type": "string"}},
    "required": ["city"],
}


def test_specs_are_grouped_under_one_declaration_entry() -> None:
    specs = [
        ToolSpec(name="get_weather", parameters=PARAMS, description="  Weather lookup  "),
        ToolSpec(name="get_time", parameters={"type": "object", "properties": {}}),
    ]

    assert tool_specs_to_vertex(specs) == [
        {
            "functionDeclarations": [
                {"name": "get_weather", "description": "Weather lookup", "parameters": PARAMS},
                {"name": "get_time", "parameters": {"type": "object", "properties": {}}},
            ]
        }
    ]


def test_no_tools_means_no_declarations() -> None:
    assert tool_specs_to_vertex(None) is None
    assert tool_specs_to_vertex([]) is None


def test_invalid_entries_and_duplicates_are_skipped(caplog: pytest.LogCaptureFixture) -> None:
    spec = ToolSpec(name="get_weather", parameters=PARAMS)

    with caplog.at_level(logging.WARNING):
        declared = tool_specs_to_vertex([spec, {"name": "raw"}, spec])  # type: ignore[list-item]

    assert declared is not None
    assert [item["name"] for item in declared[0]["functionDeclarations"]] == ["get_weather"]
    assert len(caplog.records) == 2


def test_tool_spec_parameters_are_frozen_copies() -> None:
    params = {"type": "object", "properties": {"a": {"type": "integer"}}}
    spec = ToolSpec(name="f", parameters=params)
    params["properties"]["b"] = {"type": "string"}

    assert "b" not in spec.parameters["properties"]
    with pytest.raises(TypeError):
        spec.parameters["type"] = "array"  # type: ignore[index]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"name": "1bad", "parameters": PARAMS},
        {"name": "ok", "parameters": {"type": "array"}},
        {"name": "ok", "parameters": {"type": "object", "properties": {}, "required": ["missing"]}},
        {"name": "ok", "parameters": PARAMS, "description": "   "},
        {"name": "ok", "parameters": {"type": "object", "default": float("nan")}},
    ],
)
def test_invalid_tool_specs_raise(kwargs: dict[str, object]) -> None:
    with pytest.raises(AdapterError):
        ToolSpec(**kwargs)  # type: ignore[arg-type]


@pytest.mark.parametrize(("choice", "mode"), [("auto", "AUTO"), ("none", "NONE"), ("any", "ANY"), (" Any ", "ANY")])
def test_tool_choice_modes(choice: str, mode: str) -> None:
    assert map_tool_choice(choice) == mode


def test_unknown_tool_choice_raises() -> None:
    with pytest.raises(AdapterError):
        map_tool_choice("required")
