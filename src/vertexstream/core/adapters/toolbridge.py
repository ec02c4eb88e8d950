"""Mapping helpers between vertexstream tool specs and Vertex declarations."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
import json
import logging
import re
from typing import Any

from ..errors import AdapterError
from ..message import ensure_json_compatible, freeze_json_structure, thaw_json_structure

LOGGER = logging.getLogger(__name__)

_NAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_.:-]{0,63}$")

_TOOL_CHOICE_MODES = {"auto": "AUTO", "none": "NONE", "any": "ANY"}


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Canonical tool/function description."""

    name: str
    parameters: Mapping[str, Any]
    description: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not _NAME_PATTERN.fullmatch(self.name):
            msg = "tool name must match ^[a-zA-Z_][a-zA-Z0-9_.:-]{0,63}$"
            raise AdapterError(msg)

        normalized_description: str | None = None
        if self.description is not None:
            if not isinstance(self.description, str):
                msg = "tool description must be a string when provided"
                raise AdapterError(msg)
            stripped = self.description.strip()
            if not stripped:
                msg = "tool description cannot be empty"
                raise AdapterError(msg)
            normalized_description = stripped

        if not isinstance(self.parameters, Mapping):
            msg = "tool parameters must be a mapping"
            raise AdapterError(msg)

        raw_parameters = thaw_json_structure(self.parameters)
        try:
            ensure_json_compatible(raw_parameters, path=f"ToolSpec('{self.name}').parameters")
            sanitized = json.loads(json.dumps(raw_parameters, allow_nan=False))
        except (TypeError, ValueError) as exc:
            msg = f"tool parameters must be JSON serializable: {exc}"
            raise AdapterError(msg) from exc

        if sanitized.get("type") != "object":
            msg = "tool parameters must describe a JSON object"
            raise AdapterError(msg)

        properties = sanitized.get("properties", {})
        if not isinstance(properties, dict):
            msg = "tool parameter 'properties' must be a mapping"
            raise AdapterError(msg)

        required = sanitized.get("required")
        if required is not None:
            if not isinstance(required, list):
                msg = "tool parameter 'required' must be a list of strings"
                raise AdapterError(msg)
            for index, item in enumerate(required):
                if not isinstance(item, str) or not item:
                    msg = f"required parameter names must be non-empty strings (index {index})"
                    raise AdapterError(msg)
                if item not in properties:
                    msg = f"required parameter '{item}' is not defined"
                    raise AdapterError(msg)

        if normalized_description is not None:
            object.__setattr__(self, "description", normalized_description)
        object.__setattr__(self, "parameters", freeze_json_structure(sanitized))


def tool_specs_to_vertex(tool_specs: Sequence[ToolSpec] | None) -> list[dict[str, Any]] | None:
    """Group tool specs under a single ``functionDeclarations`` entry.

    Returns ``None`` when there is nothing to declare so callers can omit the
    ``tools`` field entirely. Entries that are not :class:`ToolSpec` and
    repeated names are skipped rather than rejected.
    """

    if not tool_specs or isinstance(tool_specs, (str, bytes, bytearray, Mapping)):
        return None

    declarations: list[dict[str, Any]] = []
    seen_names: set[str] = set()
    for index, spec in enumerate(tool_specs):
        if not isinstance(spec, ToolSpec):
            LOGGER.warning("skipping tools[%s]: expected ToolSpec, got %s", index, type(spec).__name__)
            continue
        if spec.name in seen_names:
            LOGGER.warning("skipping duplicate tool declaration %r", spec.name)
            continue
        seen_names.add(spec.name)

        declaration: dict[str, Any] = {"name": spec.name}
        if spec.description is not None:
            declaration["description"] = spec.description
        declaration["parameters"] = thaw_json_structure(spec.parameters)
        declarations.append(declaration)

    if not declarations:
        return None
    return [{"functionDeclarations": declarations}]


def map_tool_choice(choice: str) -> str:
    """Translate ``auto``/``none``/``any`` into a Vertex function calling mode."""

    mode = _TOOL_CHOICE_MODES.get(choice.strip().lower()) if isinstance(choice, str) else None
    if mode is None:
        allowed = ", ".join(sorted(_TOOL_CHOICE_MODES))
        msg = f"tool_choice must be one of: {allowed}"
        raise AdapterError(msg)
    return mode


__all__ = ["ToolSpec", "map_tool_choice", "tool_specs_to_vertex"]
