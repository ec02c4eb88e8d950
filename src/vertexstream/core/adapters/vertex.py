"""Vertex AI ``streamGenerateContent`` adapter over httpx."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Mapping
from dataclasses import dataclass
import logging
from typing import Any, AsyncIterator, Deque

import httpx

from ...config import VertexConfig
from ..errors import AdapterError, ConfigError, TransportError
from ..message import Context
from .assembler import VertexStreamNormalizer
from .base import ModelAdapter
from .identity import ToolCallIdentityResolver
from .sse import SSEStreamParser
from .stream import BaseStreamIterator, StreamNormalizer
from .toolbridge import map_tool_choice, tool_specs_to_vertex
from .usage import CostFunction
from .utils import context_to_contents, contents_to_wire

LOGGER = logging.getLogger(__name__)

PROVIDER = "vertex-ai"

_RESERVED_KEYS = frozenset({"contents", "systemInstruction", "tools", "toolConfig", "generationConfig"})


@dataclass(frozen=True, slots=True)
class ThinkingOptions:
    """Reasoning controls forwarded as ``generationConfig.thinkingConfig``."""

    enabled: bool = True
    budget_tokens: int | None = None
    level: str | None = None

    def to_wire(self) -> dict[str, Any]:
        config: dict[str, Any] = {"includeThoughts": True}
        if self.budget_tokens is not None:
            config["thinkingBudget"] = self.budget_tokens
        if self.level is not None:
            config["thinkingLevel"] = self.level.upper()
        return config


@dataclass(frozen=True, slots=True)
class VertexRequest:
    """Everything needed to send one streaming request."""

    url: str
    body: dict[str, Any]
    api_key: str | None


def build_endpoint(base_url: str, model_id: str) -> str:
    """Return ``{base_url}/{model_id}:streamGenerateContent`` without doubling ``/models``."""

    base = base_url.rstrip("/")
    model = model_id.removeprefix("models/")
    if not base.endswith("/models"):
        base = f"{base}/models"
    return f"{base}/{model}:streamGenerateContent"


def build_request_body(
    context: Context,
    *,
    generation_config: Mapping[str, Any] | None = None,
    tool_choice: str | None = None,
    tool_result_role: str,
) -> dict[str, Any]:
    """Assemble the JSON body for ``streamGenerateContent``."""

    contents = context_to_contents(context, tool_result_role=tool_result_role)
    body: dict[str, Any] = {"contents": contents_to_wire(contents)}

    if context.system_prompt:
        body["systemInstruction"] = {"parts": [{"text": context.system_prompt}]}

    if generation_config:
        body["generationConfig"] = dict(generation_config)

    tools = tool_specs_to_vertex(context.tools)
    if tools:
        body["tools"] = tools
        if tool_choice:
            body["toolConfig"] = {"functionCallingConfig": {"mode": map_tool_choice(tool_choice)}}

    return body


class VertexAIAdapter(ModelAdapter):
    """Translate vertexstream contexts to Vertex AI streaming requests."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        default_model: str | None = None,
        config: VertexConfig | None = None,
        default_params: Mapping[str, Any] | None = None,
        cost_function: CostFunction | None = None,
    ) -> None:
        self._client = client
        self._default_model = default_model
        self._config = config or VertexConfig.from_env()
        self._default_params = dict(default_params or {})
        self._cost_function = cost_function

        if "model" in self._default_params and self._default_model is None:
            model_value = self._default_params.pop("model")
            self._default_model = str(model_value)

        conflict = _RESERVED_KEYS.intersection(self._default_params)
        if conflict:
            joined = ", ".join(sorted(conflict))
            msg = f"default parameters cannot include reserved keys: {joined}"
            raise ValueError(msg)

    def stream(self, context: Context, /, **options: Any) -> VertexStreamIterator:
        if not isinstance(context, Context):
            msg = "context must be a Context instance"
            raise AdapterError(msg)

        model_name = self._resolve_model(options)
        api_key = options.pop("api_key", None) or self._config.api_key
        tool_choice = options.pop("tool_choice", None)
        on_payload: Callable[[dict[str, Any]], Any] | None = options.pop("on_payload", None)
        generation_config = self._build_generation_config(options)

        if tool_choice is not None:
            map_tool_choice(tool_choice)

        body = build_request_body(
            context,
            generation_config=generation_config,
            tool_choice=tool_choice,
            tool_result_role=self._config.tool_result_role,
        )
        LOGGER.info(
            "vertex request: model=%s messages=%s tools=%s",
            model_name,
            len(context.messages),
            len(context.tools or ()),
        )

        request = VertexRequest(
            url=build_endpoint(self._config.base_url, model_name),
            body=body,
            api_key=api_key,
        )
        normalizer = VertexStreamNormalizer(
            model_id=model_name,
            provider=PROVIDER,
            api=PROVIDER,
            cost_function=self._cost_function,
            resolver=ToolCallIdentityResolver(),
        )
        return VertexStreamIterator(
            request,
            client=self._client,
            normalizer=normalizer,
            timeout=self._config.timeout_seconds,
            on_payload=on_payload,
        )

    def _resolve_model(self, options: dict[str, Any]) -> str:
        model_option = options.pop("model", None)
        model_name = model_option or self._default_model
        if not model_name:
            msg = "a model name must be provided"
            raise AdapterError(msg)
        return str(model_name)

    def _build_generation_config(self, options: dict[str, Any]) -> dict[str, Any]:
        config: dict[str, Any] = dict(self._default_params)

        temperature = options.pop("temperature", None)
        if temperature is not None:
            config["temperature"] = temperature

        max_tokens = options.pop("max_tokens", None)
        if max_tokens is not None:
            config["maxOutputTokens"] = max_tokens

        thinking = options.pop("thinking", None)
        if thinking is not None:
            if not isinstance(thinking, ThinkingOptions):
                msg = "thinking must be a ThinkingOptions instance"
                raise AdapterError(msg)
            if thinking.enabled:
                config["thinkingConfig"] = thinking.to_wire()

        for key, value in options.items():
            if key in _RESERVED_KEYS:
                msg = f"option '{key}' is managed by the adapter"
                raise AdapterError(msg)
            config[key] = value

        return config


class VertexStreamIterator(BaseStreamIterator):
    """Stream iterator that POSTs one request and parses its SSE response."""

    def __init__(
        self,
        request: VertexRequest,
        *,
        client: httpx.AsyncClient | None = None,
        normalizer: StreamNormalizer,
        parser: SSEStreamParser | None = None,
        timeout: float = 60.0,
        on_payload: Callable[[dict[str, Any]], Any] | None = None,
    ) -> None:
        self._request = request
        self._on_payload = on_payload
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._parser = parser or SSEStreamParser()
        self._pending: Deque[dict[str, Any]] = deque()
        self._response: httpx.Response | None = None
        self._byte_iterator: AsyncIterator[bytes] | None = None
        self._exhausted = False
        super().__init__(normalizer)

    @property
    def request(self) -> VertexRequest:
        return self._request

    async def _open(self) -> None:
        if not self._request.api_key:
            msg = "Vertex AI requires an API key"
            raise ConfigError(msg)

    async def _get_next_chunk(self) -> dict[str, Any]:
        while not self._pending:
            if self._exhausted:
                raise StopAsyncIteration
            await self._read_more()
        return self._pending.popleft()

    async def _read_more(self) -> None:
        if self._byte_iterator is None:
            self._byte_iterator = await self._send()

        try:
            data = await self._byte_iterator.__anext__()
        except StopAsyncIteration:
            self._exhausted = True
            self._pending.extend(self._parser.flush())
            return
        except httpx.HTTPError as exc:
            msg = f"Vertex AI stream interrupted: {exc}"
            raise TransportError(msg) from exc

        self._pending.extend(self._parser.feed(data))

    async def _send(self) -> AsyncIterator[bytes]:
        if self._on_payload is not None:
            self._on_payload(self._request.body)

        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)

        request = self._client.build_request(
            "POST",
            self._request.url,
            params={"key": self._request.api_key, "alt": "sse"},
            json=self._request.body,
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            msg = f"Vertex AI request failed: {exc}"
            raise TransportError(msg) from exc

        self._response = response
        if not response.is_success:
            await response.aread()
            body = response.text
            msg = f"Vertex AI request failed with status {response.status_code}: {body}"
            raise TransportError(msg, status_code=response.status_code, body=body)

        return response.aiter_bytes()

    async def _on_close(self) -> None:
        response, self._response = self._response, None
        if response is not None:
            await response.aclose()
        if self._owns_client and self._client is not None:
            client, self._client = self._client, None
            await client.aclose()


__all__ = [
    "PROVIDER",
    "ThinkingOptions",
    "VertexAIAdapter",
    "VertexRequest",
    "VertexStreamIterator",
    "build_endpoint",
    "build_request_body",
]
