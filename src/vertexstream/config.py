"""Configuration helpers shared by the Vertex AI adapter."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final, Mapping

DEFAULT_BASE_URL: Final = "https://aiplatform.googleapis.com/v1/publishers/google/models"
API_KEY_ENV: Final = "VERTEX_AI_API_KEY"
BASE_URL_ENV: Final = "VERTEX_AI_BASE_URL"

# Vertex only accepts "user" and "model" framing for function responses and
# its guidance on which one a tool result belongs to differs between model
# versions. Every tool result is framed under this role unless a
# VertexConfig overrides it.
TOOL_RESULT_ROLE: Final = "user"

_WIRE_ROLES = frozenset({"user", "model"})


@dataclass(slots=True)
class VertexConfig:
    """Connection settings for :class:`~vertexstream.core.adapters.vertex.VertexAIAdapter`.

    Attributes
    ----------
    base_url:
        Prefix for the ``{model}:streamGenerateContent`` endpoint. Both the
        publisher form (ending in ``/models``) and bare prefixes are accepted.
    api_key:
        Credential appended to the request as the ``key`` query parameter.
        When ``None`` the stream fails with a configuration error before any
        network call is made.
    tool_result_role:
        Wire role used for ``functionResponse`` contents. Must be ``"user"``
        or ``"model"``.
    timeout_seconds:
        Timeout applied to HTTP clients created by the adapter itself.
        Injected clients keep their own timeout.
    """

    base_url: str = DEFAULT_BASE_URL
    api_key: str | None = None
    tool_result_role: str = TOOL_RESULT_ROLE
    timeout_seconds: float = 60.0

    def __post_init__(self) -> None:
        if self.tool_result_role not in _WIRE_ROLES:
            msg = "tool_result_role must be either 'user' or 'model'"
            raise ValueError(msg)
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if not self.base_url.strip():
            raise ValueError("base_url must not be empty")

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        tool_result_role: str = TOOL_RESULT_ROLE,
        timeout_seconds: float = 60.0,
    ) -> "VertexConfig":
        """Build a :class:`VertexConfig` from environment variables.

        ``VERTEX_AI_API_KEY`` supplies the credential and ``VERTEX_AI_BASE_URL``
        optionally replaces the default endpoint prefix. Blank values are
        treated as unset.
        """

        env = os.environ if environ is None else environ
        api_key = (env.get(API_KEY_ENV) or "").strip() or None
        base_url = (env.get(BASE_URL_ENV) or "").strip() or DEFAULT_BASE_URL
        return cls(
            base_url=base_url,
            api_key=api_key,
            tool_result_role=tool_result_role,
            timeout_seconds=timeout_seconds,
        )


__all__ = [
    "API_KEY_ENV",
    "BASE_URL_ENV",
    "DEFAULT_BASE_URL",
    "TOOL_RESULT_ROLE",
    "VertexConfig",
]
