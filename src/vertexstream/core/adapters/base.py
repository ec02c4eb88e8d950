"""Adapter interface shared by provider implementations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ..message import AssistantMessage, Context
from .stream import BaseStreamIterator, complete


class ModelAdapter(ABC):
    """Abstract interface for provider-specific adapters."""

    @abstractmethod
    def stream(self, context: Context, /, **options: Any) -> BaseStreamIterator:
        """Return an async iterator that yields canonical streaming events."""

    async def complete(self, context: Context, /, **options: Any) -> AssistantMessage:
        """Drain :meth:`stream` and return the final assistant message."""

        return await complete(self.stream(context, **options))
