"""Usage accounting for streamed responses."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace

from ..message import Cost, Usage
from .schema import UsageMetadata

CostFunction = Callable[[str, Usage], Cost]

_PER_MILLION = 1_000_000


def zero_cost(model_id: str, usage: Usage) -> Cost:  # noqa: ARG001
    return Cost()


@dataclass(frozen=True, slots=True)
class ModelRates:
    """Prices in currency units per million tokens."""

    input: float = 0.0
    output: float = 0.0
    cache_read: float = 0.0
    cache_write: float = 0.0


def per_million_rates(table: Mapping[str, ModelRates]) -> CostFunction:
    """Build a pure cost function from a model id to rate table.

    Unknown models cost nothing.
    """

    rates_by_model = dict(table)

    def _cost(model_id: str, usage: Usage) -> Cost:
        rates = rates_by_model.get(model_id)
        if rates is None:
            return Cost()
        input_cost = rates.input * usage.input / _PER_MILLION
        output_cost = rates.output * usage.output / _PER_MILLION
        cache_read_cost = rates.cache_read * usage.cache_read / _PER_MILLION
        cache_write_cost = rates.cache_write * usage.cache_write / _PER_MILLION
        return Cost(
            input=input_cost,
            output=output_cost,
            cache_read=cache_read_cost,
            cache_write=cache_write_cost,
            total=input_cost + output_cost + cache_read_cost + cache_write_cost,
        )

    return _cost


class UsageAggregator:
    """Fold ``usageMetadata`` into the running :class:`Usage` of one stream.

    Vertex reports cumulative totals, so counts are overwritten rather than
    summed, and cost is recomputed from the new snapshot each time.
    """

    def __init__(self, model_id: str, cost_function: CostFunction | None = None) -> None:
        self._model_id = model_id
        self._cost_function = cost_function or zero_cost

    def apply(self, current: Usage, metadata: UsageMetadata) -> Usage:
        updated = replace(
            current,
            input=metadata.prompt_token_count,
            output=metadata.candidates_token_count,
            total_tokens=metadata.total_token_count,
        )
        return replace(updated, cost=self._cost_function(self._model_id, updated))


__all__ = ["CostFunction", "ModelRates", "UsageAggregator", "per_million_rates", "zero_cost"]
