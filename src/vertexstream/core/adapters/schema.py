"""Inbound ``streamGenerateContent`` chunk schemas."""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _ChunkModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


class UsageMetadata(_ChunkModel):
    """Cumulative token counters; each chunk repeats the running totals."""

    prompt_token_count: int = Field(0, alias="promptTokenCount", ge=0)
    candidates_token_count: int = Field(0, alias="candidatesTokenCount", ge=0)
    total_token_count: int = Field(0, alias="totalTokenCount", ge=0)

    @field_validator("prompt_token_count", "candidates_token_count", "total_token_count", mode="before")
    @classmethod
    def coerce_missing_count(cls, value: Any) -> Any:
        return 0 if value is None else value


class PromptFeedback(_ChunkModel):
    block_reason: Optional[str] = Field(None, alias="blockReason")
    safety_ratings: List[Any] = Field(default_factory=list, alias="safetyRatings")


class CandidateContent(_ChunkModel):
    role: Optional[str] = None
    # Non-object parts are kept here and ignored by part_from_wire.
    parts: List[Any] = Field(default_factory=list)


class Candidate(_ChunkModel):
    content: Optional[CandidateContent] = None
    finish_reason: Optional[str] = Field(None, alias="finishReason")
    safety_ratings: List[Any] = Field(default_factory=list, alias="safetyRatings")


class ResponseChunk(_ChunkModel):
    """One JSON object carried by a ``data:`` line."""

    candidates: List[Candidate] = Field(default_factory=list)
    usage_metadata: Optional[UsageMetadata] = Field(None, alias="usageMetadata")
    prompt_feedback: Optional[PromptFeedback] = Field(None, alias="promptFeedback")
    model_version: Optional[str] = Field(None, alias="modelVersion")
    response_id: Optional[str] = Field(None, alias="responseId")

    @property
    def first_candidate(self) -> Candidate | None:
        return self.candidates[0] if self.candidates else None


__all__ = [
    "Candidate",
    "CandidateContent",
    "PromptFeedback",
    "ResponseChunk",
    "UsageMetadata",
]
