"""Inputs, LLM payload schema and results for keyword analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, Field

ContentType = Literal["Target Page", "Support Article", "Pillar Page"]
SearchIntent = Literal["Informational", "Commercial", "Transactional", "Navigational"]
FunnelStage = Literal["TOFU", "MOFU", "BOFU"]


@dataclass(frozen=True, slots=True)
class KeywordInput:
    """A keyword and its monthly search volume."""

    keyword: str
    volume: int

    def __post_init__(self) -> None:
        if not self.keyword:
            raise ValueError("keyword must be non-empty")
        if self.volume < 0:
            raise ValueError(f"volume must be >= 0 (got {self.volume} for {self.keyword!r})")


@dataclass(frozen=True, slots=True)
class AnalysisContext:
    """Business context injected into every prompt of one batch."""

    category: str
    brand_name: str
    business_context: str


# LLM output schema


class ContentClassification(BaseModel):
    type: ContentType


class SearchIntentBlock(BaseModel):
    type: SearchIntent


class FunnelPosition(BaseModel):
    stage: FunnelStage


class OverallPriority(BaseModel):
    score: float = Field(ge=0, le=10)


class KeywordAnalysisBody(BaseModel):
    content_classification: ContentClassification
    search_intent: SearchIntentBlock
    marketing_funnel_position: FunnelPosition
    overall_priority: OverallPriority


class KeywordAnalysisPayload(BaseModel):
    """JSON object the model must return for each keyword."""

    keyword_analysis: KeywordAnalysisBody


# Results


@dataclass(frozen=True, slots=True)
class KeywordAnalysisSuccess:
    """Validated classification for one keyword."""

    content_type: ContentType
    search_intent: SearchIntent
    funnel_stage: FunnelStage
    priority_score: float
    raw: dict[str, Any] = field(default_factory=dict)
    total_tokens: int | None = None

    ok: Literal[True] = field(default=True, init=False)

    @classmethod
    def from_payload(
        cls,
        payload: KeywordAnalysisPayload,
        *,
        total_tokens: int | None = None,
    ) -> "KeywordAnalysisSuccess":
        body = payload.keyword_analysis
        return cls(
            content_type=body.content_classification.type,
            search_intent=body.search_intent.type,
            funnel_stage=body.marketing_funnel_position.stage,
            priority_score=body.overall_priority.score,
            raw=payload.model_dump(),
            total_tokens=total_tokens,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "content_type": self.content_type,
            "search_intent": self.search_intent,
            "funnel_stage": self.funnel_stage,
            "priority_score": self.priority_score,
            "total_tokens": self.total_tokens,
            "analysis": self.raw,
        }


@dataclass(frozen=True, slots=True)
class KeywordAnalysisFailure:
    """Terminal failure for one keyword; the rest of the batch is unaffected."""

    message: str

    ok: Literal[False] = field(default=False, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message}


KeywordAnalysisResult = KeywordAnalysisSuccess | KeywordAnalysisFailure
