"""Domain types for SERP credit accounting and KGR results."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

KGRRating = Literal["great", "might_work", "bad", "not_applicable"]


@dataclass(frozen=True, slots=True)
class SerpUsage:
    """Monthly SERP credit balance; ``remaining`` is always derived."""

    used: int
    total: int

    @property
    def remaining(self) -> int:
        return self.total - self.used

    def to_dict(self) -> dict[str, int]:
        return {"used": self.used, "total": self.total, "remaining": self.remaining}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "SerpUsage":
        """Deserialize a persisted record; a stored ``remaining`` is ignored."""
        used = int(payload["used"])
        total = int(payload["total"])
        if used < 0:
            raise ValueError(f"used must be >= 0 (got {used})")
        return cls(used=used, total=total)


@dataclass(frozen=True, slots=True)
class PeopleAlsoAsk:
    question: str
    answer: str | None = None


@dataclass(frozen=True, slots=True)
class AnswerBox:
    title: str | None = None
    content: str | None = None
    type: str | None = None


@dataclass(frozen=True, slots=True)
class SerpAnalysisResult:
    """KGR analysis of one keyword."""

    title_matches: int
    kgr: float | None
    kgr_rating: KGRRating
    people_also_ask: list[PeopleAlsoAsk] = field(default_factory=list)
    answer_box: AnswerBox | None = None
    related_searches: list[str] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
