"""Keyword Golden Ratio helpers.

KGR here is the number of top-10 organic titles containing the keyword,
divided by 10. It is only meaningful for keywords at or below the volume
ceiling.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from kgrlens.services.serp.types import AnswerBox, KGRRating, PeopleAlsoAsk, SerpAnalysisResult

KGR_VOLUME_CEILING = 250
KGR_GREAT_BELOW = 0.25
KGR_MIGHT_WORK_UP_TO = 1.0


def is_kgr_eligible(volume: int, ceiling: int = KGR_VOLUME_CEILING) -> bool:
    return volume <= ceiling


def over_limit_message(ceiling: int = KGR_VOLUME_CEILING) -> str:
    return f"Volume exceeds KGR limit ({ceiling})"


def not_applicable_result(error: str) -> SerpAnalysisResult:
    """Result used for ineligible keywords and per-keyword failures."""
    return SerpAnalysisResult(
        title_matches=0,
        kgr=None,
        kgr_rating="not_applicable",
        error=error,
    )


def count_title_matches(keyword: str, organic_results: Iterable[Any]) -> int:
    """Count organic results whose title contains the keyword (case-insensitive)."""
    needle = keyword.lower()
    matches = 0
    for result in organic_results:
        if not isinstance(result, dict):
            continue
        title = result.get("title")
        if isinstance(title, str) and needle in title.lower():
            matches += 1
    return matches


def compute_kgr(title_matches: int) -> float:
    return title_matches / 10


def rate_kgr(kgr: float | None) -> KGRRating:
    """Map a KGR value to its band."""
    if kgr is None:
        return "not_applicable"
    if kgr < KGR_GREAT_BELOW:
        return "great"
    if kgr <= KGR_MIGHT_WORK_UP_TO:
        return "might_work"
    return "bad"


def parse_people_also_ask(items: Any) -> list[PeopleAlsoAsk]:
    if not isinstance(items, list):
        return []
    parsed: list[PeopleAlsoAsk] = []
    for item in items:
        if not isinstance(item, dict) or not item.get("question"):
            continue
        answer = item.get("answer")
        parsed.append(
            PeopleAlsoAsk(
                question=str(item["question"]),
                answer=str(answer) if answer is not None else None,
            )
        )
    return parsed


def parse_answer_box(payload: Any) -> AnswerBox | None:
    if not isinstance(payload, dict) or not payload:
        return None
    return AnswerBox(
        title=payload.get("title"),
        content=payload.get("content"),
        type=payload.get("type"),
    )


def parse_related_searches(items: Any) -> list[str]:
    """Related searches arrive either as strings or as ``{"query": ...}`` objects."""
    if not isinstance(items, list):
        return []
    queries: list[str] = []
    for item in items:
        if isinstance(item, str) and item:
            queries.append(item)
        elif isinstance(item, dict):
            query = item.get("query") or item.get("title")
            if isinstance(query, str) and query:
                queries.append(query)
    return queries
