"""Quota-gated, rate-limited SERP enrichment for KGR analysis."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol

from kgrlens.config import settings
from kgrlens.core.exceptions import SerpQuotaExceededError
from kgrlens.services.analysis.types import KeywordInput
from kgrlens.services.serp.kgr import (
    compute_kgr,
    count_title_matches,
    is_kgr_eligible,
    not_applicable_result,
    over_limit_message,
    parse_answer_box,
    parse_people_also_ask,
    parse_related_searches,
    rate_kgr,
)
from kgrlens.services.serp.ledger import SerpCreditLedger
from kgrlens.services.serp.types import SerpAnalysisResult

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class SerpSearchClient(Protocol):
    async def search(self, keyword: str) -> dict[str, Any]: ...


class SerpEnrichmentPipeline:
    """Compute KGR for keywords, one provider call at a time.

    Each successful provider call costs one credit. Keywords above the volume
    ceiling never reach the provider.
    """

    def __init__(
        self,
        client: SerpSearchClient,
        ledger: SerpCreditLedger,
        *,
        volume_ceiling: int | None = None,
        rate_limit_seconds: float | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.client = client
        self.ledger = ledger
        self.volume_ceiling = volume_ceiling if volume_ceiling is not None else settings.kgr_volume_ceiling
        self.rate_limit_seconds = (
            rate_limit_seconds if rate_limit_seconds is not None else settings.serp_rate_limit_seconds
        )
        self._sleep = sleep
        self._batch_lock = asyncio.Lock()

    def _over_limit(self) -> SerpAnalysisResult:
        return not_applicable_result(over_limit_message(self.volume_ceiling))

    async def analyze_keyword(self, keyword: str, volume: int) -> SerpAnalysisResult:
        """Analyze one keyword.

        Raises:
            SerpQuotaExceededError: no credits left.
            SerpAPIError: the provider call failed.
        """
        if not is_kgr_eligible(volume, self.volume_ceiling):
            return self._over_limit()

        usage = self.ledger.get_usage()
        if usage.remaining < 1:
            raise SerpQuotaExceededError()

        data = await self.client.search(keyword)
        self.ledger.update_usage(1)

        title_matches = count_title_matches(keyword, data.get("organic_results") or [])
        kgr = compute_kgr(title_matches)
        return SerpAnalysisResult(
            title_matches=title_matches,
            kgr=kgr,
            kgr_rating=rate_kgr(kgr),
            people_also_ask=parse_people_also_ask(data.get("people_also_ask")),
            answer_box=parse_answer_box(data.get("answer_box")),
            related_searches=parse_related_searches(data.get("related_searches")),
        )

    async def batch_analyze_keywords(
        self,
        keywords: Sequence[KeywordInput],
        on_progress: ProgressCallback | None = None,
    ) -> dict[str, SerpAnalysisResult]:
        """Analyze keywords sequentially, pausing between provider calls.

        Raises:
            SerpQuotaExceededError: fewer credits remain than eligible keywords;
                raised before any provider call.
        """
        async with self._batch_lock:
            return await self._batch_analyze(keywords, on_progress)

    async def _batch_analyze(
        self,
        keywords: Sequence[KeywordInput],
        on_progress: ProgressCallback | None,
    ) -> dict[str, SerpAnalysisResult]:
        eligible = [item for item in keywords if is_kgr_eligible(item.volume, self.volume_ceiling)]

        if not eligible:
            logger.info(
                f"No keywords eligible for KGR analysis (volume must be <= {self.volume_ceiling})",
                extra={"keyword_count": len(keywords)},
            )
            return {item.keyword: self._over_limit() for item in keywords}

        usage = self.ledger.get_usage()
        if usage.remaining < len(eligible):
            logger.error(
                "Not enough SERP credits for batch",
                extra={"needed": len(eligible), "remaining": usage.remaining},
            )
            raise SerpQuotaExceededError(
                f"Insufficient SERP credits: need {len(eligible)}, "
                f"but only {usage.remaining} remaining"
            )

        logger.info(
            "SERP batch started",
            extra={
                "keyword_count": len(keywords),
                "eligible": len(eligible),
                "remaining_credits": usage.remaining,
            },
        )

        results: dict[str, SerpAnalysisResult] = {}
        total = len(keywords)
        last_index = total - 1

        for index, item in enumerate(keywords):
            if not is_kgr_eligible(item.volume, self.volume_ceiling):
                results[item.keyword] = self._over_limit()
            else:
                try:
                    results[item.keyword] = await self.analyze_keyword(item.keyword, item.volume)
                except Exception as exc:
                    logger.warning(
                        "SERP analysis failed for keyword",
                        extra={"keyword": item.keyword, "error": str(exc)},
                    )
                    results[item.keyword] = not_applicable_result(str(exc) or "Analysis failed")

                if index < last_index:
                    await self._sleep(self.rate_limit_seconds)

            if on_progress:
                on_progress((index + 1) / total * 100)

        logger.info(
            "SERP batch completed",
            extra={
                "keyword_count": total,
                "failures": sum(
                    1 for item in eligible if results[item.keyword].error is not None
                ),
                "remaining_credits": self.ledger.get_usage().remaining,
            },
        )
        return results
