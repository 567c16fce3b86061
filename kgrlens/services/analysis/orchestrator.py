"""Batched LLM classification of keywords.

Keywords are split into fixed-size chunks. Requests inside a chunk run
concurrently; chunks run one after another with a pause in between so the
provider's aggregate rate limit is respected. A keyword's failure is recorded
as a :class:`KeywordAnalysisFailure` and never aborts the batch.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol

from pydantic import ValidationError

from kgrlens.config import settings
from kgrlens.core.exceptions import LLMResponseError
from kgrlens.core.retry import run_with_retry
from kgrlens.integrations.groq import ChatCompletion
from kgrlens.services.analysis.prompts import build_system_prompt, build_user_prompt
from kgrlens.services.analysis.types import (
    AnalysisContext,
    KeywordAnalysisFailure,
    KeywordAnalysisPayload,
    KeywordAnalysisResult,
    KeywordAnalysisSuccess,
    KeywordInput,
)
from kgrlens.services.model_directory.directory import ModelDirectory

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class ChatCompletionClient(Protocol):
    async def create_chat_completion(
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> ChatCompletion: ...


def parse_analysis_content(content: str | None) -> KeywordAnalysisPayload:
    """Decode and validate the model's JSON answer.

    Raises:
        LLMResponseError: content is empty, not JSON, or off-schema.
    """
    if not content or not content.strip():
        raise LLMResponseError("Empty response from API")

    raw = content.strip()
    if raw.startswith("```"):
        lines = raw.split("\n")
        if lines[-1].strip() == "```":
            lines = lines[:-1]
        raw = "\n".join(lines[1:]).strip()

    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as e:
        raise LLMResponseError(f"Invalid JSON in analysis response: {e}") from e

    try:
        return KeywordAnalysisPayload.model_validate(decoded)
    except ValidationError as e:
        raise LLMResponseError(
            f"Analysis response does not match schema: {e.error_count()} validation error(s)",
            details={"errors": e.errors(include_url=False)},
        ) from e


class KeywordAnalysisOrchestrator:
    """Drive per-keyword chat completions in paced, concurrent chunks."""

    def __init__(
        self,
        client: ChatCompletionClient,
        model_directory: ModelDirectory,
        *,
        batch_size: int | None = None,
        batch_delay_seconds: float | None = None,
        max_retries: int | None = None,
        retry_delay_seconds: float | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.client = client
        self.model_directory = model_directory
        self.batch_size = batch_size if batch_size is not None else settings.llm_batch_size
        self.batch_delay_seconds = (
            batch_delay_seconds if batch_delay_seconds is not None else settings.llm_batch_delay_seconds
        )
        self.max_retries = max_retries if max_retries is not None else settings.llm_max_retries
        self.retry_delay_seconds = (
            retry_delay_seconds if retry_delay_seconds is not None else settings.llm_retry_delay_seconds
        )
        self.temperature = temperature if temperature is not None else settings.llm_temperature
        self.max_tokens = max_tokens if max_tokens is not None else settings.llm_max_tokens
        self._sleep = sleep

        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")

    async def analyze_keywords(
        self,
        keywords: Sequence[KeywordInput],
        context: AnalysisContext,
        on_progress: ProgressCallback | None = None,
    ) -> dict[str, KeywordAnalysisResult]:
        """Classify every keyword; the result has one entry per input keyword."""
        results: dict[str, KeywordAnalysisResult] = {}
        total = len(keywords)
        if total == 0:
            return results

        model = self.model_directory.get_current_model()
        system_prompt = build_system_prompt(context)
        total_batches = (total + self.batch_size - 1) // self.batch_size
        processed = 0

        logger.info(
            "Keyword analysis started",
            extra={
                "keyword_count": total,
                "batch_size": self.batch_size,
                "total_batches": total_batches,
                "model": model,
            },
        )

        async def _process(item: KeywordInput) -> None:
            nonlocal processed
            results[item.keyword] = await self._analyze_keyword(item, context, model, system_prompt)
            processed += 1
            if on_progress:
                on_progress(processed / total * 100)

        for batch_num, start in enumerate(range(0, total, self.batch_size)):
            batch = keywords[start:start + self.batch_size]
            await asyncio.gather(*[_process(item) for item in batch])

            logger.info(
                "Keyword analysis batch completed",
                extra={
                    "batch_num": batch_num + 1,
                    "total_batches": total_batches,
                    "processed": processed,
                },
            )

            if start + self.batch_size < total:
                await self._sleep(self.batch_delay_seconds)

        failures = sum(1 for result in results.values() if not result.ok)
        total_tokens = sum(
            result.total_tokens or 0
            for result in results.values()
            if isinstance(result, KeywordAnalysisSuccess)
        )
        logger.info(
            "Keyword analysis completed",
            extra={
                "keyword_count": total,
                "failures": failures,
                "total_tokens": total_tokens,
            },
        )
        return results

    async def _analyze_keyword(
        self,
        item: KeywordInput,
        context: AnalysisContext,
        model: str,
        system_prompt: str,
    ) -> KeywordAnalysisResult:
        user_prompt = build_user_prompt(item.keyword, item.volume, context)

        async def _attempt() -> KeywordAnalysisSuccess:
            completion = await self.client.create_chat_completion(
                model=model,
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
            payload = parse_analysis_content(completion.content)
            return KeywordAnalysisSuccess.from_payload(payload, total_tokens=completion.total_tokens)

        try:
            return await run_with_retry(
                _attempt,
                operation_name="keyword_analysis",
                max_retries=self.max_retries,
                base_delay_seconds=self.retry_delay_seconds,
                sleep=self._sleep,
                log_context={"keyword": item.keyword},
            )
        except Exception as exc:
            logger.warning(
                "Keyword analysis failed",
                extra={"keyword": item.keyword, "error": str(exc)},
            )
            return KeywordAnalysisFailure(message=str(exc) or "Analysis failed")
