"""Retry helpers for rate-limited LLM calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Literal, TypeVar

from kgrlens.core.exceptions import RATE_LIMIT_MARKER, RateLimitExceededError

logger = logging.getLogger(__name__)

_ResultT = TypeVar("_ResultT")

ErrorKind = Literal["rate_limit", "terminal"]


def classify_llm_error(exc: BaseException) -> ErrorKind:
    """Return "rate_limit" when the provider asked us to slow down."""
    if isinstance(exc, RateLimitExceededError):
        return "rate_limit"
    if RATE_LIMIT_MARKER in str(exc):
        return "rate_limit"
    return "terminal"


def is_rate_limit_error(exc: BaseException) -> bool:
    return classify_llm_error(exc) == "rate_limit"


async def run_with_retry(
    operation: Callable[[], Awaitable[_ResultT]],
    *,
    operation_name: str,
    max_retries: int,
    base_delay_seconds: float,
    is_retryable: Callable[[BaseException], bool] = is_rate_limit_error,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    log_context: Mapping[str, Any] | None = None,
) -> _ResultT:
    """Run an async operation, retrying retryable failures with linear backoff.

    The operation runs at most ``max_retries + 1`` times. Retry ``n`` (1-based)
    waits ``base_delay_seconds * n`` first. Non-retryable errors and the error
    of the final attempt propagate unchanged.
    """
    if max_retries < 0:
        raise ValueError("max_retries must be >= 0")

    context = dict(log_context or {})
    for retry_count in range(max_retries + 1):
        try:
            return await operation()
        except Exception as exc:
            if not is_retryable(exc) or retry_count >= max_retries:
                raise
            delay = base_delay_seconds * (retry_count + 1)
            logger.warning(
                "Retryable error; backing off before next attempt",
                extra={
                    **context,
                    "operation": operation_name,
                    "attempt": retry_count + 1,
                    "max_attempts": max_retries + 1,
                    "delay_s": delay,
                    "error": str(exc),
                },
            )
            await sleep(delay)

    raise RuntimeError(f"Retry loop exhausted unexpectedly for operation: {operation_name}")
