"""Groq API integration for chat completions and model listing.

Groq exposes an OpenAI-compatible REST surface; only the two endpoints the
keyword analysis needs are wrapped here.
"""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from kgrlens.config import settings
from kgrlens.core.exceptions import (
    RATE_LIMIT_MARKER,
    APIKeyMissingError,
    LLMProviderError,
    RateLimitExceededError,
)

logger = logging.getLogger(__name__)

API_NAME = "Groq"


@dataclass(slots=True)
class ChatCompletion:
    """The parts of a chat-completion response the pipeline uses."""

    content: str | None
    model: str
    total_tokens: int | None = None


class GroqClient:
    """Client for the Groq REST API.

    Must be used as an async context manager so the underlying HTTP
    connection pool is closed deterministically.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.api_key = api_key or settings.groq_api_key
        self.base_url = (base_url or settings.groq_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.groq_timeout
        self._client: httpx.AsyncClient | None = None

        if not self.api_key:
            raise APIKeyMissingError(API_NAME)

    async def __aenter__(self) -> "GroqClient":
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("Client must be used as async context manager")
        return self._client

    async def create_chat_completion(
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> ChatCompletion:
        """Send a single non-streaming chat completion request."""
        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": False,
        }

        try:
            response = await self.client.post(f"{self.base_url}/chat/completions", json=payload)
        except httpx.HTTPError as e:
            logger.warning("Groq HTTP error", extra={"endpoint": "chat/completions", "error": str(e)})
            raise LLMProviderError(API_NAME, str(e)) from e

        if response.status_code != 200:
            raise _error_from_response(response, endpoint="chat/completions")

        body = response.json()
        choices = body.get("choices") or []
        content: str | None = None
        if choices:
            message = choices[0].get("message") or {}
            content = message.get("content")

        usage = body.get("usage") or {}
        total_tokens = usage.get("total_tokens")
        return ChatCompletion(
            content=content,
            model=str(body.get("model") or model),
            total_tokens=int(total_tokens) if isinstance(total_tokens, int | float) else None,
        )

    async def list_models(self) -> list[dict[str, Any]]:
        """Return raw model rows from the model-listing endpoint."""
        try:
            response = await self.client.get(f"{self.base_url}/models")
        except httpx.HTTPError as e:
            logger.warning("Groq HTTP error", extra={"endpoint": "models", "error": str(e)})
            raise LLMProviderError(API_NAME, str(e)) from e

        if response.status_code != 200:
            raise _error_from_response(response, endpoint="models")

        payload = response.json()
        rows = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(rows, list):
            raise LLMProviderError(API_NAME, "Model listing payload has no data list")
        return [row for row in rows if isinstance(row, dict)]


def _error_from_response(response: httpx.Response, *, endpoint: str) -> LLMProviderError:
    """Build a provider error that keeps Groq's error code in the message."""
    message = f"Request failed with status {response.status_code}"
    code: str | None = None
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        error = body["error"]
        message = str(error.get("message") or message)
        raw_code = error.get("code") or error.get("type")
        code = str(raw_code) if raw_code else None

    logger.warning(
        "Groq API error",
        extra={"endpoint": endpoint, "status": response.status_code, "code": code},
    )
    if response.status_code == 429 or code == RATE_LIMIT_MARKER:
        return RateLimitExceededError(API_NAME, message, status_code=response.status_code, code=code)
    return LLMProviderError(API_NAME, message, status_code=response.status_code, code=code)
