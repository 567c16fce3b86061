"""SERP provider integration used for KGR analysis.

Every query is pinned to Google Portugal, desktop, JSON output.
"""

import logging
from typing import Any

import httpx

from kgrlens.config import settings
from kgrlens.core.exceptions import APIKeyMissingError, SerpAPIError

logger = logging.getLogger(__name__)

API_NAME = "SERP"

RESULT_BLOCKS = (
    "organic_results",
    "people_also_ask",
    "related_searches",
    "answer_box",
)

LOCALE_PARAMS = {
    "domain": "google.pt",
    "gl": "pt",
    "hl": "pt",
    "device": "desktop",
    "resultFormat": "json",
}


class SerpClient:
    """Client for the metered SERP search endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.api_key = api_key or settings.serp_api_key
        self.base_url = base_url or settings.serp_base_url
        self.timeout = timeout if timeout is not None else settings.serp_timeout
        self._client: httpx.AsyncClient | None = None

        if not self.api_key:
            raise APIKeyMissingError(API_NAME)
        if not self.base_url:
            raise APIKeyMissingError(API_NAME, "Base URL")

    async def __aenter__(self) -> "SerpClient":
        self._client = httpx.AsyncClient(timeout=self.timeout)
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("Client must be used as async context manager")
        return self._client

    def build_params(self, keyword: str) -> dict[str, str]:
        """Query parameters for one keyword search."""
        assert self.api_key is not None
        return {
            "apiKey": self.api_key,
            "q": keyword,
            **LOCALE_PARAMS,
            "resultBlocks": ",".join(RESULT_BLOCKS),
        }

    async def search(self, keyword: str) -> dict[str, Any]:
        """Run one SERP query and return the decoded JSON body.

        Raises:
            SerpAPIError: on transport failure or any non-2xx status.
        """
        logger.info("SERP API request", extra={"keyword": keyword})
        assert self.base_url is not None

        try:
            response = await self.client.get(self.base_url, params=self.build_params(keyword))
        except httpx.HTTPError as e:
            logger.warning("SERP HTTP error", extra={"keyword": keyword, "error": str(e)})
            raise SerpAPIError(f"SERP request failed: {e}") from e

        if not response.is_success:
            logger.warning(
                "SERP API error",
                extra={"keyword": keyword, "status": response.status_code},
            )
            raise SerpAPIError(
                f"API returned status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise SerpAPIError("SERP response is not valid JSON", status_code=response.status_code) from e

        if not isinstance(payload, dict):
            raise SerpAPIError("SERP response has invalid root type", status_code=response.status_code)
        return payload
