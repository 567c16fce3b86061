"""Cached model listing and current-model selection."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from typing import Any

from kgrlens.config import settings
from kgrlens.core.kv_store import KeyValueStore
from kgrlens.integrations.groq import GroqClient
from kgrlens.services.model_directory.display_names import get_display_name, is_listable_model
from kgrlens.services.model_directory.types import ModelDescriptor

logger = logging.getLogger(__name__)

MODELS_CACHE_KEY = "groq_models"
CURRENT_MODEL_KEY = "groq_model"

FALLBACK_MODELS: tuple[ModelDescriptor, ...] = (
    ModelDescriptor(id="mixtral-8x7b-32768", name=get_display_name("mixtral-8x7b-32768")),
    ModelDescriptor(id="llama2-70b-4096", name=get_display_name("llama2-70b-4096")),
)


class ModelDirectory:
    """Resolve available Groq models and the user's selected model.

    The model list is cached in the key-value store for ``ttl_seconds``.
    Listing never raises: any failure degrades to :data:`FALLBACK_MODELS`.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        api_key: str | None = None,
        ttl_seconds: float | None = None,
        default_model: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.api_key = api_key
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.model_cache_ttl_seconds
        self.default_model = default_model or settings.groq_default_model
        self._clock = clock

    async def get_models(self) -> list[ModelDescriptor]:
        """Return available models, from cache when fresh."""
        cached = self._load_cached_models()
        if cached is not None:
            logger.info("Model list cache hit", extra={"model_count": len(cached)})
            return cached

        try:
            async with GroqClient(api_key=self.api_key) as client:
                rows = await client.list_models()
            models = self._build_descriptors(rows)
            if not models:
                raise ValueError("Model listing returned no usable models")
        except Exception as exc:
            logger.warning("Failed to fetch model list, using fallback", extra={"error": str(exc)})
            return get_fallback_models()

        try:
            self._cache_models(models)
        except Exception as exc:
            logger.warning("Failed to cache model list", extra={"error": str(exc)})
        logger.info("Model list refreshed", extra={"model_count": len(models)})
        return models

    def get_current_model(self) -> str:
        """Return the selected model id, or the configured default."""
        return self.store.get(CURRENT_MODEL_KEY) or self.default_model

    def set_current_model(self, model_id: str) -> None:
        """Persist the selected model id.

        The id is not checked against :meth:`get_models`.
        """
        self.store.set(CURRENT_MODEL_KEY, model_id)
        logger.info("Current model updated", extra={"model": model_id})

    def _build_descriptors(self, rows: list[dict[str, Any]]) -> list[ModelDescriptor]:
        models: list[ModelDescriptor] = []
        for row in rows:
            model_id = row.get("id")
            if not isinstance(model_id, str) or not model_id:
                continue
            if not is_listable_model(model_id):
                continue
            models.append(
                ModelDescriptor.from_dict({**row, "name": get_display_name(model_id)})
            )
        return models

    def _load_cached_models(self) -> list[ModelDescriptor] | None:
        try:
            raw = self.store.get(MODELS_CACHE_KEY)
            if not raw:
                return None
            payload = json.loads(raw)
            timestamp = float(payload["timestamp"])
            rows = payload["models"]

            if self._clock() - timestamp >= self.ttl_seconds:
                self.store.remove(MODELS_CACHE_KEY)
                return None
        except Exception as exc:
            logger.warning("Ignoring unreadable model cache entry", extra={"error": str(exc)})
            return None

        if not isinstance(rows, list):
            return None
        models = [ModelDescriptor.from_dict(row) for row in rows if isinstance(row, dict)]
        # An empty cached list counts as a miss
        return models or None

    def _cache_models(self, models: list[ModelDescriptor]) -> None:
        payload = {
            "models": [model.to_dict() for model in models],
            "timestamp": self._clock(),
        }
        self.store.set(MODELS_CACHE_KEY, json.dumps(payload))


def get_fallback_models() -> list[ModelDescriptor]:
    """Known-good models used when the listing endpoint is unavailable."""
    return [ModelDescriptor.from_dict(model.to_dict()) for model in FALLBACK_MODELS]
