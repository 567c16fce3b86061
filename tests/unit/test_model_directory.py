"""Unit tests for the cached model directory."""

from __future__ import annotations

import json
from typing import Any

import pytest

from kgrlens.config import settings
from kgrlens.core.kv_store import InMemoryKeyValueStore
from kgrlens.services.model_directory.directory import (
    CURRENT_MODEL_KEY,
    MODELS_CACHE_KEY,
    ModelDirectory,
)
from kgrlens.services.model_directory.display_names import get_display_name

_PAYLOAD = {
    "data": [
        {"id": "llama3-70b-8192", "owned_by": "Meta", "created": 1700000000},
        {"id": "mixtral-8x7b-32768", "owned_by": "Mistral AI"},
        {"id": "whisper-large-v3-test", "owned_by": "OpenAI"},
        {"id": "gemma-7b-it-deprecated", "owned_by": "Google"},
        {"id": "brand-new-model", "owned_by": "Groq"},
    ]
}


class _Clock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class _FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None) -> None:
        self.status_code = status_code
        self._body = body if body is not None else _PAYLOAD

    def json(self) -> Any:
        return self._body


def _install_fake_http(
    monkeypatch: pytest.MonkeyPatch,
    response: _FakeResponse,
) -> list[str]:
    calls: list[str] = []

    class FakeAsyncClient:
        def __init__(self, *args: Any, **kwargs: Any) -> None:
            pass

        async def get(self, url: str, *args: Any, **kwargs: Any) -> _FakeResponse:
            calls.append(url)
            return response

        async def aclose(self) -> None:
            return None

    monkeypatch.setattr("kgrlens.integrations.groq.httpx.AsyncClient", FakeAsyncClient)
    return calls


@pytest.mark.asyncio
async def test_get_models_filters_and_names_models(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _install_fake_http(monkeypatch, _FakeResponse())
    store = InMemoryKeyValueStore()
    directory = ModelDirectory(store, api_key="gsk-test", clock=_Clock())

    models = await directory.get_models()

    assert [model.id for model in models] == [
        "llama3-70b-8192",
        "mixtral-8x7b-32768",
        "brand-new-model",
    ]
    assert models[0].name == "LLaMA3 70B (8K context)"
    assert models[0].owned_by == "Meta"
    assert models[0].created == 1700000000
    assert models[2].name == "brand-new-model"
    assert len(calls) == 1
    assert calls[0].endswith("/models")

    cached = json.loads(store.get(MODELS_CACHE_KEY) or "{}")
    assert cached["timestamp"] == 1_000_000.0
    assert len(cached["models"]) == 3


@pytest.mark.asyncio
async def test_get_models_uses_cache_within_ttl_and_refetches_after(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls = _install_fake_http(monkeypatch, _FakeResponse())
    clock = _Clock()
    directory = ModelDirectory(
        InMemoryKeyValueStore(),
        api_key="gsk-test",
        ttl_seconds=86400,
        clock=clock,
    )

    first = await directory.get_models()
    clock.now += 3600
    second = await directory.get_models()

    assert len(calls) == 1
    assert [m.to_dict() for m in second] == [m.to_dict() for m in first]

    clock.now += 86400
    await directory.get_models()

    assert len(calls) == 2


@pytest.mark.asyncio
async def test_expired_cache_entry_is_removed_before_refetch(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _install_fake_http(monkeypatch, _FakeResponse(status_code=503, body={}))
    store = InMemoryKeyValueStore(
        {MODELS_CACHE_KEY: json.dumps({"models": [{"id": "old", "name": "Old"}], "timestamp": 0})}
    )
    directory = ModelDirectory(store, api_key="gsk-test", ttl_seconds=10, clock=_Clock(100.0))

    models = await directory.get_models()

    assert store.get(MODELS_CACHE_KEY) is None
    assert [model.id for model in models] == ["mixtral-8x7b-32768", "llama2-70b-4096"]


@pytest.mark.asyncio
async def test_get_models_falls_back_on_http_error(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_fake_http(
        monkeypatch,
        _FakeResponse(status_code=500, body={"error": {"message": "internal"}}),
    )
    store = InMemoryKeyValueStore()
    directory = ModelDirectory(store, api_key="gsk-test", clock=_Clock())

    models = await directory.get_models()

    assert len(models) >= 2
    assert models[0].id == "mixtral-8x7b-32768"
    assert models[0].name == get_display_name("mixtral-8x7b-32768")
    assert store.get(MODELS_CACHE_KEY) is None


@pytest.mark.asyncio
async def test_get_models_falls_back_without_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _install_fake_http(monkeypatch, _FakeResponse())
    monkeypatch.setattr(settings, "groq_api_key", None)
    directory = ModelDirectory(InMemoryKeyValueStore(), clock=_Clock())

    models = await directory.get_models()

    assert calls == []
    assert [model.id for model in models] == ["mixtral-8x7b-32768", "llama2-70b-4096"]


@pytest.mark.asyncio
async def test_get_models_ignores_corrupt_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _install_fake_http(monkeypatch, _FakeResponse())
    store = InMemoryKeyValueStore({MODELS_CACHE_KEY: "not-json"})
    directory = ModelDirectory(store, api_key="gsk-test", clock=_Clock())

    models = await directory.get_models()

    assert len(calls) == 1
    assert len(models) == 3


def test_current_model_defaults_and_persists_without_validation() -> None:
    store = InMemoryKeyValueStore()
    directory = ModelDirectory(store, default_model="mixtral-8x7b-32768")

    assert directory.get_current_model() == "mixtral-8x7b-32768"

    directory.set_current_model("not-a-listed-model")

    assert store.get(CURRENT_MODEL_KEY) == "not-a-listed-model"
    assert directory.get_current_model() == "not-a-listed-model"


@pytest.mark.asyncio
@pytest.mark.parametrize("rows", [[], ["not-a-dict", 3]])
async def test_fresh_cache_without_usable_models_is_a_miss(
    monkeypatch: pytest.MonkeyPatch,
    rows: list[object],
) -> None:
    calls = _install_fake_http(monkeypatch, _FakeResponse())
    store = InMemoryKeyValueStore(
        {MODELS_CACHE_KEY: json.dumps({"models": rows, "timestamp": 1_000_000.0})}
    )
    directory = ModelDirectory(store, api_key="gsk-test", clock=_Clock())

    models = await directory.get_models()

    assert len(calls) == 1
    assert len(models) == 3


@pytest.mark.asyncio
async def test_get_models_survives_store_failure_on_expiry(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _install_fake_http(monkeypatch, _FakeResponse(status_code=503, body={}))

    class _UnremovableStore(InMemoryKeyValueStore):
        def remove(self, key: str) -> None:
            raise ConnectionError("store unavailable")

    store = _UnremovableStore(
        {MODELS_CACHE_KEY: json.dumps({"models": [{"id": "old"}], "timestamp": 0})}
    )
    directory = ModelDirectory(store, api_key="gsk-test", ttl_seconds=10, clock=_Clock(100.0))

    models = await directory.get_models()

    assert [model.id for model in models] == ["mixtral-8x7b-32768", "llama2-70b-4096"]
