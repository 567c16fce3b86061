"""Durable key-value store backends.

Services persist small JSON documents (model cache, model selection, SERP
usage) through the :class:`KeyValueStore` protocol so they can be driven by an
in-memory fake in tests and by a file or Redis backend in real runs.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Protocol

from redis import Redis

from kgrlens.config import settings

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Synchronous string -> string store."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    """Process-local store backed by a dict."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileKeyValueStore:
    """Store persisted as a single JSON object on disk.

    Every write rewrites the whole file through a temp file + rename so a
    crash never leaves a half-written document behind.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_all(self) -> dict[str, str]:
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(
                "Failed to read key-value file, starting empty",
                extra={"path": str(self.path), "error": str(exc)},
            )
            return {}

        if not isinstance(payload, dict):
            logger.warning("Key-value file has invalid root type", extra={"path": str(self.path)})
            return {}
        return {str(k): v for k, v in payload.items() if isinstance(v, str)}

    def _write_all(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        tmp_path.replace(self.path)

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._read_all()
            if key not in data:
                return
            del data[key]
            self._write_all(data)


class RedisKeyValueStore:
    """Store backed by a synchronous Redis client, keys namespaced by prefix."""

    def __init__(self, client: Redis, prefix: str = "kgrlens:") -> None:
        self._client = client
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str) -> str | None:
        value = self._client.get(self._key(key))
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return str(value)

    def set(self, key: str, value: str) -> None:
        self._client.set(self._key(key), value)

    def remove(self, key: str) -> None:
        self._client.delete(self._key(key))


def get_kv_store() -> KeyValueStore:
    """Build the store selected by ``settings.kv_backend``."""
    backend = settings.kv_backend
    if backend == "memory":
        return InMemoryKeyValueStore()
    if backend == "redis":
        return RedisKeyValueStore(Redis.from_url(settings.redis_url, decode_responses=True))
    return JsonFileKeyValueStore(settings.kv_file_path)
