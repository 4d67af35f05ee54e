"""Thread-safe in-memory cache for annotation and history lookups."""
from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from time import monotonic
from typing import Any, Dict, Hashable, Optional

from . import config


@dataclass
class _CacheEntry:
    value: Any
    expires_at: float


class InMemoryCache:
    """Namespaced key/value store with optional per-entry TTL."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._store: Dict[str, Dict[Hashable, _CacheEntry]] = {}

    def get(self, namespace: str, key: Hashable) -> Any:
        with self._lock:
            bucket = self._store.get(namespace, {})
            entry = bucket.get(key)
            if entry is None:
                return None
            if entry.expires_at and entry.expires_at < monotonic():
                del bucket[key]
                return None
            return entry.value

    def set(
        self,
        namespace: str,
        key: Hashable,
        value: Any,
        ttl_seconds: Optional[float] = config.CACHE_DEFAULT_TTL_SECONDS,
    ) -> None:
        expires_at = monotonic() + ttl_seconds if ttl_seconds else 0.0
        with self._lock:
            self._store.setdefault(namespace, {})[key] = _CacheEntry(value, expires_at)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()


def build_cache_key(*parts: Hashable) -> str:
    return "::".join(str(part).strip().casefold() for part in parts)
