"""Explicit cache-with-expiry component.

``ExpiringCache`` is constructed and injected by its owner (e.g. the
exchange-rate provider) instead of living as module-level state.  Each
entry remembers the value, the time it was stored and its ttl, so callers
can tell how old a cached value is.  Storage is delegated to a Django
cache backend (Redis in production, local memory in tests).
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from django.core.cache import BaseCache, caches


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    stored_at: float
    ttl: int

    @property
    def expires_at(self) -> float:
        return self.stored_at + self.ttl

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ExpiringCache:
    """Namespaced key/value cache whose entries expire after ``ttl`` seconds."""

    def __init__(
        self,
        namespace: str,
        ttl: int,
        backend: Optional[BaseCache] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive.")
        self._namespace = namespace
        self._ttl = ttl
        self._backend = backend if backend is not None else caches["default"]
        self._clock = clock

    @property
    def ttl(self) -> int:
        return self._ttl

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        entry = self._backend.get(self._key(key))
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            self._backend.delete(self._key(key))
            return None
        return entry

    def get(self, key: str, default: Any = None) -> Any:
        entry = self.get_entry(key)
        return default if entry is None else entry.value

    def set(self, key: str, value: Any) -> CacheEntry:
        entry = CacheEntry(key=key, value=value, stored_at=self._clock(), ttl=self._ttl)
        self._backend.set(self._key(key), entry, timeout=self._ttl)
        return entry

    def delete(self, key: str) -> None:
        self._backend.delete(self._key(key))
