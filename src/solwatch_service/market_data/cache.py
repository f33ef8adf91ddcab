from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping


@dataclass(slots=True)
class CacheEntry:
    data: Any
    stored_at: float
    ttl_seconds: float


@dataclass(slots=True)
class CacheEntrySnapshot:
    key: str
    stored_at: float
    age_seconds: float
    ttl_seconds: float
    value_type: str


def build_cache_key(endpoint: str, params: Mapping[str, Any] | None = None) -> str:
    """
    Canonical key for an upstream lookup.

    Parameters are serialized with sorted keys so that two calls carrying the
    same logical parameters in a different insertion order share one entry.
    None-valued parameters are never sent upstream and are dropped here too.
    """

    cleaned = {key: value for key, value in (params or {}).items() if value is not None}
    return f"{endpoint}:{json.dumps(cleaned, sort_keys=True, separators=(',', ':'), default=str)}"


class ResponseCache:
    """
    Time-boxed in-memory store for remote lookups.

    The cache is TTL-agnostic: every entry carries the TTL chosen by the caller
    at write time. Expired entries are evicted lazily on the next lookup.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or time.monotonic
        self._store: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Any | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        if self._is_expired(entry):
            self._store.pop(key, None)
            return None
        return entry.data

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        self._store[key] = CacheEntry(data=value, stored_at=self._clock(), ttl_seconds=ttl_seconds)

    def clear(self) -> None:
        self._store.clear()

    def size(self) -> int:
        return len(self._store)

    def __len__(self) -> int:
        return len(self._store)

    def snapshot(self) -> List[CacheEntrySnapshot]:
        snapshots: List[CacheEntrySnapshot] = []
        now = self._clock()
        for key, entry in self._store.items():
            if self._is_expired(entry):
                continue
            snapshots.append(
                CacheEntrySnapshot(
                    key=key,
                    stored_at=entry.stored_at,
                    age_seconds=now - entry.stored_at,
                    ttl_seconds=entry.ttl_seconds,
                    value_type=type(entry.data).__name__,
                )
            )
        return snapshots

    def _is_expired(self, entry: CacheEntry) -> bool:
        return (self._clock() - entry.stored_at) > entry.ttl_seconds


__all__ = ["CacheEntry", "CacheEntrySnapshot", "ResponseCache", "build_cache_key"]
