"""
Process-local implementation of KeyValueStore.

Used when no KV_URL is configured (local development) and by the test suite.
Values go through a JSON round-trip on the way in and out so callers see the same
copy semantics they get from Redis: mutating a returned value never changes the store.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from infra.kv.store import KeyValueStore


def _encode(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


class InMemoryStore(KeyValueStore):
    """In-memory key-value store with Redis-like string and hash operations."""

    def __init__(self):
        self._values: Dict[str, str] = {}
        self._hashes: Dict[str, Dict[str, str]] = {}

    async def get(self, key: str) -> Optional[Any]:
        raw = self._values.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        self._values[key] = _encode(value)

    async def hget(self, key: str, field: str) -> Optional[Any]:
        raw = self._hashes.get(key, {}).get(field)
        return json.loads(raw) if raw is not None else None

    async def hgetall(self, key: str) -> Dict[str, Any]:
        return {f: json.loads(raw) for f, raw in self._hashes.get(key, {}).items()}

    async def hset(self, key: str, field: str, value: Any) -> None:
        self._hashes.setdefault(key, {})[field] = _encode(value)

    async def hdel(self, key: str, field: str) -> int:
        bucket = self._hashes.get(key)
        if not bucket or field not in bucket:
            return 0
        del bucket[field]
        if not bucket:
            del self._hashes[key]
        return 1

    def clear(self) -> None:
        self._values.clear()
        self._hashes.clear()
