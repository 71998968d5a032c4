"""
Redis-backed KeyValueStore (works against any Redis-protocol host, e.g. a hosted KV service).

Values are stored as JSON strings; hashes hold one JSON string per field.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from api.utils.errors import UpstreamError
from api.utils.logger import configure_logging
from infra.kv.store import KeyValueStore

logger = configure_logging()


def _decode(raw: Optional[str]) -> Optional[Any]:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        # Plain strings written by other clients come back as-is.
        return raw


class RedisStore(KeyValueStore):
    def __init__(self, url: Optional[str] = None, *, client: Optional[redis.Redis] = None):
        if client is None and not url:
            raise ValueError("RedisStore needs a url or a client")
        self._client = client or redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=5,
            socket_connect_timeout=5,
        )

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self._client.get(key)
        except RedisError as e:
            logger.error("kv get failed key=%s error=%s", key, e)
            raise UpstreamError(f"Key-value store read failed: {e}") from e
        return _decode(raw)

    async def set(self, key: str, value: Any) -> None:
        try:
            await self._client.set(key, json.dumps(value, ensure_ascii=False))
        except RedisError as e:
            logger.error("kv set failed key=%s error=%s", key, e)
            raise UpstreamError(f"Key-value store write failed: {e}") from e

    async def hget(self, key: str, field: str) -> Optional[Any]:
        try:
            raw = await self._client.hget(key, field)
        except RedisError as e:
            logger.error("kv hget failed key=%s field=%s error=%s", key, field, e)
            raise UpstreamError(f"Key-value store read failed: {e}") from e
        return _decode(raw)

    async def hgetall(self, key: str) -> Dict[str, Any]:
        try:
            raw = await self._client.hgetall(key)
        except RedisError as e:
            logger.error("kv hgetall failed key=%s error=%s", key, e)
            raise UpstreamError(f"Key-value store read failed: {e}") from e
        return {field: _decode(value) for field, value in (raw or {}).items()}

    async def hset(self, key: str, field: str, value: Any) -> None:
        try:
            await self._client.hset(key, field, json.dumps(value, ensure_ascii=False))
        except RedisError as e:
            logger.error("kv hset failed key=%s field=%s error=%s", key, field, e)
            raise UpstreamError(f"Key-value store write failed: {e}") from e

    async def hdel(self, key: str, field: str) -> int:
        try:
            return int(await self._client.hdel(key, field))
        except RedisError as e:
            logger.error("kv hdel failed key=%s field=%s error=%s", key, field, e)
            raise UpstreamError(f"Key-value store delete failed: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()
