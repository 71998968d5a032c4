"""
Key-value store adapters (infra).

`RedisStore` needs the redis client library; import it from `infra.kv.redis_store`
directly so the contract and the in-memory store stay importable without it.
"""

from infra.kv.memory_store import InMemoryStore
from infra.kv.store import KeyValueStore

__all__ = ["InMemoryStore", "KeyValueStore"]
