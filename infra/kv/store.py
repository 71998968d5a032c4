from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class KeyValueStore(ABC):
    """
    Remote persistence contract: whole values and hash fields addressed by string keys.

    Values are JSON-serializable Python objects; implementations own the encoding.
    No transactions and no server-side validation: every write replaces what was there.
    Implementations raise `UpstreamError` when the backend fails.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the decoded value at `key`, or None if absent."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    async def hget(self, key: str, field: str) -> Optional[Any]:
        raise NotImplementedError

    @abstractmethod
    async def hgetall(self, key: str) -> Dict[str, Any]:
        """Return every field of the hash at `key` (empty dict if absent)."""
        raise NotImplementedError

    @abstractmethod
    async def hset(self, key: str, field: str, value: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    async def hdel(self, key: str, field: str) -> int:
        """Delete one hash field; returns how many fields were removed (0 or 1)."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release connections. Default: nothing to release."""
        return None
