"""List-oriented key-value backends used by the chat history store."""
from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, Optional, Protocol, Set, Tuple, runtime_checkable

from redis.asyncio import Redis
from redis.exceptions import RedisError

from .errors import BackendReadError, BackendWriteError

logger = logging.getLogger(__name__)


@runtime_checkable
class ListBackend(Protocol):
    """Minimal list primitives the history store relies on.

    ``rpush`` creates the list when the key is absent, ``lrange`` uses
    inclusive bounds with negative indices counting from the tail (``0, -1`` is
    the whole list) and ``delete`` of an absent key is a no-op.
    """

    async def rpush(self, key: str, value: str) -> int: ...

    async def lrange(self, key: str, start: int, end: int) -> List[str]: ...

    async def expire(self, key: str, seconds: int) -> bool: ...

    async def delete(self, *keys: str) -> int: ...


def _decode(value: bytes | str) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class RedisListBackend:
    """Adapter over a shared ``redis.asyncio`` client (Redis or DragonflyDB).

    The client is owned by the caller; this class only issues commands on it.
    """

    def __init__(self, client: Redis) -> None:
        self._client = client

    @property
    def client(self) -> Redis:
        return self._client

    async def rpush(self, key: str, value: str) -> int:
        try:
            return await self._client.rpush(key, value)
        except RedisError as exc:
            raise BackendWriteError(f"RPUSH {key} failed: {exc}") from exc

    async def lrange(self, key: str, start: int, end: int) -> List[str]:
        try:
            values = await self._client.lrange(key, start, end)
        except RedisError as exc:
            raise BackendReadError(f"LRANGE {key} failed: {exc}") from exc
        return [_decode(value) for value in values]

    async def expire(self, key: str, seconds: int) -> bool:
        try:
            return bool(await self._client.expire(key, seconds))
        except RedisError as exc:
            raise BackendWriteError(f"EXPIRE {key} failed: {exc}") from exc

    async def delete(self, *keys: str) -> int:
        try:
            return await self._client.delete(*keys)
        except RedisError as exc:
            raise BackendWriteError(f"DEL {' '.join(keys)} failed: {exc}") from exc


class InMemoryListBackend:
    """Process-local backend with the same list semantics as Redis.

    Expired keys are dropped lazily on access. ``fail_on`` holds
    ``(operation, key)`` pairs that raise the matching backend error, which lets
    callers simulate a write that dies halfway through an exchange.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._lists: Dict[str, List[str]] = {}
        self._expires_at: Dict[str, float] = {}
        self._clock = clock
        self.fail_on: Set[Tuple[str, str]] = set()
        self.expire_calls: List[Tuple[str, int]] = []

    def _check(self, operation: str, key: str) -> None:
        if (operation, key) in self.fail_on:
            if operation == "lrange":
                raise BackendReadError(f"LRANGE {key} failed: injected failure")
            raise BackendWriteError(f"{operation.upper()} {key} failed: injected failure")

    def _purge(self, key: str) -> None:
        deadline = self._expires_at.get(key)
        if deadline is not None and self._clock() >= deadline:
            self._lists.pop(key, None)
            self._expires_at.pop(key, None)

    def ttl(self, key: str) -> Optional[float]:
        """Remaining seconds before ``key`` expires, or ``None`` when it never does."""
        self._purge(key)
        deadline = self._expires_at.get(key)
        if deadline is None:
            return None
        return deadline - self._clock()

    def keys(self) -> List[str]:
        for key in list(self._lists):
            self._purge(key)
        return sorted(self._lists)

    async def rpush(self, key: str, value: str) -> int:
        self._check("rpush", key)
        self._purge(key)
        items = self._lists.setdefault(key, [])
        items.append(value)
        return len(items)

    async def lrange(self, key: str, start: int, end: int) -> List[str]:
        self._check("lrange", key)
        self._purge(key)
        items = self._lists.get(key, [])
        size = len(items)
        if start < 0:
            start = max(size + start, 0)
        if end < 0:
            end = size + end
        end = min(end, size - 1)
        if end < 0 or start > end:
            return []
        return list(items[start:end + 1])

    async def expire(self, key: str, seconds: int) -> bool:
        self._check("expire", key)
        self.expire_calls.append((key, seconds))
        self._purge(key)
        if key not in self._lists:
            return False
        self._expires_at[key] = self._clock() + seconds
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            self._check("delete", key)
            self._purge(key)
            if self._lists.pop(key, None) is not None:
                removed += 1
            self._expires_at.pop(key, None)
        logger.debug("Deleted %d of %d keys", removed, len(keys))
        return removed
