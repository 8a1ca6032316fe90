"""Key-value store connection helpers (DragonflyDB speaks the Redis protocol)."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from redis.asyncio import Redis
from redis.exceptions import RedisError

from ..chat_history.backends import InMemoryListBackend, ListBackend, RedisListBackend
from ..chat_history.errors import BackendConnectionError
from .settings import Settings

logger = logging.getLogger(__name__)


def redis_url(settings: Settings) -> str:
    """Render the connection URL without the password."""
    return f"redis://{settings.dragonfly_host}:{settings.dragonfly_port}/{settings.dragonfly_db}"


async def create_kv_client(settings: Settings) -> Redis:
    """Open a client and verify the server answers a PING."""
    client = Redis.from_url(
        redis_url(settings),
        password=settings.dragonfly_password,
        decode_responses=True,
        socket_connect_timeout=settings.request_timeout,
    )
    try:
        await client.ping()
    except (RedisError, OSError) as exc:
        await client.aclose()
        raise BackendConnectionError(
            f"Could not connect to {settings.dragonfly_host}:{settings.dragonfly_port}: {exc}"
        ) from exc
    logger.info("Connected to DragonflyDB at %s:%s", settings.dragonfly_host, settings.dragonfly_port)
    return client


@asynccontextmanager
async def kv_connection(settings: Settings) -> AsyncIterator[ListBackend]:
    """Yield a list backend for the configured store and close it afterwards."""
    if settings.kv_backend == "memory":
        logger.info("Using in-memory chat history backend")
        yield InMemoryListBackend()
        return
    client = await create_kv_client(settings)
    try:
        yield RedisListBackend(client)
    finally:
        await client.aclose()
        logger.info("Closed DragonflyDB connection")
