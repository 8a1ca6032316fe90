"""Chat history persistence exports."""
from .backends import InMemoryListBackend, ListBackend, RedisListBackend
from .errors import (
    BackendConnectionError,
    BackendReadError,
    BackendWriteError,
    ChatHistoryError,
)
from .store import ChatHistoryConfig, ChatHistoryStore, Exchange, interleave_turns

__all__ = [
    "BackendConnectionError",
    "BackendReadError",
    "BackendWriteError",
    "ChatHistoryConfig",
    "ChatHistoryError",
    "ChatHistoryStore",
    "Exchange",
    "InMemoryListBackend",
    "ListBackend",
    "RedisListBackend",
    "interleave_turns",
]
