"""Errors raised by chat history backends."""
from __future__ import annotations


class ChatHistoryError(Exception):
    """Base class for chat history persistence failures."""


class BackendConnectionError(ChatHistoryError):
    """The key-value store could not be reached when opening the connection."""


class BackendWriteError(ChatHistoryError):
    """An append, expire or delete command failed."""


class BackendReadError(ChatHistoryError):
    """A list range read failed."""
