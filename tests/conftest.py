"""Shared fixtures and fake chat models."""
from __future__ import annotations

from typing import Any, List, Optional

import pytest
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.outputs import ChatGeneration, ChatResult
from pydantic import Field

from dragonchat.chat_history import ChatHistoryStore, InMemoryListBackend
from dragonchat.config import Settings, get_settings


class ScriptedChatModel(BaseChatModel):
    """Returns the scripted responses in order and records every prompt."""

    responses: List[AIMessage]
    received: List[List[BaseMessage]] = Field(default_factory=list)
    cursor: int = 0

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def _generate(
        self,
        messages: List[BaseMessage],
        stop: Optional[List[str]] = None,
        run_manager: Optional[Any] = None,
        **kwargs: Any,
    ) -> ChatResult:
        self.received.append(list(messages))
        if self.cursor >= len(self.responses):
            raise AssertionError("scripted model ran out of responses")
        response = self.responses[self.cursor].model_copy(deep=True)
        self.cursor += 1
        return ChatResult(generations=[ChatGeneration(message=response)])

    def bind_tools(self, tools: Any, **kwargs: Any) -> "ScriptedChatModel":
        return self


class EchoChatModel(BaseChatModel):
    """Answers with the text of the last prompt message wrapped in ECHO[...]."""

    @property
    def _llm_type(self) -> str:
        return "echo"

    def _generate(
        self,
        messages: List[BaseMessage],
        stop: Optional[List[str]] = None,
        run_manager: Optional[Any] = None,
        **kwargs: Any,
    ) -> ChatResult:
        text = str(messages[-1].content)
        return ChatResult(generations=[ChatGeneration(message=AIMessage(content=f"ECHO[{text}]"))])


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, kv_backend="memory")


@pytest.fixture
def backend() -> InMemoryListBackend:
    return InMemoryListBackend()


@pytest.fixture
def store(backend: InMemoryListBackend) -> ChatHistoryStore:
    return ChatHistoryStore.for_session(backend, "session-1")


@pytest.fixture
def cli_env(monkeypatch):
    """Point the CLI at the in-memory backend and reset cached settings."""
    monkeypatch.setenv("KV_BACKEND", "memory")
    monkeypatch.setenv("CHAT_SESSION_ID", "cli-session")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
