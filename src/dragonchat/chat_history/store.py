"""Key-value backed chat history persistence."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from langchain_core.messages import AIMessage, HumanMessage
from pydantic import BaseModel, ConfigDict, Field

from .backends import ListBackend

logger = logging.getLogger(__name__)

HistoryMessage = Union[HumanMessage, AIMessage]


class ChatHistoryConfig(BaseModel):
    """Options identifying one history slot and how exchanges are read."""

    model_config = ConfigDict(frozen=True)

    session_id: str = Field(..., min_length=1)
    memory_key: str = Field(default="chat_history", min_length=1)
    ttl_seconds: Optional[int] = Field(default=None, gt=0)
    input_field: str = "input"
    output_field: str = "output"


class Exchange(BaseModel):
    """One human utterance and the assistant reply it produced."""

    model_config = ConfigDict(frozen=True, strict=True)

    human: str
    ai: str

    def as_payload(self, input_field: str = "input", output_field: str = "output") -> Dict[str, str]:
        return {input_field: self.human, output_field: self.ai}


def interleave_turns(human: List[str], ai: List[str]) -> List[HistoryMessage]:
    """Merge the two role sequences index by index, human turn first.

    The sequences may differ in length after an interrupted write; the missing
    side is simply skipped at the trailing indices.
    """
    messages: List[HistoryMessage] = []
    for index in range(max(len(human), len(ai))):
        if index < len(human):
            messages.append(HumanMessage(content=human[index]))
        if index < len(ai):
            messages.append(AIMessage(content=ai[index]))
    return messages


class ChatHistoryStore:
    """Persist conversation turns as two per-role lists in a key-value store.

    Keys are ``{session_id}:{memory_key}:human`` and ``{session_id}:{memory_key}:ai``.
    The store takes no locks across the two lists; callers are expected to
    await one operation before issuing the next for the same session.
    """

    def __init__(self, backend: ListBackend, config: ChatHistoryConfig) -> None:
        self._backend = backend
        self._config = config

    @classmethod
    def for_session(
        cls,
        backend: ListBackend,
        session_id: str,
        *,
        memory_key: str = "chat_history",
        ttl_seconds: Optional[int] = None,
        input_field: str = "input",
        output_field: str = "output",
    ) -> "ChatHistoryStore":
        config = ChatHistoryConfig(
            session_id=session_id,
            memory_key=memory_key,
            ttl_seconds=ttl_seconds,
            input_field=input_field,
            output_field=output_field,
        )
        return cls(backend, config)

    @property
    def config(self) -> ChatHistoryConfig:
        return self._config

    @property
    def memory_key(self) -> str:
        return self._config.memory_key

    @property
    def human_key(self) -> str:
        return f"{self._config.session_id}:{self._config.memory_key}:human"

    @property
    def ai_key(self) -> str:
        return f"{self._config.session_id}:{self._config.memory_key}:ai"

    def list_memory_slots(self) -> List[str]:
        return [self._config.memory_key]

    async def append(self, exchange: Mapping[str, Any]) -> None:
        """Append the human text, then the assistant text, then refresh TTLs.

        A failure after the human append leaves that list one element ahead;
        nothing is rolled back.
        """
        human_text = exchange[self._config.input_field]
        ai_text = exchange[self._config.output_field]

        await self._backend.rpush(self.human_key, human_text)
        await self._backend.rpush(self.ai_key, ai_text)

        ttl = self._config.ttl_seconds
        if ttl:
            await self._backend.expire(self.human_key, ttl)
            await self._backend.expire(self.ai_key, ttl)
        logger.debug("Appended exchange to %s", self.human_key.rsplit(":", 1)[0])

    async def load_history(self) -> Dict[str, List[HistoryMessage]]:
        human = await self._backend.lrange(self.human_key, 0, -1)
        ai = await self._backend.lrange(self.ai_key, 0, -1)
        messages = interleave_turns(human, ai)
        logger.debug(
            "Loaded %d human and %d ai turns for session %s",
            len(human),
            len(ai),
            self._config.session_id,
        )
        return {self._config.memory_key: messages}

    async def clear(self) -> None:
        await self._backend.delete(self.human_key, self.ai_key)
        logger.debug("Cleared history for session %s", self._config.session_id)
