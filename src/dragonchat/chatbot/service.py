"""Conversation orchestration: history in, agent run, history out."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder
from langchain_core.tools import BaseTool

from ..chat_history import ChatHistoryStore, Exchange
from ..config import Settings
from ..observability import create_langfuse_observer
from .graph import LangGraphAgent, content_to_text
from .state import AgentState, ToolInvocation

logger = logging.getLogger(__name__)

# Template variables filled by the service; the memory key names the history placeholder
# and must not shadow them.
PROMPT_VARIABLES = frozenset({"system_prompt", "input"})


@dataclass
class ChatResult:
    session_id: str
    response: str
    tool_invocations: List[ToolInvocation] = field(default_factory=list)


def _last_ai_reply(messages: Sequence[BaseMessage]) -> Optional[str]:
    for message in reversed(messages):
        if isinstance(message, AIMessage) and not message.tool_calls:
            return content_to_text(message.content).strip()
    return None


class ChatbotService:
    """Run one chat turn against the agent and persist the exchange."""

    def __init__(
        self,
        settings: Settings,
        agent: LangGraphAgent,
        history_store: ChatHistoryStore,
    ) -> None:
        memory_key = history_store.memory_key
        if memory_key in PROMPT_VARIABLES:
            raise ValueError(
                f"Memory key '{memory_key}' is reserved by the chat prompt; "
                f"choose a name other than {', '.join(sorted(PROMPT_VARIABLES))}"
            )
        self._settings = settings
        self._agent = agent
        self._history_store = history_store
        self._prompt = ChatPromptTemplate.from_messages(
            [
                ("system", "{system_prompt}"),
                MessagesPlaceholder(variable_name=memory_key, optional=True),
                ("human", "{input}"),
            ]
        )

    @property
    def tools(self) -> Sequence[BaseTool]:
        return self._agent.tools

    @property
    def history_store(self) -> ChatHistoryStore:
        return self._history_store

    def _render(self, user_message: str, history: Dict[str, List[BaseMessage]]) -> List[BaseMessage]:
        return self._prompt.format_messages(
            system_prompt=self._settings.chat_system_prompt,
            input=user_message,
            **history,
        )

    async def build_messages(self, user_message: str) -> List[BaseMessage]:
        """Render the prompt with the stored transcript for this session."""
        history = await self._history_store.load_history()
        return self._render(user_message, history)

    async def generate_response(self, user_message: str) -> ChatResult:
        store = self._history_store
        config = store.config
        session_id = config.session_id

        history = await store.load_history()
        turns = history[store.memory_key]
        conversation = self._render(user_message, history)

        observer = create_langfuse_observer(
            self._settings,
            session_id=session_id,
            memory_key=store.memory_key,
            user_message=user_message,
            history_turns=len(turns),
        )
        final_state: AgentState = {"messages": list(conversation)}
        try:
            if observer is not None:
                await observer.record_history_load(store.human_key, store.ai_key, turns)

            final_state = await self._agent.run(conversation, observer=observer)
            reply = _last_ai_reply(final_state.get("messages", []))
            if reply is None:
                raise RuntimeError("Agent produced no assistant reply")

            payload = Exchange(human=user_message, ai=reply).as_payload(config.input_field, config.output_field)
            await store.append(payload)
            logger.info("Session %s: stored exchange (%d chars reply)", session_id, len(reply))
            if observer is not None:
                await observer.record_history_append(store.human_key, store.ai_key, payload)
        finally:
            if observer is not None:
                try:
                    await observer.finalize(final_state)
                except Exception as exc:  # pragma: no cover - observability should not break the chat
                    logger.exception("Observer finalization failed: %s", exc)

        return ChatResult(
            session_id=session_id,
            response=reply,
            tool_invocations=list(final_state.get("tool_invocations", [])),
        )
