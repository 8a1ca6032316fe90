"""Langfuse tracing for chat turns: history load, agent nodes, history append."""
from __future__ import annotations

import asyncio
import logging
import uuid
from functools import lru_cache
from typing import Any, Dict, Optional, Sequence

from langfuse import Langfuse

from ..config.settings import Settings

logger = logging.getLogger(__name__)


def _truncate(text: str, max_len: int = 500) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3].rstrip() + "..."


def _serialize_messages(messages: Sequence[Any]) -> list[dict[str, Any]]:
    serialized: list[dict[str, Any]] = []
    for message in messages:
        role = getattr(message, "type", None) or getattr(message, "role", "")
        content = getattr(message, "content", "")
        entry: dict[str, Any] = {"role": role, "content": _truncate(str(content))}
        tool_calls = getattr(message, "tool_calls", None)
        if tool_calls:
            entry["tool_calls"] = [call.get("name") for call in tool_calls]
        serialized.append(entry)
    return serialized


def _serialize_state(state: Dict[str, Any]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    for key in ("session_id", "user_message"):
        if state.get(key) is not None:
            payload[key] = state[key]
    if state.get("messages"):
        payload["messages"] = _serialize_messages(state["messages"])
    if state.get("tool_invocations"):
        payload["tool_invocations"] = [
            {key: _truncate(str(value), 280) for key, value in item.items()}
            for item in state["tool_invocations"]
        ]
    return payload


@lru_cache(maxsize=1)
def _get_langfuse_client(host: Optional[str], public_key: str, secret_key: str) -> Optional[Langfuse]:
    try:
        init_kwargs = {"public_key": public_key, "secret_key": secret_key}
        if host:
            init_kwargs["host"] = host
        return Langfuse(**init_kwargs)
    except Exception:  # pragma: no cover - best effort guard
        logger.exception("Failed to initialize Langfuse client")
        return None


class LangfuseObserver:
    """One Langfuse trace per chat turn.

    The root span carries the session, memory slot and how many stored turns were
    replayed into the prompt; children record the history read, each LangGraph
    node update and the exchange written back to the store.
    """

    def __init__(
        self,
        *,
        client: Langfuse,
        session_id: str,
        memory_key: str,
        environment: str,
        user_message: str,
        history_turns: int,
    ) -> None:
        self._client = client
        self._trace_id = uuid.uuid4().hex
        self._sequence = 0
        self._metadata = {
            "environment": environment,
            "session_id": session_id,
            "memory_key": memory_key,
            "history_turns": history_turns,
        }
        self._root = self._open_root(session_id, user_message)

    @property
    def metadata(self) -> Dict[str, Any]:
        return dict(self._metadata)

    def _open_root(self, session_id: str, user_message: str) -> Optional[Any]:
        turn_input = {"session_id": session_id, "user_message": user_message}
        try:
            root = self._client.start_span(
                name="chat_turn",
                trace_context={"trace_id": self._trace_id},
                input=turn_input,
                metadata=self._metadata,
            )
            root.update_trace(
                name="chat_turn",
                user_id=session_id,
                session_id=session_id,
                input=turn_input,
                metadata=self._metadata,
            )
            return root
        except Exception:  # pragma: no cover - tracing must not break the chat
            logger.exception("Failed to open Langfuse root span")
            return None

    def _child_span(self, name: str, *, input: Any = None, output: Any = None) -> None:
        if self._root is None:
            return
        self._sequence += 1
        try:
            span = self._client.start_span(
                name=name,
                trace_context={"trace_id": self._trace_id, "parent_span_id": self._root.id},
                input=input,
                output=output,
                metadata={"order": self._sequence},
            )
            span.end()
        except Exception:  # pragma: no cover - tracing must not break the chat
            logger.exception("Failed to record Langfuse span %s", name)

    async def record_history_load(self, human_key: str, ai_key: str, messages: Sequence[Any]) -> None:
        await asyncio.to_thread(
            self._child_span,
            "history.load",
            input={"keys": [human_key, ai_key]},
            output={"turns": len(messages), "messages": _serialize_messages(messages)},
        )

    async def record_node(self, name: str, before: Dict[str, Any], after: Dict[str, Any]) -> None:
        await asyncio.to_thread(
            self._child_span,
            f"agent.{name}",
            input=_serialize_state(before),
            output=_serialize_state(after),
        )

    async def record_history_append(self, human_key: str, ai_key: str, exchange: Dict[str, str]) -> None:
        await asyncio.to_thread(
            self._child_span,
            "history.append",
            input={"keys": [human_key, ai_key]},
            output={key: _truncate(value, 280) for key, value in exchange.items()},
        )

    async def finalize(self, final_state: Dict[str, Any]) -> None:
        await asyncio.to_thread(self._finalize_sync, final_state)

    def _finalize_sync(self, final_state: Dict[str, Any]) -> None:
        root, self._root = self._root, None
        try:
            if root is not None:
                serialized = _serialize_state(final_state)
                root.update(output=serialized)
                root.update_trace(output=serialized)
                root.end()
        except Exception:  # pragma: no cover - tracing must not break the chat
            logger.exception("Failed to close Langfuse trace")
        finally:
            try:
                self._client.flush()
            except Exception:  # pragma: no cover - tracing must not break the chat
                logger.exception("Failed to flush Langfuse client")


def create_langfuse_observer(
    settings: Settings,
    *,
    session_id: str,
    memory_key: str,
    user_message: str,
    history_turns: int,
) -> Optional[LangfuseObserver]:
    """Return an observer for one chat turn, or ``None`` when Langfuse is not configured."""
    if not settings.langfuse_public_key or not settings.langfuse_secret_key:
        return None
    client = _get_langfuse_client(
        settings.langfuse_host or "http://localhost:3100",
        settings.langfuse_public_key,
        settings.langfuse_secret_key,
    )
    if client is None:
        return None
    return LangfuseObserver(
        client=client,
        session_id=session_id,
        memory_key=memory_key,
        environment=settings.langfuse_environment,
        user_message=user_message,
        history_turns=history_turns,
    )
