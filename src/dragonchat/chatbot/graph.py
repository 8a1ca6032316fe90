"""LangGraph application that mirrors LangChain's AgentExecutor loop."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Sequence

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage, ToolMessage
from langchain_core.tools import BaseTool
from langgraph.graph import END, StateGraph

from .state import AgentState, ToolInvocation

logger = logging.getLogger(__name__)

DEFAULT_RECURSION_LIMIT = 25


def content_to_text(value: Any) -> str:
    """Flatten message content (string or content blocks) into plain text."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        parts = []
        for item in value:
            if isinstance(item, dict):
                item = item.get("text") or item.get("content") or ""
            parts.append(content_to_text(item))
        return "\n".join(part for part in parts if part)
    try:
        return json.dumps(value, ensure_ascii=False)
    except TypeError:
        return str(value)


def _coerce_arguments(arguments: Any) -> Dict[str, Any]:
    if arguments is None:
        return {}
    if isinstance(arguments, dict):
        return arguments
    if isinstance(arguments, str):
        try:
            parsed = json.loads(arguments) if arguments.strip() else {}
        except json.JSONDecodeError as exc:
            raise ValueError(arguments) from exc
        if isinstance(parsed, dict):
            return parsed
    raise ValueError(str(arguments))


def _invocation(call_id: str, name: str, arguments: Any, **outcome: str) -> ToolInvocation:
    return {"id": call_id, "name": name, "arguments": content_to_text(arguments), **outcome}


def create_agent_app(llm: BaseChatModel, tools: Sequence[BaseTool]):
    """Compile the LangGraph workflow with LLM and tool bindings."""

    tool_map = {tool.name: tool for tool in tools}
    bound_llm = llm.bind_tools(list(tools)) if tools else llm

    async def call_llm(state: AgentState) -> AgentState:
        response = await bound_llm.ainvoke(list(state.get("messages", [])))
        return {
            "messages": [response],
            "pending_tool_calls": list(getattr(response, "tool_calls", None) or []),
        }

    async def call_tool(state: AgentState) -> AgentState:
        messages: List[BaseMessage] = []
        invocations: List[ToolInvocation] = []
        for call in state.get("pending_tool_calls") or []:
            call_id = str(call.get("id") or "")
            name = str(call.get("name") or "")
            raw_args = call.get("args")
            tool = tool_map.get(name)
            if tool is None:
                error_text = f"Tool '{name}' is not registered."
                logger.error(error_text)
                messages.append(ToolMessage(content=error_text, name=name or "unknown", tool_call_id=call_id))
                invocations.append(_invocation(call_id, name, raw_args, error=error_text))
                continue
            try:
                arguments = _coerce_arguments(raw_args)
            except ValueError as exc:
                error_text = f"Invalid arguments for tool '{name}': {exc}"
                logger.warning(error_text)
                messages.append(ToolMessage(content=error_text, name=name, tool_call_id=call_id))
                invocations.append(_invocation(call_id, name, raw_args, error=error_text))
                continue
            try:
                result = await tool.ainvoke(arguments)
            except Exception as exc:
                logger.exception("Tool '%s' invocation failed", name)
                error_text = f"Tool '{name}' raised an error: {exc}"
                messages.append(ToolMessage(content=error_text, name=name, tool_call_id=call_id))
                invocations.append(_invocation(call_id, name, arguments, error=error_text))
                continue
            payload = content_to_text(result)
            logger.info("Tool '%s' returned %d characters", name, len(payload))
            messages.append(ToolMessage(content=payload, name=name, tool_call_id=call_id))
            invocations.append(_invocation(call_id, name, arguments, result=payload))
        return {
            "messages": messages,
            "pending_tool_calls": [],
            "tool_invocations": invocations,
        }

    def router(state: AgentState) -> str:
        if state.get("pending_tool_calls"):
            return "tool"
        return "end"

    graph = StateGraph(AgentState)
    graph.add_node("llm", call_llm)
    graph.add_node("tool", call_tool)
    graph.set_entry_point("llm")
    graph.add_conditional_edges("llm", router, {"tool": "tool", "end": END})
    graph.add_edge("tool", "llm")
    return graph.compile()


def _apply_delta(target: AgentState, delta: AgentState) -> None:
    for key, value in delta.items():
        if key in ("messages", "tool_invocations"):
            target[key] = [*target.get(key, []), *value]
        else:
            target[key] = value


def _snapshot(state: AgentState) -> AgentState:
    return {key: list(value) if isinstance(value, list) else value for key, value in state.items()}


class LangGraphAgent:
    """Thin wrapper around the compiled LangGraph application."""

    def __init__(
        self,
        llm: BaseChatModel,
        tools: Sequence[BaseTool],
        *,
        recursion_limit: int = DEFAULT_RECURSION_LIMIT,
    ) -> None:
        self._tools = tuple(tools)
        self._recursion_limit = recursion_limit
        self._app = create_agent_app(llm, self._tools)

    @property
    def tools(self) -> Sequence[BaseTool]:
        return self._tools

    async def run(
        self,
        messages: Sequence[BaseMessage],
        *,
        observer: Any | None = None,
    ) -> AgentState:
        initial_state: AgentState = {"messages": list(messages)}
        current_state: AgentState = _snapshot(initial_state)
        async for event in self._app.astream(
            initial_state,
            stream_mode="updates",
            config={"recursion_limit": self._recursion_limit},
        ):
            for node_name, delta in event.items():
                before = _snapshot(current_state)
                _apply_delta(current_state, delta or {})
                if observer is not None:
                    await observer.record_node(node_name, before, _snapshot(current_state))
        return current_state
