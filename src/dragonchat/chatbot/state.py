"""State carried between the llm and tool nodes of the chat agent."""
from __future__ import annotations

import operator
from typing import List

from typing_extensions import Annotated, NotRequired, TypedDict

from langchain_core.messages import AnyMessage, ToolCall
from langgraph.graph import add_messages


class ToolInvocation(TypedDict):
    """Outcome of one tool call; exactly one of ``result`` or ``error`` is set."""

    id: str
    name: str
    arguments: str
    result: NotRequired[str]
    error: NotRequired[str]


class AgentState(TypedDict, total=False):
    messages: Annotated[List[AnyMessage], add_messages]
    # tool calls from the latest AI message, cleared once the tool node has run them
    pending_tool_calls: List[ToolCall]
    tool_invocations: Annotated[List[ToolInvocation], operator.add]
