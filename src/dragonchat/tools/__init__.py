"""Tool registry for the chat agent."""
from __future__ import annotations

from typing import Sequence

from langchain_core.tools import BaseTool

from ..config import Settings
from .browser import create_browser_tool
from .calculator import calculator
from .crypto import create_crypto_trends_tool, crypto_news
from .search import create_search_tool


def get_default_tools(settings: Settings) -> Sequence[BaseTool]:
    """Return the default set of tools available to the agent."""

    return [
        create_search_tool(settings),
        calculator,
        create_browser_tool(settings),
        create_crypto_trends_tool(settings),
        crypto_news,
    ]
