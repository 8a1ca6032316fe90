"""Google search through the SerpAPI JSON endpoint."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from langchain_core.tools import BaseTool, tool
from pydantic import BaseModel, Field

from ..config import Settings
from ..config.http_client import create_async_httpx_client

logger = logging.getLogger(__name__)

_MAX_ORGANIC_RESULTS = 5


class WebSearchInput(BaseModel):
    """Schema for web search requests."""

    query: str = Field(..., description="Search query, e.g. 'bitcoin price today'.")


def format_search_results(data: Dict[str, Any]) -> str:
    """Pick the most direct answer SerpAPI returned, falling back to snippets."""
    answer_box = data.get("answer_box") or {}
    for key in ("answer", "snippet", "result"):
        value = answer_box.get(key)
        if value:
            return str(value)
    if isinstance(answer_box.get("snippet_highlighted_words"), list) and answer_box["snippet_highlighted_words"]:
        return str(answer_box["snippet_highlighted_words"][0])

    knowledge_graph = data.get("knowledge_graph") or {}
    if knowledge_graph.get("description"):
        return str(knowledge_graph["description"])

    lines: List[str] = []
    for result in (data.get("organic_results") or [])[:_MAX_ORGANIC_RESULTS]:
        title = result.get("title") or ""
        snippet = result.get("snippet") or ""
        link = result.get("link") or ""
        entry = f"- {title}: {snippet}".rstrip(": ")
        if link:
            entry = f"{entry} ({link})"
        lines.append(entry)
    if lines:
        return "\n".join(lines)
    return "No good search result found"


def create_search_tool(
    settings: Settings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BaseTool:
    """Build the ``web_search`` tool bound to the configured SerpAPI account."""

    @tool(
        "web_search",
        args_schema=WebSearchInput,
        description=(
            "Search Google for current events, prices and facts you do not know. "
            "Required argument: query (string)."
        ),
    )
    async def web_search(query: str) -> str:
        """Search Google through SerpAPI."""
        if not settings.serpapi_api_key:
            return "Search is unavailable: SERPAPI_API_KEY is not configured."
        params = {
            "engine": "google",
            "q": query,
            "api_key": settings.serpapi_api_key,
            "location": settings.serpapi_location,
            "hl": settings.serpapi_hl,
            "gl": settings.serpapi_gl,
        }
        try:
            async with create_async_httpx_client(
                base_url=settings.serpapi_base_url,
                timeout=settings.request_timeout,
                transport=transport,
            ) as client:
                response = await client.get("/search.json", params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            logger.warning("SerpAPI request failed: %s", exc)
            return f"Search service error: {exc}"
        if data.get("error"):
            return f"Search service error: {data['error']}"
        return format_search_results(data)

    return web_search
