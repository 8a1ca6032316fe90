"""Web browser tool that fetches a page and returns readable markdown."""
from __future__ import annotations

import logging
import re
from typing import Optional

import html2text
import httpx
from bs4 import BeautifulSoup, Comment
from langchain_core.tools import BaseTool, tool
from pydantic import BaseModel, Field

from ..config import Settings
from ..config.http_client import create_async_httpx_client

logger = logging.getLogger(__name__)

_NOISY_TAGS = ["script", "style", "nav", "footer", "header", "aside", "noscript", "form", "iframe"]
_NOISY_CLASS_KEYWORDS = ["advert", "promo", "sidebar", "cookie", "tracking", "banner"]


class WebBrowserInput(BaseModel):
    """Schema for page fetch requests."""

    url: str = Field(..., description="Absolute http(s) URL of the page to read.")


def clean_html(html: str) -> BeautifulSoup:
    """Drop scripts, navigation chrome and ad containers from a page."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(_NOISY_TAGS):
        tag.decompose()
    for comment in soup.find_all(string=lambda x: isinstance(x, Comment)):
        comment.extract()
    for div in soup.find_all("div"):
        if div.decomposed:
            continue
        classes = " ".join(div.get("class") or [])
        if any(keyword in classes.lower() for keyword in _NOISY_CLASS_KEYWORDS):
            div.decompose()
    return soup


def html_to_markdown(cleaned_soup: BeautifulSoup) -> str:
    converter = html2text.HTML2Text()
    converter.ignore_links = False
    converter.ignore_images = True
    converter.body_width = 0
    markdown = converter.handle(str(cleaned_soup))
    return re.sub(r"\n{3,}", "\n\n", markdown).strip()


def page_to_text(html: str, max_chars: int) -> str:
    """Render ``html`` as markdown, prefixed by its title and cut to ``max_chars``."""
    soup = clean_html(html)
    title = soup.title.get_text(strip=True) if soup.title else ""
    body = html_to_markdown(soup)
    if title and not body.startswith(title):
        body = f"# {title}\n\n{body}"
    if len(body) > max_chars:
        body = body[: max_chars - 3].rstrip() + "..."
    return body


def create_browser_tool(
    settings: Settings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BaseTool:
    """Build the ``web_browser`` tool."""

    @tool(
        "web_browser",
        args_schema=WebBrowserInput,
        description=(
            "Open a web page and return its main text as markdown. Use it to read an article "
            "or page found via search. Required argument: url (string)."
        ),
    )
    async def web_browser(url: str) -> str:
        """Fetch a page and return its readable text."""
        target = (url or "").strip()
        if not target.startswith(("http://", "https://")):
            return "Please provide an absolute http(s) URL."
        try:
            async with create_async_httpx_client(timeout=settings.request_timeout, transport=transport) as client:
                response = await client.get(target)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Failed to fetch %s: %s", target, exc)
            return f"Could not open {target}: {exc}"
        content_type = response.headers.get("content-type", "")
        if "html" not in content_type and content_type:
            text = response.text
            return text[: settings.browser_max_chars]
        return page_to_text(response.text, settings.browser_max_chars) or "The page has no readable text."

    return web_browser
