"""Centralized helpers for constructing HTTPX clients used by the agent tools."""
from __future__ import annotations

from typing import Any, Optional

import httpx

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; dragonchat/0.1)",
    "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
}


def _normalize_base_url(base_url: str) -> str:
    return base_url.rstrip("/")


def create_async_httpx_client(
    *,
    base_url: str = "",
    timeout: Optional[float | int | httpx.Timeout] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    **kwargs: Any,
) -> httpx.AsyncClient:
    """Return a configured asynchronous httpx.AsyncClient."""
    headers = {**DEFAULT_HEADERS, **kwargs.pop("headers", {})}
    return httpx.AsyncClient(
        base_url=_normalize_base_url(base_url),
        timeout=timeout,
        transport=transport,
        headers=headers,
        follow_redirects=True,
        **kwargs,
    )
