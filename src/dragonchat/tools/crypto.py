"""Cryptocurrency market data helpers."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from langchain_core.tools import BaseTool, tool
from pydantic import BaseModel, Field

from ..config import Settings
from ..config.http_client import create_async_httpx_client

logger = logging.getLogger(__name__)


class CryptoNewsInput(BaseModel):
    """Schema for crypto news lookups."""

    coin: str = Field(
        default="",
        description="Optional coin symbol such as BTC or ETH; leave empty for general news.",
    )


def format_trending(coins: List[Dict[str, Any]]) -> str:
    lines = ["当前热门加密货币趋势:", ""]
    for index, coin in enumerate(coins, start=1):
        item = coin.get("item") or {}
        lines.append(f"{index}. {item.get('name')} ({item.get('symbol')})")
        lines.append(f"   价格 (BTC): {item.get('price_btc')}")
        lines.append(f"   市值排名: #{item.get('market_cap_rank')}")
        lines.append("")
    return "\n".join(lines)


def news_query(coin: str) -> str:
    coin = (coin or "").strip()
    return f"{coin} cryptocurrency news" if coin else "cryptocurrency news"


def create_crypto_trends_tool(
    settings: Settings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BaseTool:
    """Build the ``crypto_trends`` tool backed by the CoinGecko trending endpoint."""

    @tool(
        "crypto_trends",
        description="获取当前热门加密货币趋势。Return the currently trending coins. Takes no arguments.",
    )
    async def crypto_trends() -> str:
        """Return trending coins from CoinGecko."""
        try:
            async with create_async_httpx_client(
                base_url=settings.coingecko_base_url,
                timeout=settings.request_timeout,
                transport=transport,
            ) as client:
                response = await client.get("/search/trending")
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            logger.warning("CoinGecko request failed: %s", exc)
            return f"获取加密货币趋势时出错: {exc}"
        return format_trending(data.get("coins") or [])

    return crypto_trends


@tool(
    "crypto_news",
    args_schema=CryptoNewsInput,
    description=(
        "获取最新的加密货币新闻。Find the latest crypto news, optionally for one coin such as BTC or ETH."
    ),
)
def crypto_news(coin: str = "") -> str:
    """Point the agent at the search tool with a ready-made news query."""
    query = news_query(coin)
    return f'关于"{query}"的最新新闻可以通过搜索工具获取。请使用 web_search 工具搜索"{query}"获取最新资讯。'
