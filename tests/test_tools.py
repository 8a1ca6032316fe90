"""Tests for the agent tools; HTTP traffic goes through httpx.MockTransport."""
from __future__ import annotations

import httpx
import pytest

from dragonchat.config import Settings
from dragonchat.tools import get_default_tools
from dragonchat.tools.browser import create_browser_tool, page_to_text
from dragonchat.tools.calculator import calculator, evaluate_expression
from dragonchat.tools.crypto import create_crypto_trends_tool, crypto_news, format_trending
from dragonchat.tools.search import create_search_tool, format_search_results


def test_default_tool_names(settings):
    names = [tool.name for tool in get_default_tools(settings)]
    assert names == ["web_search", "calculator", "web_browser", "crypto_trends", "crypto_news"]


@pytest.mark.parametrize(
    "expression, expected",
    [
        ("2 + 3 * 4", 14),
        ("(69000 - 42000) / 42000 * 100", pytest.approx(64.2857, rel=1e-4)),
        ("2 ^ 10", 1024),
        ("-5 // 2", -3),
        ("sqrt(16) + round(2.6)", 7),
        ("pi * 2", pytest.approx(6.28318, rel=1e-5)),
    ],
)
def test_evaluate_expression(expression, expected):
    assert evaluate_expression(expression) == expected


@pytest.mark.parametrize(
    "expression",
    ["__import__('os').system('ls')", "open('x')", "a + 1", "(1).__class__", "2 ** 100000"],
)
def test_evaluate_expression_rejects_unsafe_input(expression):
    with pytest.raises(ValueError):
        evaluate_expression(expression)


def test_calculator_tool_formats_results():
    assert calculator.invoke({"expression": "10 / 4"}) == "2.5"
    assert calculator.invoke({"expression": "10 / 2"}) == "5"
    assert calculator.invoke({"expression": "1 / 0"}).startswith("Could not evaluate")


def test_format_search_results_prefers_answer_box():
    assert format_search_results({"answer_box": {"answer": "42"}, "organic_results": [{"title": "t"}]}) == "42"
    assert format_search_results({"knowledge_graph": {"description": "A coin"}}) == "A coin"
    organic = {
        "organic_results": [
            {"title": "BTC", "snippet": "Bitcoin rises", "link": "https://example.com/btc"},
            {"title": "ETH", "snippet": "Ether falls"},
        ]
    }
    assert format_search_results(organic) == (
        "- BTC: Bitcoin rises (https://example.com/btc)\n- ETH: Ether falls"
    )
    assert format_search_results({}) == "No good search result found"


@pytest.mark.asyncio
async def test_search_tool_sends_locale_parameters():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        return httpx.Response(200, json={"answer_box": {"answer": "$67,000"}})

    settings = Settings(_env_file=None, serpapi_api_key="key")
    tool = create_search_tool(settings, transport=httpx.MockTransport(handler))

    assert await tool.ainvoke({"query": "bitcoin price"}) == "$67,000"
    params = seen["url"].params
    assert seen["url"].path == "/search.json"
    assert params["q"] == "bitcoin price"
    assert params["location"] == "Shanghai"
    assert params["hl"] == "zh-cn"
    assert params["gl"] == "cn"
    assert params["api_key"] == "key"


@pytest.mark.asyncio
async def test_search_tool_without_key_explains():
    tool = create_search_tool(Settings(_env_file=None))
    assert "SERPAPI_API_KEY" in await tool.ainvoke({"query": "x"})


@pytest.mark.asyncio
async def test_search_tool_reports_http_errors():
    transport = httpx.MockTransport(lambda request: httpx.Response(500, json={}))
    tool = create_search_tool(Settings(_env_file=None, serpapi_api_key="key"), transport=transport)
    assert (await tool.ainvoke({"query": "x"})).startswith("Search service error")


def test_format_trending():
    coins = [{"item": {"name": "Bitcoin", "symbol": "BTC", "price_btc": 1.0, "market_cap_rank": 1}}]
    text = format_trending(coins)
    assert "1. Bitcoin (BTC)" in text
    assert "#1" in text


@pytest.mark.asyncio
async def test_crypto_trends_tool_fetches_trending(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v3/search/trending"
        return httpx.Response(
            200,
            json={"coins": [{"item": {"name": "Pepe", "symbol": "PEPE", "price_btc": 1e-10, "market_cap_rank": 30}}]},
        )

    tool = create_crypto_trends_tool(settings, transport=httpx.MockTransport(handler))
    result = await tool.ainvoke({})
    assert "Pepe (PEPE)" in result
    assert "#30" in result


@pytest.mark.asyncio
async def test_crypto_trends_tool_returns_error_text(settings):
    transport = httpx.MockTransport(lambda request: httpx.Response(429, json={}))
    tool = create_crypto_trends_tool(settings, transport=transport)
    assert "出错" in await tool.ainvoke({})


def test_crypto_news_builds_search_hint():
    assert '"ETH cryptocurrency news"' in crypto_news.invoke({"coin": "ETH"})
    assert '"cryptocurrency news"' in crypto_news.invoke({})


def test_page_to_text_strips_noise_and_truncates():
    html = """
    <html><head><title>Market wrap</title><script>var x = 1;</script></head>
    <body><nav>Menu</nav><div class="cookie-banner">Accept cookies</div>
    <h1>Bitcoin climbs</h1><p>Prices rose <a href="https://example.com">sharply</a>.</p>
    <!-- hidden --></body></html>
    """
    text = page_to_text(html, max_chars=1000)
    assert text.startswith("# Market wrap")
    assert "Bitcoin climbs" in text
    assert "[sharply](https://example.com)" in text
    for noise in ("var x", "Menu", "Accept cookies", "hidden"):
        assert noise not in text

    short = page_to_text("<p>" + "word " * 200 + "</p>", max_chars=50)
    assert len(short) <= 50
    assert short.endswith("...")


@pytest.mark.asyncio
async def test_browser_tool_fetches_page(settings):
    transport = httpx.MockTransport(
        lambda request: httpx.Response(
            200,
            headers={"content-type": "text/html; charset=utf-8"},
            text="<html><body><p>Hello from the page</p></body></html>",
        )
    )
    tool = create_browser_tool(settings, transport=transport)
    assert "Hello from the page" in await tool.ainvoke({"url": "https://example.com/a"})


@pytest.mark.asyncio
async def test_browser_tool_rejects_relative_urls(settings):
    tool = create_browser_tool(settings)
    assert "absolute" in await tool.ainvoke({"url": "example.com"})
