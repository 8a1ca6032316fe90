"""Fixed LCEL pipeline producing a crypto market report.

Three branches run in parallel: trend analysis of CoinGecko data, the impact of
global economic news, and a one-year bitcoin return estimate. Their outputs
feed a final analysis prompt.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import PromptTemplate
from langchain_core.runnables import Runnable, RunnableLambda, RunnableParallel
from langchain_core.tools import BaseTool

from ..config import Settings
from ..llm import create_chat_model
from ..tools.crypto import create_crypto_trends_tool
from ..tools.search import create_search_tool

logger = logging.getLogger(__name__)

ECONOMIC_NEWS_QUERY = "latest global economic news affecting cryptocurrency"
BITCOIN_PRICE_QUERY = "bitcoin price one year ago and current bitcoin price"

TRENDS_PROMPT = PromptTemplate.from_template(
    "Here is the current trending cryptocurrency data:\n\n{crypto_trends}\n\nAnalyse these trends."
)

ECONOMIC_PROMPT = PromptTemplate.from_template(
    "Here is the latest global economic news:\n\n{economic_news}\n\n"
    "Summarise the potential impact of this news on the cryptocurrency market."
)

INVESTMENT_PROMPT = PromptTemplate.from_template(
    """Using the search results below, extract the bitcoin price one year ago and the current
price, then compute the return on investment:

{search_results}

Answer in this format:
1. Bitcoin price one year ago: X USD
2. Current bitcoin price: Y USD
3. Return: (Y-X)/X * 100% = Z%
4. Value today of 10,000 USD invested a year ago: 10,000 * (1 + Z%) = W USD
"""
)

FINAL_PROMPT = PromptTemplate.from_template(
    """You are an expert in cryptocurrency and financial markets. Based on the information below,
write a complete market analysis and investment advice for investors.

Cryptocurrency trend analysis:
{crypto_analysis}

Global economic impact:
{economic_analysis}

Investment return calculation:
{investment_analysis}

Provide:
1. A summary of current market conditions
2. A short-term (1-3 months) market outlook
3. Long-term investment strategy advice
4. Potential risk factors
5. Emerging crypto projects worth watching

Write in a professional, objective tone while keeping the content easy to understand.
"""
)


def _tool_step(tool: BaseTool, arguments: Dict[str, Any], output_key: str) -> Runnable:
    async def _call(_: Any) -> Dict[str, str]:
        logger.info("Workflow step: calling %s", tool.name)
        result = await tool.ainvoke(arguments)
        return {output_key: str(result)}

    return RunnableLambda(_call, name=f"{tool.name}_{output_key}")


def build_market_workflow(model: BaseChatModel, search: BaseTool, trends: BaseTool) -> Runnable:
    """Compose the three analysis branches and the final report prompt."""
    parser = StrOutputParser()
    crypto_chain = _tool_step(trends, {}, "crypto_trends") | TRENDS_PROMPT | model | parser
    economic_chain = _tool_step(search, {"query": ECONOMIC_NEWS_QUERY}, "economic_news") | ECONOMIC_PROMPT | model | parser
    investment_chain = (
        _tool_step(search, {"query": BITCOIN_PRICE_QUERY}, "search_results") | INVESTMENT_PROMPT | model | parser
    )
    return (
        RunnableParallel(
            crypto_analysis=crypto_chain,
            economic_analysis=economic_chain,
            investment_analysis=investment_chain,
        )
        | FINAL_PROMPT
        | model
        | parser
    )


async def run_market_workflow(settings: Settings, model: Optional[BaseChatModel] = None) -> str:
    """Build the workflow from settings and return the final report."""
    workflow = build_market_workflow(
        model or create_chat_model(settings),
        create_search_tool(settings),
        create_crypto_trends_tool(settings),
    )
    logger.info("Running crypto market analysis workflow")
    return await workflow.ainvoke({})
