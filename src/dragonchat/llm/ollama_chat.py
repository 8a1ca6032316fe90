"""LangChain chat model factory for Ollama-backed models."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.outputs import ChatResult
from langchain_ollama import ChatOllama
from ollama import ResponseError
from pydantic import PrivateAttr

from ..config import Settings

logger = logging.getLogger(__name__)


class SafeChatOllama(ChatOllama):
    """ChatOllama variant that raises a clear runtime error when the model is missing."""

    _missing_model_message: str = PrivateAttr(default="")

    def __init__(self, *, missing_model_message: str, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._missing_model_message = missing_model_message

    def _handle_response_error(self, error: ResponseError) -> None:
        if error.status_code == 404:
            raise RuntimeError(self._missing_model_message) from error
        raise error

    def _log_result(self, result: ChatResult) -> None:
        for generation in result.generations:
            message = getattr(generation, "message", None)
            tool_calls = getattr(message, "tool_calls", None) or []
            if tool_calls:
                logger.info("Model requested tools: %s", ", ".join(call["name"] for call in tool_calls))
            elif generation.text:
                logger.debug("Ollama raw response: %s", generation.text)

    def _generate(
        self,
        messages: List[Any],
        stop: Optional[List[str]] = None,
        run_manager: Optional[Any] = None,
        **kwargs: Any,
    ) -> ChatResult:
        try:
            result = super()._generate(messages, stop=stop, run_manager=run_manager, **kwargs)
        except ResponseError as exc:
            self._handle_response_error(exc)
        self._log_result(result)
        return result

    async def _agenerate(
        self,
        messages: List[Any],
        stop: Optional[List[str]] = None,
        run_manager: Optional[Any] = None,
        **kwargs: Any,
    ) -> ChatResult:
        try:
            result = await super()._agenerate(messages, stop=stop, run_manager=run_manager, **kwargs)
        except ResponseError as exc:
            self._handle_response_error(exc)
        self._log_result(result)
        return result


def create_chat_model(settings: Settings) -> BaseChatModel:
    """Instantiate a LangChain ChatOllama model from settings."""
    params: Dict[str, Any] = {
        "base_url": settings.ollama_base_url.rstrip("/"),
        "model": settings.llm_model_name,
        "temperature": settings.llm_temperature,
    }
    if settings.llm_max_output_tokens is not None:
        params["num_predict"] = settings.llm_max_output_tokens
    if settings.llm_context_window is not None:
        params["num_ctx"] = settings.llm_context_window
    missing_message = (
        f"Ollama model '{settings.llm_model_name}' is unavailable. "
        f"Pull it with 'ollama pull {settings.llm_model_name}' or update LLM_MODEL_NAME."
    )
    return SafeChatOllama(missing_model_message=missing_message, **params)
