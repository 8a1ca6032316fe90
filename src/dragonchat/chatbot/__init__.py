"""Chatbot module exports."""
from .graph import LangGraphAgent, create_agent_app
from .service import ChatbotService, ChatResult

__all__ = [
    "ChatbotService",
    "ChatResult",
    "LangGraphAgent",
    "create_agent_app",
]
