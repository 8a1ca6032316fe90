"""Chat model factories."""
from .ollama_chat import SafeChatOllama, create_chat_model

__all__ = ["SafeChatOllama", "create_chat_model"]
