"""Configuration helpers for the chat agent."""
from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Env-backed settings."""

    kv_backend: Literal["redis", "memory"] = "redis"
    dragonfly_host: str = "localhost"
    dragonfly_port: int = 6379
    dragonfly_password: Optional[str] = None
    dragonfly_db: int = 0
    chat_session_id: str = "demo-session"
    chat_memory_key: str = "chat_history"
    chat_history_ttl_seconds: Optional[int] = None
    ollama_base_url: str = "http://localhost:11434"
    llm_model_name: str = "llama3.1"
    llm_temperature: float = 0.7
    llm_max_output_tokens: Optional[int] = None
    llm_context_window: Optional[int] = None
    chat_system_prompt: str = (
        "You are a helpful assistant who can search from google. When you don't know the answer, "
        "use the search tools to get a result, and if the user mentions realtime data "
        "(or 实时), always use the search tools."
    )
    serpapi_api_key: Optional[str] = None
    serpapi_base_url: str = "https://serpapi.com"
    serpapi_location: str = "Shanghai"
    serpapi_hl: str = "zh-cn"
    serpapi_gl: str = "cn"
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    request_timeout: int = 30
    browser_max_chars: int = 4000
    langfuse_public_key: Optional[str] = None
    langfuse_secret_key: Optional[str] = None
    langfuse_host: Optional[str] = None
    langfuse_environment: str = "production"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @model_validator(mode="after")
    def _validate_settings(self) -> "Settings":
        if not 0 < self.dragonfly_port < 65536:
            raise ValueError("dragonfly_port must be between 1 and 65535")
        if self.chat_history_ttl_seconds is not None and self.chat_history_ttl_seconds <= 0:
            raise ValueError("chat_history_ttl_seconds must be positive when set")
        if not self.chat_session_id:
            raise ValueError("chat_session_id must be set")
        if self.browser_max_chars <= 0:
            raise ValueError("browser_max_chars must be positive")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
        if bool(self.langfuse_public_key) ^ bool(self.langfuse_secret_key):
            raise ValueError("Provide both LANGFUSE_PUBLIC_KEY and LANGFUSE_SECRET_KEY or neither")
        return self


@lru_cache()
def get_settings() -> Settings:
    """Cached settings accessor."""
    return Settings()
