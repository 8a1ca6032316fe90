"""Configuration module."""
from .http_client import create_async_httpx_client
from .kv import create_kv_client, kv_connection, redis_url
from .settings import Settings, get_settings

__all__ = [
	"Settings",
	"get_settings",
	"create_kv_client",
	"kv_connection",
	"redis_url",
	"create_async_httpx_client",
]
