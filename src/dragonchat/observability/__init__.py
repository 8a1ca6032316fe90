"""Observability helpers."""
from .langfuse import LangfuseObserver, create_langfuse_observer

__all__ = ["LangfuseObserver", "create_langfuse_observer"]
