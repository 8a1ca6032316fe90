"""Tool-using chat agent with key-value backed conversation memory."""

__version__ = "0.1.0"
