"""LLM providers for the Assessment Session Engine."""

from .deepseek_provider import DeepSeekProvider

__all__ = [
    "DeepSeekProvider",
]
