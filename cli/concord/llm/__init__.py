"""LLM Module - Model backend access and usage accounting."""

from .openrouter import OpenRouterClient, ModelResponse
from .usage import LLMUsage, UsageTracker

__all__ = [
    "OpenRouterClient",
    "ModelResponse",
    "LLMUsage",
    "UsageTracker",
]
