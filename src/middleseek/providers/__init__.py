"""Provider implementations."""

from .anthropic import AnthropicProvider
from .base import CompletionProvider
from .mock import MockProvider
from .models import ChatMessage, CompletionRequest, ProviderResponse
from .openai_compat import OpenAICompatibleProvider

__all__ = [
    "AnthropicProvider",
    "ChatMessage",
    "CompletionProvider",
    "CompletionRequest",
    "MockProvider",
    "OpenAICompatibleProvider",
    "ProviderResponse",
]
