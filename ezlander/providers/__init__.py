"""LLM provider adapters."""

from ezlander.providers.base import (
    ConversationItem,
    ProviderAdapter,
    ProviderReply,
    ProviderRequest,
    ToolInvocation,
    ToolResult,
)
from ezlander.providers.claude import ClaudeAdapter
from ezlander.providers.gemini import GeminiAdapter
from ezlander.providers.openai_compat import KimiAdapter, OpenAIAdapter

__all__ = [
    "ConversationItem",
    "ProviderAdapter",
    "ProviderReply",
    "ProviderRequest",
    "ToolInvocation",
    "ToolResult",
    "ClaudeAdapter",
    "GeminiAdapter",
    "KimiAdapter",
    "OpenAIAdapter",
]
