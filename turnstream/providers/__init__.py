"""turnstream LLM providers.

Provides a unified streaming interface over generative backends:
- OpenAI Chat Completions
- Groq (OpenAI-compatible endpoint)

Usage:
    from turnstream.providers import provider_registry

    llm = provider_registry.create_llm("groq", api_key="...")
"""

from turnstream.providers.base import BaseLLM, LLMChunk, LLMToolCall, Message
from turnstream.providers.registry import provider_registry

__all__ = [
    "BaseLLM",
    "LLMChunk",
    "LLMToolCall",
    "Message",
    "provider_registry",
]
