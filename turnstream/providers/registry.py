"""LLM backend lookup by the name used in ``llm.provider``.

Built-in backends are referenced as "module:Class" strings and only
imported when first created.
"""

from __future__ import annotations

import importlib
from typing import Any

from loguru import logger

from turnstream.providers.base import BaseLLM


BUILTIN_LLMS: dict[str, str] = {
    "openai": "turnstream.providers.llm.openai:OpenAILLM",
    "groq": "turnstream.providers.llm.openai:GroqLLM",
}


class ProviderRegistry:
    """Maps provider names to BaseLLM classes.

    Example:
        llm = provider_registry.create_llm("groq", api_key="...")
    """

    def __init__(self) -> None:
        self._llms: dict[str, type[BaseLLM] | str] = dict(BUILTIN_LLMS)

    def register_llm(self, name: str, cls: type[BaseLLM]) -> None:
        self._llms[name] = cls
        logger.debug(f"Registered LLM provider: {name}")

    def create_llm(self, name: str, **kwargs: Any) -> BaseLLM:
        """Instantiate the backend registered under ``name``.

        Raises:
            ValueError: If no backend has that name.
        """
        try:
            ref = self._llms[name]
        except KeyError:
            raise ValueError(
                f"Unknown LLM provider '{name}'. Available: {', '.join(self._llms)}"
            ) from None

        if isinstance(ref, str):
            module_path, class_name = ref.split(":")
            ref = getattr(importlib.import_module(module_path), class_name)
            self._llms[name] = ref

        logger.info(f"Creating LLM provider: {name} ({ref.__name__})")
        return ref(**kwargs)

    @property
    def available_llm(self) -> list[str]:
        return list(self._llms)


provider_registry = ProviderRegistry()
