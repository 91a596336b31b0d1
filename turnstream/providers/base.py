"""Base interfaces for generative LLM backends.

Every backend implementation inherits from BaseLLM so the response
orchestrator can consume the same fragment-level stream regardless of the
underlying service.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator


# ---------------------------------------------------------------------------
# Data classes for provider communication
# ---------------------------------------------------------------------------

@dataclass
class LLMChunk:
    """A single streamed unit from an LLM response.

    Tool call data is carried as raw fragments exactly as the backend
    streamed them: the first fragment of a call carries its id and name,
    later fragments carry only more argument text.
    """

    text: str = ""
    # Function/tool call fragment
    tool_call_index: int | None = None  # Set on every tool call fragment
    tool_call_id: str = ""
    tool_name: str = ""
    tool_arguments: str = ""  # Argument text fragment, not accumulated
    # Stream bookkeeping
    finish_reason: str = ""
    is_final: bool = False
    # Usage info (only on final chunk)
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def starts_tool_call(self) -> bool:
        """Whether this fragment opens a new tool call declaration."""
        return bool(self.tool_call_id and self.tool_name)

    @property
    def has_tool_data(self) -> bool:
        return self.tool_call_index is not None or bool(
            self.tool_call_id or self.tool_name or self.tool_arguments
        )


@dataclass
class LLMToolCall:
    """A completed function/tool call from the LLM."""

    id: str
    name: str
    arguments: dict[str, Any]


@dataclass
class Message:
    """A conversation message for the LLM."""

    role: str  # "system", "user", "assistant", "tool"
    content: str | None = ""
    tool_call_id: str = ""
    tool_calls: list[LLMToolCall] = field(default_factory=list)
    name: str = ""  # For tool results


# ---------------------------------------------------------------------------
# Abstract Base Class
# ---------------------------------------------------------------------------

class BaseLLM(ABC):
    """Abstract base class for Large Language Model providers.

    LLM providers process conversation messages and generate streaming
    text responses, optionally with function/tool calls.

    Lifecycle:
        1. __init__(api_key, model, **config) - configure the provider
        2. generate(messages, tools?) - async iterator of LLMChunk objects
        3. close() - clean up any persistent connections
    """

    @abstractmethod
    async def generate(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None = None,
        temperature: float = 0.1,
        max_tokens: int = 200,
    ) -> AsyncIterator[LLMChunk]:
        """Generate a streaming response from the LLM.

        Args:
            messages: Conversation history as Message objects.
            tools: Optional list of tool/function definitions in
                   OpenAI-compatible format.
            temperature: Sampling temperature (0.0 - 2.0).
            max_tokens: Maximum tokens to generate.

        Yields:
            LLMChunk objects, one per streamed delta. Errors from the
            backend propagate to the caller.
        """
        ...
        yield  # pragma: no cover

    async def close(self) -> None:
        """Clean up any persistent connections. Override if needed."""
        pass

    @property
    @abstractmethod
    def model(self) -> str:
        """The model identifier (e.g., 'llama3-70b-8192', 'gpt-4o-mini')."""
        ...

    @property
    def name(self) -> str:
        """Provider name for logging."""
        return self.__class__.__name__
