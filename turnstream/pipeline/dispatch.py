"""Function dispatch for backend tool calls.

When the LLM declares a function call mid-turn, the orchestrator hands the
parsed call to FunctionDispatcher, which:
1. Resolves the name to a member of the closed FunctionName set
2. Runs that member's invocation strategy (local or webhook)
3. Returns a structured result dict

Webhook-backed functions receive a POST with this JSON body:
{
    "function_name": "check_calendar_tidycal",
    "parameters": {"requested_datetime": "2024-01-01T10:00:00"},
    "timestamp": "2024-01-01T09:58:12.345Z"
}

No failure escapes dispatch(): unknown names and transport errors come back
as {"error": ..., "details": ...} results.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable

import httpx
from loguru import logger

from turnstream.providers.base import LLMToolCall


class FunctionName(str, Enum):
    """The fixed set of functions the agent may call."""

    CHECK_CALENDAR = "check_calendar_tidycal"
    CRM_LOOKUP = "ghl_lookup"
    END_CALL = "end_call"

    @classmethod
    def parse(cls, name: str) -> FunctionName | None:
        """Look up a member by wire name, or None if unknown."""
        try:
            return cls(name)
        except ValueError:
            return None


class ArgumentParseError(ValueError):
    """A function call's argument buffer is not a JSON object."""


@dataclass
class FunctionCall:
    """A function call declared by the backend, accumulated from fragments.

    Created from the fragment that carries the call id and name, extended
    by every later argument fragment, and finalized once the backend signals
    the declaration is complete.
    """

    id: str
    name: str
    raw_arguments: str = ""
    arguments: dict[str, Any] = field(default_factory=dict)
    result: str | None = None
    index: int = 0

    def append(self, fragment: str) -> None:
        self.raw_arguments += fragment

    def finalize(self) -> dict[str, Any]:
        """Parse the argument buffer.

        An empty buffer means a call with no arguments.

        Raises:
            ArgumentParseError: If the buffer is not a JSON object.
        """
        if not self.raw_arguments.strip():
            self.arguments = {}
            return self.arguments
        try:
            parsed = json.loads(self.raw_arguments)
        except json.JSONDecodeError as e:
            raise ArgumentParseError(f"Invalid arguments for {self.name}: {e}") from e
        if not isinstance(parsed, dict):
            raise ArgumentParseError(
                f"Arguments for {self.name} must be an object, got {type(parsed).__name__}"
            )
        self.arguments = parsed
        return self.arguments

    @property
    def function(self) -> FunctionName | None:
        return FunctionName.parse(self.name)

    def to_tool_call(self) -> LLMToolCall:
        return LLMToolCall(id=self.id, name=self.name, arguments=self.arguments)


def _utc_timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


Strategy = Callable[[FunctionName, dict[str, Any]], Awaitable[dict[str, Any]]]


class FunctionDispatcher:
    """Executes function calls against their providers.

    Every FunctionName member is bound to exactly one invocation strategy;
    construction fails if a member has none.

    Args:
        webhooks: Webhook URL per webhook-backed function.
        timeout: HTTP request timeout in seconds (default: 10).
        farewell: Message used by end_call when no reason is given.
        client: Optional preconfigured httpx.AsyncClient (used in tests).
        clock: Returns the ISO timestamp sent with each webhook call.
    """

    def __init__(
        self,
        webhooks: dict[FunctionName, str] | None = None,
        timeout: float = 10.0,
        farewell: str = "Thank you for calling PestAway Solutions! Have a great day!",
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], str] = _utc_timestamp,
    ):
        self._webhooks = dict(webhooks or {})
        self._timeout = timeout
        self._farewell = farewell
        self._client = client
        self._owns_client = client is None
        self._clock = clock

        self._strategies: dict[FunctionName, Strategy] = {
            FunctionName.END_CALL: self._end_call,
            FunctionName.CHECK_CALENDAR: self._post_webhook,
            FunctionName.CRM_LOOKUP: self._post_webhook,
        }
        missing = set(FunctionName) - set(self._strategies)
        if missing:
            raise RuntimeError(
                f"No dispatch strategy for: {', '.join(sorted(m.value for m in missing))}"
            )

    async def start(self) -> None:
        """Create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)

    async def close(self) -> None:
        """Close the HTTP client if this dispatcher created it."""
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def dispatch(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Execute a function call by name.

        Args:
            name: Function name as declared by the backend.
            arguments: Parsed arguments.

        Returns:
            The provider's result, or {"error": ..., "details"?: ...}.
        """
        function = FunctionName.parse(name)
        if function is None:
            logger.warning(f"Unknown function requested: {name}")
            return {"error": f"Unknown function: {name}"}

        logger.info(f"Dispatching function: {name}({arguments})")
        return await self._strategies[function](function, arguments)

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    async def _end_call(
        self, function: FunctionName, arguments: dict[str, Any]
    ) -> dict[str, Any]:
        reason = arguments.get("reason")
        return {
            "success": True,
            "message": reason if isinstance(reason, str) and reason else self._farewell,
        }

    async def _post_webhook(
        self, function: FunctionName, arguments: dict[str, Any]
    ) -> dict[str, Any]:
        name = function.value
        url = self._webhooks.get(function)
        if not url:
            logger.error(f"No webhook configured for {name}")
            return {
                "error": f"Failed to execute {name}",
                "details": "No webhook URL configured",
            }

        if self._client is None:
            await self.start()

        body = {
            "function_name": name,
            "parameters": arguments,
            "timestamp": self._clock(),
        }
        start_time = time.time()

        try:
            response = await self._client.post(url, json=body)
            duration_ms = int((time.time() - start_time) * 1000)
            if not response.is_success:
                raise httpx.HTTPStatusError(
                    f"HTTP error! status: {response.status_code}",
                    request=response.request,
                    response=response,
                )
            result = response.json()
            if not isinstance(result, dict):
                raise ValueError(
                    f"Expected a JSON object, got {type(result).__name__}"
                )
            logger.info(f"Function {name} succeeded in {duration_ms}ms")
            return result

        except httpx.TimeoutException:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.error(f"Function {name} timed out after {duration_ms}ms")
            return {"error": f"Failed to execute {name}", "details": "Request timed out"}
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error calling function {name}: {e}")
            return {"error": f"Failed to execute {name}", "details": str(e)}

    @property
    def webhooks(self) -> dict[FunctionName, str]:
        return dict(self._webhooks)
