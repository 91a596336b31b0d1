"""turnstream turn pipeline - prompt -> streaming LLM -> function dispatch -> channel.

For each turn request the orchestrator assembles the prompt, streams the
backend's reply to the channel as partial responses, dispatches at most one
function call, and closes the turn with a single final response.

Usage:
    from turnstream.pipeline import ResponseOrchestrator, FunctionDispatcher

    orchestrator = ResponseOrchestrator(llm, FunctionDispatcher(webhooks), PromptAssembler(prompt))
    result = await orchestrator.run_turn(request, contact_summary, emitter)
"""

from turnstream.pipeline.dispatch import (
    ArgumentParseError,
    FunctionCall,
    FunctionDispatcher,
    FunctionName,
)
from turnstream.pipeline.emitter import ResponseEmitter
from turnstream.pipeline.orchestrator import (
    OrchestratorConfig,
    OrchestratorState,
    ResponseOrchestrator,
    TurnResult,
    UnitKind,
    classify_unit,
    render_function_result,
)
from turnstream.pipeline.prompt import PromptAssembler

__all__ = [
    "ArgumentParseError",
    "FunctionCall",
    "FunctionDispatcher",
    "FunctionName",
    "ResponseEmitter",
    "OrchestratorConfig",
    "OrchestratorState",
    "ResponseOrchestrator",
    "TurnResult",
    "UnitKind",
    "classify_unit",
    "render_function_result",
    "PromptAssembler",
]
