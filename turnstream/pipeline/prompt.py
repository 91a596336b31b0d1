"""Prompt assembly for a single turn.

Builds the ordered message list sent to the LLM backend:

    [system persona]
    [assistant: contact summary]             (if the session has one)
    [transcript, role-mapped, in order]
    [assistant tool call + tool result]      (when resuming after a function)
    [user: reminder marker]                  (for reminder_required turns)

Unlike a rolling conversation buffer, nothing is trimmed or reordered: the
transcript the platform sends is the source of truth for every turn.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from turnstream.core.events import InteractionType, TurnRequest, Utterance
from turnstream.pipeline.dispatch import FunctionCall
from turnstream.providers.base import Message


REMINDER_PROMPT = "(Now the user has not responded in a while, you would say:)"

def _chat_role(role: str) -> str:
    return "assistant" if role == "agent" else "user"


@dataclass
class PromptAssembler:
    """Builds LLM input for a turn.

    Args:
        system_prompt: The agent persona instructions.
        reminder_prompt: Synthetic user line appended for reminder turns.
    """

    system_prompt: str
    reminder_prompt: str = REMINDER_PROMPT

    def build(
        self,
        request: TurnRequest,
        contact_summary: str = "",
        function_result: FunctionCall | None = None,
    ) -> list[Message]:
        """Assemble the message list for a turn request.

        Args:
            request: The response_required or reminder_required request.
            contact_summary: The session's contact digest ("" for none).
            function_result: A dispatched function call whose result should
                be fed back to the model.
        """
        messages = [Message(role="system", content=self.system_prompt)]

        if contact_summary and contact_summary.strip():
            messages.append(Message(role="assistant", content=contact_summary))

        messages.extend(self.convert_transcript(request.transcript))

        if function_result is not None:
            messages.append(
                Message(
                    role="assistant",
                    content=None,
                    tool_calls=[function_result.to_tool_call()],
                )
            )
            messages.append(
                Message(
                    role="tool",
                    content=function_result.result or "",
                    tool_call_id=function_result.id,
                    name=function_result.name,
                )
            )

        if request.interaction_type == InteractionType.REMINDER_REQUIRED.value:
            messages.append(Message(role="user", content=self.reminder_prompt))

        logger.debug(
            f"Prompt for response {request.response_id}: {len(messages)} messages"
        )
        return messages

    @staticmethod
    def convert_transcript(transcript: list[Utterance]) -> list[Message]:
        """Map platform utterances to LLM chat messages, preserving order."""
        return [
            Message(role=_chat_role(turn.role), content=turn.content)
            for turn in transcript
        ]
