"""Tests for per-turn prompt assembly."""

import json

from turnstream.core.events import ReminderRequired, ResponseRequired, Utterance
from turnstream.pipeline.dispatch import FunctionCall
from turnstream.pipeline.prompt import REMINDER_PROMPT, PromptAssembler


TRANSCRIPT = [
    Utterance(role="agent", content="Hi there! How can I help?"),
    Utterance(role="user", content="I have ants in my kitchen."),
    Utterance(role="agent", content="Sorry to hear that."),
    Utterance(role="user", content="Can someone come Monday?"),
]


def _assembler():
    return PromptAssembler(system_prompt="You are Katie.")


class TestPromptAssembler:

    def test_message_count_without_contact(self):
        request = ResponseRequired(response_id=1, transcript=TRANSCRIPT)
        messages = _assembler().build(request)
        assert len(messages) == 1 + len(TRANSCRIPT)

    def test_message_count_with_contact(self):
        request = ResponseRequired(response_id=1, transcript=TRANSCRIPT)
        messages = _assembler().build(request, "[Contact Information: Customer: Ana]")
        assert len(messages) == 2 + len(TRANSCRIPT)
        assert messages[1].role == "assistant"
        assert messages[1].content == "[Contact Information: Customer: Ana]"

    def test_blank_contact_summary_is_skipped(self):
        request = ResponseRequired(response_id=1, transcript=TRANSCRIPT)
        messages = _assembler().build(request, "   ")
        assert len(messages) == 1 + len(TRANSCRIPT)

    def test_system_prompt_first(self):
        request = ResponseRequired(response_id=1, transcript=[])
        messages = _assembler().build(request)
        assert [(m.role, m.content) for m in messages] == [("system", "You are Katie.")]

    def test_transcript_order_and_roles(self):
        request = ResponseRequired(response_id=1, transcript=TRANSCRIPT)
        messages = _assembler().build(request)[1:]
        assert [m.role for m in messages] == ["assistant", "user", "assistant", "user"]
        assert [m.content for m in messages] == [u.content for u in TRANSCRIPT]

    def test_caller_role_maps_to_user(self):
        request = ResponseRequired(
            response_id=1,
            transcript=[{"role": "caller", "content": "Hi"}, {"role": "agent", "content": "Hello"}],
        )
        messages = _assembler().build(request)[1:]
        assert [m.role for m in messages] == ["user", "assistant"]

    def test_reminder_appends_marker(self):
        request = ReminderRequired(response_id=3, transcript=TRANSCRIPT)
        messages = _assembler().build(request, "[Contact Information: Customer: Ana]")
        assert len(messages) == 3 + len(TRANSCRIPT)
        assert messages[-1].role == "user"
        assert messages[-1].content == REMINDER_PROMPT

    def test_function_result_follows_transcript(self):
        call = FunctionCall(
            id="call_9",
            name="check_calendar_tidycal",
            raw_arguments='{"requested_datetime": "2024-01-01T10:00:00"}',
        )
        call.finalize()
        call.result = json.dumps({"available": True})

        request = ResponseRequired(response_id=2, transcript=TRANSCRIPT)
        messages = _assembler().build(request, function_result=call)

        assistant, tool = messages[-2], messages[-1]
        assert assistant.role == "assistant"
        assert assistant.content is None
        assert assistant.tool_calls[0].id == "call_9"
        assert assistant.tool_calls[0].arguments == {"requested_datetime": "2024-01-01T10:00:00"}
        assert tool.role == "tool"
        assert tool.tool_call_id == "call_9"
        assert json.loads(tool.content) == {"available": True}

    def test_build_does_not_mutate_request(self):
        request = ResponseRequired(response_id=1, transcript=list(TRANSCRIPT))
        _assembler().build(request, "[Contact Information: Customer: Ana]")
        assert len(request.transcript) == len(TRANSCRIPT)
