from __future__ import annotations

from pydantic_ai.messages import (
    ModelRequest,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    ToolCallPart,
    ToolReturnPart,
    UserPromptPart,
)

from autopilot_ai.agent_core.reasoning import (
    history_to_messages,
    response_text,
    system_message,
    tool_calls,
    trim_transcript,
    user_message,
)
from autopilot_ai.agent_core.schemas.domain import HistoryMessage, MessageRole


def test_response_helpers_split_text_and_calls() -> None:
    response = ModelResponse(
        parts=[TextPart(content=" thinking "), ToolCallPart(tool_name="echo", args={"text": "a"}, tool_call_id="c1")]
    )
    assert response_text(response) == "thinking"
    assert [c.tool_name for c in tool_calls(response)] == ["echo"]


def test_history_maps_roles() -> None:
    messages = history_to_messages(
        [
            HistoryMessage(owner_id="u1", role=MessageRole.human, content="hi"),
            HistoryMessage(owner_id="u1", role=MessageRole.ai, content="hello"),
        ]
    )
    assert isinstance(messages[0], ModelRequest)
    assert isinstance(messages[0].parts[0], UserPromptPart)
    assert isinstance(messages[1], ModelResponse)
    assert response_text(messages[1]) == "hello"


def test_short_transcript_is_unchanged() -> None:
    messages = [system_message("sys"), user_message("a"), user_message("b")]
    assert trim_transcript(messages, 14) == messages


def test_trim_keeps_system_message_and_recent_window() -> None:
    messages = [system_message("sys")] + [user_message(str(i)) for i in range(20)]
    trimmed = trim_transcript(messages, 14)

    assert len(trimmed) == 15
    assert isinstance(trimmed[0].parts[0], SystemPromptPart)
    assert [m.parts[0].content for m in trimmed[1:]] == [str(i) for i in range(6, 20)]


def test_trim_strips_orphaned_tool_returns_at_window_start() -> None:
    orphan = ModelRequest(
        parts=[
            ToolReturnPart(tool_name="propose_plan", content="Plan received.", tool_call_id="c1"),
            UserPromptPart(content="Step 1 result: completed"),
        ]
    )
    only_returns = ModelRequest(parts=[ToolReturnPart(tool_name="read_scratchpad", content="...", tool_call_id="c2")])
    body = [user_message("old")] * 5

    trimmed = trim_transcript([system_message("sys"), *body, orphan, user_message("new")], 2)
    assert [type(p) for p in trimmed[1].parts] == [UserPromptPart]
    assert len(trimmed) == 3

    trimmed = trim_transcript([system_message("sys"), *body, only_returns, user_message("new")], 2)
    assert len(trimmed) == 2
    assert trimmed[1].parts[0].content == "new"


def test_trim_without_system_message() -> None:
    messages = [user_message(str(i)) for i in range(5)]
    assert [m.parts[0].content for m in trim_transcript(messages, 2)] == ["3", "4"]
    assert trim_transcript([], 3) == []
