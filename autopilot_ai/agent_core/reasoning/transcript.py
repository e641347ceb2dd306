"""Helpers for building and bounding pydantic-ai transcripts."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    ToolCallPart,
    ToolReturnPart,
    UserPromptPart,
)

from ..schemas.domain import HistoryMessage, MessageRole


def system_message(text: str) -> ModelRequest:
    return ModelRequest(parts=[SystemPromptPart(content=text)])


def user_message(text: str) -> ModelRequest:
    return ModelRequest(parts=[UserPromptPart(content=text)])


def response_text(response: ModelResponse) -> str:
    return "".join(p.content for p in response.parts if isinstance(p, TextPart)).strip()


def tool_calls(response: ModelResponse) -> List[ToolCallPart]:
    return [p for p in response.parts if isinstance(p, ToolCallPart)]


def history_to_messages(history: Iterable[HistoryMessage]) -> List[ModelMessage]:
    messages: List[ModelMessage] = []
    for item in history:
        if item.role == MessageRole.human:
            messages.append(user_message(item.content))
        else:
            messages.append(ModelResponse(parts=[TextPart(content=item.content)]))
    return messages


def _is_system(message: ModelMessage) -> bool:
    return isinstance(message, ModelRequest) and any(isinstance(p, SystemPromptPart) for p in message.parts)


def _strip_returns(message: ModelRequest) -> ModelRequest | None:
    parts = [p for p in message.parts if not isinstance(p, ToolReturnPart)]
    if not parts:
        return None
    return ModelRequest(parts=parts)


def trim_transcript(messages: Sequence[ModelMessage], max_recent: int) -> List[ModelMessage]:
    """
    Keep the leading system message plus the ``max_recent`` most recent messages.

    Tool returns at the start of the kept window have lost the call they
    answer; they are stripped, and a request left empty is dropped.
    """
    if not messages:
        return []
    head: List[ModelMessage] = [messages[0]] if _is_system(messages[0]) else []
    body = list(messages[len(head):])
    if len(body) <= max_recent:
        return head + body
    tail = body[-max_recent:] if max_recent > 0 else []
    if tail and isinstance(tail[0], ModelRequest):
        first = _strip_returns(tail[0])
        tail = ([first] if first is not None else []) + tail[1:]
    return head + tail
