"""Reasoning-service contract and helpers.

Transcripts are pydantic-ai ``ModelMessage`` lists; the capability manifest
is a list of pydantic-ai ``ToolDefinition``s. A reasoning service answers one
turn with a ``ModelResponse`` holding either text or tool calls.
"""

from .client import PydanticAIReasoningService, ReasoningClient, ReasoningService
from .transcript import (
    history_to_messages,
    response_text,
    system_message,
    tool_calls,
    trim_transcript,
    user_message,
)

__all__ = [
    "PydanticAIReasoningService",
    "ReasoningClient",
    "ReasoningService",
    "history_to_messages",
    "response_text",
    "system_message",
    "tool_calls",
    "trim_transcript",
    "user_message",
]
