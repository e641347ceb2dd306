from __future__ import annotations

"""Reasoning-service contract, default implementation and client wrapper.

``ReasoningService`` is the narrow contract the engine needs from a language
model: given a transcript and a tool manifest, answer one turn. The default
``PydanticAIReasoningService`` delegates to any pydantic-ai model through
``pydantic_ai.direct.model_request``.

``ReasoningClient`` wraps a service with what every turn needs regardless of
the backend:

- a per-turn timeout (``ReasoningTimeoutError``),
- translation of backend failures into ``ReasoningServiceError``,
- cost recording into a ``CostRepository``,
- logging and Logfire usage events.
"""

import asyncio
import logging
from typing import Optional, Protocol, Sequence

from pydantic_ai.direct import model_request
from pydantic_ai.messages import ModelMessage, ModelResponse
from pydantic_ai.models import Model, ModelRequestParameters
from pydantic_ai.settings import ModelSettings
from pydantic_ai.tools import ToolDefinition

from autopilot_ai.core.monitoring import log_reasoning_usage

from ..errors import ReasoningError, ReasoningServiceError, ReasoningTimeoutError
from ..repos.interfaces import CostRepository
from ..schemas.domain import CostEntry

logger = logging.getLogger(__name__)

DEFAULT_TURN_TIMEOUT_SECONDS = 120.0


class ReasoningService(Protocol):
    """Answer one reasoning turn."""

    async def respond(self, transcript: Sequence[ModelMessage], manifest: Sequence[ToolDefinition]) -> ModelResponse:
        """
        Args:
            transcript: System directive, history and exchanges so far.
            manifest: Tools the model may call this turn.

        Returns:
            A response whose parts are text and/or tool calls.
        """
        ...


class PydanticAIReasoningService:
    """Reasoning service backed by a pydantic-ai model (e.g. ``"openai:gpt-4o"``)."""

    def __init__(self, model: Model | str, *, model_settings: Optional[ModelSettings] = None) -> None:
        self._model = model
        self._settings = model_settings

    async def respond(self, transcript: Sequence[ModelMessage], manifest: Sequence[ToolDefinition]) -> ModelResponse:
        params = ModelRequestParameters(function_tools=list(manifest), allow_text_output=True)
        return await model_request(
            self._model,
            list(transcript),
            model_settings=self._settings,
            model_request_parameters=params,
        )


class ReasoningClient:
    """Apply timeout, error translation and cost accounting around a ``ReasoningService``."""

    def __init__(
        self,
        service: ReasoningService,
        *,
        costs: Optional[CostRepository] = None,
        timeout: float = DEFAULT_TURN_TIMEOUT_SECONDS,
        model_label: str = "default",
    ) -> None:
        self._service = service
        self._costs = costs
        self._timeout = timeout
        self._label = model_label

    @property
    def timeout(self) -> float:
        return self._timeout

    async def respond(
        self,
        *,
        owner_id: str,
        transcript: Sequence[ModelMessage],
        manifest: Sequence[ToolDefinition],
        purpose: str = "reasoning",
    ) -> ModelResponse:
        """
        Run one turn.

        Raises:
            ReasoningTimeoutError: The service did not answer within the timeout.
            ReasoningServiceError: The service failed.
        """
        try:
            response = await asyncio.wait_for(self._service.respond(transcript, manifest), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            logger.warning("[%s] %s turn timed out after %ss", owner_id, purpose, self._timeout)
            raise ReasoningTimeoutError(f"{purpose} turn timed out after {self._timeout:g} seconds") from e
        except ReasoningError:
            raise
        except Exception as e:
            logger.error("[%s] %s turn failed: %s", owner_id, purpose, e)
            raise ReasoningServiceError(f"{purpose} service failed: {e}") from e

        await self._record_cost(owner_id, response)
        return response

    async def _record_cost(self, owner_id: str, response: ModelResponse) -> None:
        usage = response.usage
        model = response.model_name or self._label
        input_tokens = usage.input_tokens or 0
        output_tokens = usage.output_tokens or 0
        log_reasoning_usage(owner_id, model, input_tokens, output_tokens)
        if self._costs is None:
            return
        try:
            await self._costs.record(
                CostEntry(owner_id=owner_id, model=model, input_tokens=input_tokens, output_tokens=output_tokens)
            )
        except Exception as e:
            # Accounting is best effort; the turn itself succeeded.
            logger.warning("[%s] failed to record reasoning cost: %s", owner_id, e)
