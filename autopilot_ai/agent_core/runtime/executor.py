from __future__ import annotations

"""Bounded reasoning loop that runs one plan step.

Each turn sends the step transcript and the step's manifest to the reasoning
service:

- a text-only answer ends the step with that text as its result;
- each requested tool call is answered with an observation and the loop
  continues.

Observations come from the scratchpad built-ins (served inline, no policy,
no retry) or from a registered capability after the policy gate and the
retry policy. Capability-level failures only ever become observation text;
the step fails when the reasoning service fails or the turn budget runs out.
"""

import logging
from typing import AbstractSet, List, Optional, Sequence

from pydantic import ValidationError
from pydantic_ai.messages import ModelMessage, ModelRequest, ToolCallPart, ToolReturnPart

from autopilot_ai.core.monitoring import log_capability_call, log_policy_denial

from ..capabilities.base import CapabilityContext, CapabilityResult, FailureKind
from ..errors import ReasoningError
from ..prompts import WORKER_PROMPT, render_prompt
from ..reasoning.transcript import response_text, system_message, tool_calls, user_message
from ..schemas.domain import AgentRole, PolicyRequest, StepStatus
from ..scratchpad import (
    READ_SCRATCHPAD,
    WORKER_DATA_HEADING,
    WRITE_SCRATCHPAD,
    ScratchpadWriteArgs,
    scratchpad_tool_definitions,
)
from .models import EXHAUSTED_MESSAGE, MAX_WORKER_TURNS, ExecutorDeps, StepOutcome
from .retry import Sleep, invoke_with_retry

logger = logging.getLogger(__name__)


class StepExecutor:
    """Run plan steps through a capability-restricted ReAct loop.

    ``execute`` is used by the planner for each step; ``think`` exposes the
    same loop as a standalone agent over every registered capability.
    """

    def __init__(
        self,
        deps: ExecutorDeps,
        *,
        max_turns: int = MAX_WORKER_TURNS,
        sleep: Optional[Sleep] = None,
    ) -> None:
        self._deps = deps
        self._max_turns = max_turns
        self._sleep = sleep

    @property
    def deps(self) -> ExecutorDeps:
        return self._deps

    async def think(self, owner_id: str, text: str) -> str:
        """Run ``text`` as a single step with every capability available and return its result."""
        task_id = f"direct_{owner_id}"
        try:
            outcome = await self.execute(owner_id=owner_id, task_id=task_id, description=text, tools=None)
        finally:
            self._publish(owner_id, AgentRole.idle)
        return outcome.result

    async def execute(
        self,
        *,
        owner_id: str,
        task_id: str,
        description: str,
        step_id: Optional[int] = None,
        tools: Optional[Sequence[str]] = None,
    ) -> StepOutcome:
        """
        Execute one step to completion.

        Args:
            owner_id: Conversation owner, used for policy and accounting.
            task_id: Top-level task id; scopes the scratchpad.
            description: What the step must achieve.
            step_id: Plan step id, if the step belongs to a plan.
            tools: Capability whitelist. ``None`` allows every registered capability.

        Returns:
            ``completed`` with the model's final text, or ``failed`` with a diagnostic.
        """
        ctx = CapabilityContext(owner_id=owner_id, task_id=task_id, step_id=step_id)
        whitelist = None if tools is None else frozenset(tools)
        manifest = self._deps.capabilities.manifest(tools, builtins=scratchpad_tool_definitions())
        transcript: List[ModelMessage] = [system_message(self._system_prompt(ctx)), user_message(description)]
        label = f"step {step_id}" if step_id is not None else "direct"
        self._publish(owner_id, AgentRole.worker, f"Running {label}: {description}")

        for turn in range(1, self._max_turns + 1):
            logger.info("[%s][Worker Reasoning %d] %s, %d tools offered", owner_id, turn, label, len(manifest))
            try:
                response = await self._deps.reasoning.respond(
                    owner_id=owner_id, transcript=transcript, manifest=manifest, purpose="worker"
                )
            except ReasoningError as e:
                logger.error("[%s][Worker Reasoning %d] %s failed: %s", owner_id, turn, label, e)
                return StepOutcome(status=StepStatus.failed, result=f"Error: {e}", turns=turn)

            transcript.append(response)
            calls = tool_calls(response)
            if not calls:
                text = response_text(response)
                logger.info("[%s][Worker Reasoning %d] %s finished", owner_id, turn, label)
                return StepOutcome(status=StepStatus.completed, result=text, turns=turn)

            returns = []
            for call in calls:
                content = await self._observe(call, ctx, whitelist, turn)
                returns.append(ToolReturnPart(tool_name=call.tool_name, content=content, tool_call_id=call.tool_call_id))
            transcript.append(ModelRequest(parts=returns))

        logger.warning("[%s] %s exhausted %d reasoning turns", owner_id, label, self._max_turns)
        return StepOutcome(status=StepStatus.failed, result=EXHAUSTED_MESSAGE, turns=self._max_turns)

    async def _observe(
        self,
        call: ToolCallPart,
        ctx: CapabilityContext,
        whitelist: Optional[AbstractSet[str]],
        turn: int,
    ) -> str:
        name = call.tool_name
        owner_id = ctx.owner_id
        scratchpad = self._deps.scratchpad

        if name == READ_SCRATCHPAD:
            text = scratchpad.read(ctx.task_id)
            logger.debug("[%s][Worker Reasoning %d] read_scratchpad: %d chars", owner_id, turn, len(text))
            return text

        if name == WRITE_SCRATCHPAD:
            try:
                args = ScratchpadWriteArgs.model_validate(call.args_as_dict())
            except (ValidationError, ValueError) as e:
                return f"Error parsing write_scratchpad args: {e}"
            written = scratchpad.write(ctx.task_id, WORKER_DATA_HEADING, args.content)
            logger.debug("[%s][Worker Reasoning %d] write_scratchpad: %d chars", owner_id, turn, written)
            return f"Successfully wrote {written} characters to scratchpad."

        if whitelist is not None and name not in whitelist:
            logger.warning("[%s] tool %s requested outside the step whitelist", owner_id, name)
            result = _refused(FailureKind.not_permitted, f"Error: Tool {name} is not available for this step")
        else:
            result = await self._invoke(call, ctx, turn)
        log_capability_call(name, result.ok, result.attempts, result.failure.value if result.failure else None)
        return result.text

    async def _invoke(self, call: ToolCallPart, ctx: CapabilityContext, turn: int) -> CapabilityResult:
        name = call.tool_name
        owner_id = ctx.owner_id
        registry = self._deps.capabilities
        if not registry.has(name):
            return _refused(FailureKind.not_found, f"Error: Tool {name} not found")

        arguments = call.args_as_json_str()
        decision = self._deps.policy.evaluate(PolicyRequest(capability=name, arguments=arguments, owner_id=owner_id))
        if not decision.allowed:
            log_policy_denial(name, owner_id, decision.reason)
            return _refused(FailureKind.policy_denied, f"Policy Error: {decision.reason}")

        logger.info("[%s][Worker Reasoning %d] calling %s(%s)", owner_id, turn, name, arguments)
        result = await invoke_with_retry(
            name,
            lambda: registry.invoke(name, call.args, ctx),
            policy=self._deps.retry,
            sleep=self._sleep,
        )
        if not result.ok:
            logger.warning(
                "[%s] tool %s ended with %s after %d attempt(s): %r",
                owner_id,
                name,
                result.failure.value if result.failure else "error",
                result.attempts,
                result.error,
            )
        return result

    def _system_prompt(self, ctx: CapabilityContext) -> str:
        template = self._deps.prompts.get(WORKER_PROMPT)
        return render_prompt(
            template,
            {"OWNER_ID": ctx.owner_id, "TASK_ID": ctx.task_id, "STEP_ID": ctx.step_id if ctx.step_id is not None else "-"},
        )

    def _publish(self, owner_id: str, role: AgentRole, detail: str = "") -> None:
        if self._deps.status is not None:
            self._deps.status.update(owner_id, role, detail)


def _refused(kind: FailureKind, text: str) -> CapabilityResult:
    """Result for a call that was stopped before the capability ran."""
    return CapabilityResult(text=text, failure=kind, attempts=0)
