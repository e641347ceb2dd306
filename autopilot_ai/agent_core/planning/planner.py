from __future__ import annotations

"""LangGraph-based plan state machine.

The planner drives one top-level task:

``plan`` -> ``select`` -> ``execute`` -> ``plan`` ... -> ``finish``

- ``plan`` trims the transcript and asks the reasoning service for a plan
  update (a ``propose_plan`` call) or the final answer. Scratchpad reads are
  served inline and the service is re-polled, up to a bounded depth. A
  returned plan passes through ``PlanGuard`` and deadlock detection.
- ``select`` picks the first pending or failed step. When none is left but
  no final answer came, it injects an instruction forcing one, and gives up
  after a bounded number of such turns.
- ``execute`` delegates the step to the ``StepExecutor``, writes the full
  result to the scratchpad and folds a truncated summary into the transcript.
- ``finish`` turns whatever terminal state was reached into a ``PlanRun``.

Every terminal failure (planning errors, deadlock, failed consolidation,
iteration budget) ends as a user-facing diagnostic, never a raw exception.
Cancellation is the exception: the in-flight step is recorded as cancelled
and ``asyncio.CancelledError`` propagates.
"""

import asyncio
import logging
import time
from typing import List, Optional, Tuple

from langgraph.graph import END, StateGraph
from pydantic_ai.messages import ModelRequest, ToolReturnPart, UserPromptPart

from autopilot_ai.core.monitoring import log_task_completed, log_task_started

from ..errors import MalformedPlanError, ReasoningError, ScratchpadRecursionError
from ..prompts import PLANNER_PROMPT, render_prompt
from ..reasoning.transcript import (
    history_to_messages,
    response_text,
    system_message,
    tool_calls,
    trim_transcript,
    user_message,
)
from ..runtime.executor import StepExecutor
from ..schemas.domain import AbortReason, AgentRole, MessageRole, Plan, StepStatus, TriggerSource
from ..scratchpad import READ_SCRATCHPAD, read_scratchpad_definition
from .models import PlanRun, PlannerDeps, PlannerLimits, _PlanState
from .steps import PROPOSE_PLAN, PlanGuard, parse_plan_proposal, propose_plan_tool

logger = logging.getLogger(__name__)

DEADLOCK_MESSAGE = (
    "Deadlock detected: The orchestration is not making progress. "
    "Multiple turns with no new completed steps. Aborting to prevent infinite loop."
)
CONSOLIDATION_MESSAGE = "All steps completed but the planner failed to produce a final answer. Please try again."
BUDGET_MESSAGE = "I've reached the maximum number of steps for this task. Please try a simpler request."
FORCE_FINAL_ANSWER = (
    "All planned steps are completed. You MUST now provide your final consolidated answer "
    "to the user as plain text, NOT as a tool call."
)
PLAN_RECEIVED = "Plan received."
TRUNCATION_SUFFIX = "... [truncated, full detail in scratchpad]"
CANCELLED_RESULT = "Step cancelled before completion."


def summarize_result(result: str, limit: int) -> str:
    if len(result) <= limit:
        return result
    return result[:limit] + TRUNCATION_SUFFIX


class Planner:
    """Plan-and-execute orchestrator for one task at a time.

    A ``Planner`` instance holds no per-task state and may serve many
    concurrent tasks; each ``run`` gets its own graph state.
    """

    def __init__(
        self,
        deps: PlannerDeps,
        executor: StepExecutor,
        *,
        limits: PlannerLimits = PlannerLimits(),
    ) -> None:
        self._deps = deps
        self._executor = executor
        self._limits = limits
        self._manifest = [propose_plan_tool(), read_scratchpad_definition()]
        self._graph = self._build_graph()

    @property
    def limits(self) -> PlannerLimits:
        return self._limits

    def _build_graph(self):
        """Build and compile the LangGraph state machine."""
        g: StateGraph = StateGraph(_PlanState)
        g.add_node("plan", self._node_plan)
        g.add_node("select", self._node_select)
        g.add_node("execute", self._node_execute)
        g.add_node("finish", self._node_finish)

        g.set_entry_point("plan")
        g.add_conditional_edges("plan", self._route_after_plan, {"select": "select", "finish": "finish"})
        g.add_conditional_edges(
            "select",
            self._route_after_select,
            {"execute": "execute", "plan": "plan", "finish": "finish"},
        )
        g.add_conditional_edges("execute", self._route_next_iteration, {"plan": "plan", "finish": "finish"})
        g.add_edge("finish", END)
        return g.compile()

    async def think(self, owner_id: str, text: str) -> str:
        """Run a task for ``owner_id`` and return the answer or diagnostic."""
        run = await self.run(owner_id, text)
        return run.answer

    async def run(self, owner_id: str, text: str, *, source: TriggerSource = TriggerSource.interactive) -> PlanRun:
        """
        Run one task to a final answer or a diagnosed abort.

        Args:
            owner_id: Conversation owner.
            text: The user goal (or a scheduler instruction).
            source: What triggered the task, for logging and monitoring.

        Returns:
            A ``PlanRun`` whose ``answer`` is always safe to show the user.
        """
        plan_id = await self._deps.plans.create(owner_id, text)
        task_id = f"plan_{plan_id}"
        history = await self._deps.history.get_history(owner_id, limit=self._limits.history_limit)

        transcript = [system_message(self._system_prompt(owner_id)), *history_to_messages(history), user_message(text)]
        state: _PlanState = {
            "owner_id": owner_id,
            "task_id": task_id,
            "plan_id": plan_id,
            "request": text,
            "transcript": transcript,
            "pending_returns": [],
            "guard": PlanGuard(),
            "plan": None,
            "iteration": 0,
            "last_completed": -1,
            "stuck_turns": 0,
            "consolidation_turns": 0,
            "current_step": None,
            "answer": None,
            "abort": None,
            "done": False,
        }

        logger.info("[%s] Task %s started (%s): %s", owner_id, task_id, source.value, text)
        log_task_started(owner_id, task_id, source.value, text)
        started = time.perf_counter()
        self._deps.scratchpad.open(task_id, text)
        try:
            final = await self._graph.ainvoke(state, config={"recursion_limit": self._limits.max_iterations * 4 + 8})
        finally:
            self._deps.scratchpad.discard(task_id)
            self._publish(owner_id, AgentRole.idle)

        run = PlanRun(
            answer=str(final["answer"]),
            plan_id=plan_id,
            iterations=final["iteration"],
            plan=final["plan"],
            abort=final["abort"],
        )
        outcome = run.abort.value if run.abort else "done"
        log_task_completed(owner_id, task_id, outcome, (time.perf_counter() - started) * 1000)
        return run

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    async def _node_plan(self, state: _PlanState) -> _PlanState:
        """Ask for a plan update or the final answer; validate the plan."""
        owner_id = state["owner_id"]
        state["transcript"] = trim_transcript(state["transcript"], self._limits.max_recent_messages)
        self._publish(owner_id, AgentRole.planner, f"Planning (iteration {state['iteration'] + 1})")

        try:
            plan, text = await self._request_plan(state, depth=0)
        except ReasoningError as e:
            logger.error("[%s] Planning error in %s: %s", owner_id, state["task_id"], e)
            return self._abort(state, AbortReason.planning_error, f"Planning error: {e}")

        if plan is None:
            await self._deps.history.add_message(owner_id, MessageRole.human, state["request"])
            await self._deps.history.add_message(owner_id, MessageRole.ai, text)
            logger.info("[%s] Task %s answered after %d iteration(s)", owner_id, state["task_id"], state["iteration"])
            state["answer"] = text
            state["done"] = True
            return state

        plan = state["guard"].apply(plan)
        state["plan"] = plan
        await self._deps.plans.sync_steps(state["plan_id"], plan.steps)
        logger.debug(
            "[%s] Plan for %s: %s",
            owner_id,
            state["task_id"],
            [(s.id, s.status.value, s.tools) for s in plan.steps],
        )

        completed = plan.completed_count()
        if completed > state["last_completed"]:
            state["last_completed"] = completed
            state["stuck_turns"] = 0
        else:
            state["stuck_turns"] += 1
            if state["stuck_turns"] >= self._limits.deadlock_threshold:
                logger.warning(
                    "[%s] Deadlock in %s: %d completed step(s) for %d iterations",
                    owner_id,
                    state["task_id"],
                    completed,
                    state["stuck_turns"],
                )
                return self._abort(state, AbortReason.deadlock, DEADLOCK_MESSAGE)
        return state

    async def _node_select(self, state: _PlanState) -> _PlanState:
        """Pick the next runnable step or force the final answer."""
        plan = state["plan"]
        assert plan is not None
        step = plan.next_step()
        if step is not None:
            state["current_step"] = step.id
            return state

        state["current_step"] = None
        state["consolidation_turns"] += 1
        if state["consolidation_turns"] >= self._limits.consolidation_limit:
            logger.warning("[%s] Planner never concluded %s", state["owner_id"], state["task_id"])
            return self._abort(state, AbortReason.consolidation_exhausted, CONSOLIDATION_MESSAGE)

        logger.info(
            "[%s] All steps completed in %s, forcing final answer (consolidation %d/%d)",
            state["owner_id"],
            state["task_id"],
            state["consolidation_turns"],
            self._limits.consolidation_limit,
        )
        self._send(state, FORCE_FINAL_ANSWER)
        state["iteration"] += 1
        return state

    async def _node_execute(self, state: _PlanState) -> _PlanState:
        """Run the selected step and fold its result into the transcript."""
        owner_id, task_id = state["owner_id"], state["task_id"]
        plan = state["plan"]
        assert plan is not None and state["current_step"] is not None
        step = plan.get(state["current_step"])
        assert step is not None

        logger.info("[%s][Step %d] Executing: %s (tools: %s)", task_id, step.id, step.description, step.tools)
        state["consolidation_turns"] = 0
        self._publish(owner_id, AgentRole.planner, f"Step {step.id}: {step.description}")

        try:
            outcome = await self._executor.execute(
                owner_id=owner_id,
                task_id=task_id,
                description=f"TASK: {step.description}",
                step_id=step.id,
                tools=step.tools,
            )
        except asyncio.CancelledError:
            step.status = StepStatus.cancelled
            step.result = CANCELLED_RESULT
            logger.info("[%s][Step %d] Cancelled", task_id, step.id)
            await self._deps.plans.sync_steps(state["plan_id"], plan.steps)
            raise

        step.status = outcome.status
        step.result = outcome.result
        state["guard"].record(step)
        self._deps.scratchpad.write(task_id, f"Step {step.id} Result ({step.status.value})", step.result)
        await self._deps.plans.sync_steps(state["plan_id"], plan.steps)
        logger.info("[%s][Step %d] %s", task_id, step.id, step.status.value)

        brief = summarize_result(step.result, self._limits.summary_limit)
        self._send(
            state,
            f"Step {step.id} result: {step.status.value}\nOutput: {brief}\n\n"
            "Full details are in the scratchpad. Please update the plan or provide the final answer.",
        )
        state["current_step"] = None
        state["iteration"] += 1
        return state

    async def _node_finish(self, state: _PlanState) -> _PlanState:
        """Finish node: fill in the budget diagnostic when no outcome was reached."""
        if not state["done"]:
            logger.warning(
                "[%s] Task %s exhausted %d iterations", state["owner_id"], state["task_id"], self._limits.max_iterations
            )
            state["abort"] = AbortReason.budget_exhausted
            state["answer"] = BUDGET_MESSAGE
            state["done"] = True
        return state

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def _route_after_plan(self, state: _PlanState) -> str:
        return "finish" if state["done"] else "select"

    def _route_after_select(self, state: _PlanState) -> str:
        if state["done"]:
            return "finish"
        if state["current_step"] is not None:
            return "execute"
        return self._route_next_iteration(state)

    def _route_next_iteration(self, state: _PlanState) -> str:
        return "plan" if state["iteration"] < self._limits.max_iterations else "finish"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _request_plan(self, state: _PlanState, *, depth: int) -> Tuple[Optional[Plan], str]:
        """
        One planning exchange, re-polling after inline scratchpad reads.

        Returns:
            ``(plan, "")`` for a plan proposal or ``(None, text)`` for a final answer.

        Raises:
            ScratchpadRecursionError: Re-polled more than ``max_scratchpad_depth`` times.
            MalformedPlanError: The proposal does not parse, or the response was empty.
            ReasoningTimeoutError, ReasoningServiceError: From the reasoning client.
        """
        if depth > self._limits.max_scratchpad_depth:
            raise ScratchpadRecursionError(
                f"planning exceeded maximum tool recursion depth ({self._limits.max_scratchpad_depth})"
            )

        owner_id, task_id = state["owner_id"], state["task_id"]
        response = await self._deps.reasoning.respond(
            owner_id=owner_id,
            transcript=state["transcript"],
            manifest=self._manifest,
            purpose="planner",
        )
        state["transcript"].append(response)
        calls = tool_calls(response)

        returns: List[ToolReturnPart] = []
        for call in calls:
            if call.tool_name == READ_SCRATCHPAD:
                returns.append(self._tool_return(call.tool_name, call.tool_call_id, self._deps.scratchpad.read(task_id)))

        plan: Optional[Plan] = None
        for call in calls:
            if call.tool_name == READ_SCRATCHPAD:
                continue
            if call.tool_name == PROPOSE_PLAN and plan is None:
                try:
                    plan = parse_plan_proposal(call.args)
                except MalformedPlanError:
                    logger.error("[%s] Malformed plan proposal: %s", owner_id, call.args_as_json_str())
                    raise
                returns.append(self._tool_return(call.tool_name, call.tool_call_id, PLAN_RECEIVED))
            elif call.tool_name == PROPOSE_PLAN:
                returns.append(self._tool_return(call.tool_name, call.tool_call_id, "Ignored: only one plan per turn."))
            else:
                returns.append(
                    self._tool_return(
                        call.tool_name, call.tool_call_id, f"Error: Tool {call.tool_name} is not available to the planner"
                    )
                )

        if plan is not None:
            state["pending_returns"] = returns
            return plan, ""

        if returns:
            logger.debug("[%s] Planner used tools without proposing a plan; re-polling (depth %d)", owner_id, depth + 1)
            state["transcript"].append(ModelRequest(parts=list(returns)))
            return await self._request_plan(state, depth=depth + 1)

        text = response_text(response)
        if text:
            return None, text
        raise MalformedPlanError("planner returned neither a plan nor a final answer")

    def _send(self, state: _PlanState, text: str) -> None:
        """Append a user-side message, carrying any tool returns still owed."""
        parts = [*state["pending_returns"], UserPromptPart(content=text)]
        state["pending_returns"] = []
        state["transcript"].append(ModelRequest(parts=parts))

    def _abort(self, state: _PlanState, reason: AbortReason, message: str) -> _PlanState:
        state["abort"] = reason
        state["answer"] = message
        state["done"] = True
        return state

    @staticmethod
    def _tool_return(name: str, call_id: str, content: str) -> ToolReturnPart:
        return ToolReturnPart(tool_name=name, content=content, tool_call_id=call_id)

    def _system_prompt(self, owner_id: str) -> str:
        prompt = render_prompt(self._deps.prompts.get(PLANNER_PROMPT), {"OWNER_ID": owner_id})
        lines = [f"- {name}: {self._deps.capabilities.get(name).description}" for name in self._deps.capabilities.names()]
        lines.append(f"- {READ_SCRATCHPAD}: Read the current task scratchpad to see details from previous steps.")
        return prompt + "\n\n## Available Tools (Worker Capabilities):\n" + "\n".join(lines)

    def _publish(self, owner_id: str, role: AgentRole, detail: str = "") -> None:
        if self._deps.status is not None:
            self._deps.status.update(owner_id, role, detail)
