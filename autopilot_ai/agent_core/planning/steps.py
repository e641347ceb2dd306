from __future__ import annotations

"""Plan proposal schema and the guard applied to every proposal.

The planner model submits plans by calling the ``propose_plan`` tool whose
parameters are the JSON schema of ``ProposedPlan``. ``parse_plan_proposal``
turns the call's argument blob into a domain ``Plan``; ``PlanGuard`` then
reconciles the proposal with what the task already did:

- a step that completed stays completed with its recorded result;
- the first non-empty tool set seen for a pending step is locked, and later
  proposals cannot widen or change it while the step stays pending;
- a failed step releases its lock so a re-plan may assign different tools.
"""

import logging
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic_ai.tools import ToolDefinition

from ..errors import MalformedPlanError
from ..schemas.domain import Plan, PlanStep, StepStatus

logger = logging.getLogger(__name__)

PROPOSE_PLAN = "propose_plan"


class ProposedStep(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int = Field(description="Unique step number")
    description: str = Field(description="What this step does")
    status: Literal["pending", "completed", "failed"] = Field(default="pending")
    tools: List[str] = Field(default_factory=list, description="Tools needed for this step")


class ProposedPlan(BaseModel):
    model_config = ConfigDict(extra="ignore")

    steps: List[ProposedStep]

    @model_validator(mode="after")
    def _unique_ids(self) -> "ProposedPlan":
        ids = [s.id for s in self.steps]
        dupes = sorted({i for i in ids if ids.count(i) > 1})
        if dupes:
            raise ValueError(f"duplicate step ids: {dupes}")
        return self

    def to_plan(self) -> Plan:
        return Plan(
            steps=[
                PlanStep(id=s.id, description=s.description, status=StepStatus(s.status), tools=list(s.tools))
                for s in self.steps
            ]
        )


def propose_plan_tool() -> ToolDefinition:
    return ToolDefinition(
        name=PROPOSE_PLAN,
        description="Propose or update the execution plan for the user's request.",
        parameters_json_schema=ProposedPlan.model_json_schema(),
    )


def parse_plan_proposal(arguments: Union[str, Mapping[str, Any], None]) -> Plan:
    """
    Parse a ``propose_plan`` argument blob.

    Raises:
        MalformedPlanError: If the blob is not valid JSON or does not match the schema.
    """
    try:
        if isinstance(arguments, str):
            proposal = ProposedPlan.model_validate_json(arguments or "{}")
        else:
            proposal = ProposedPlan.model_validate(dict(arguments or {}))
    except ValidationError as e:
        first = e.errors()[0]
        loc = ".".join(str(p) for p in first.get("loc", ())) or "<root>"
        raise MalformedPlanError(f"failed to parse plan: {loc}: {first.get('msg')}") from e
    return proposal.to_plan()


class PlanGuard:
    """Reconcile successive plan proposals of one task."""

    def __init__(self) -> None:
        self._locks: Dict[int, Tuple[str, ...]] = {}
        self._results: Dict[int, str] = {}
        self._completed: set[int] = set()

    @property
    def tool_locks(self) -> Dict[int, Tuple[str, ...]]:
        return dict(self._locks)

    def locked_tools(self, step_id: int) -> Optional[Tuple[str, ...]]:
        return self._locks.get(step_id)

    def record(self, step: PlanStep) -> None:
        """Remember the outcome of an executed step."""
        self._results[step.id] = step.result
        if step.status == StepStatus.completed:
            self._completed.add(step.id)
        elif step.status == StepStatus.failed:
            self._release(step.id)

    def apply(self, plan: Plan) -> Plan:
        """Enforce completion, result and tool-lock invariants on ``plan`` in place."""
        for step in plan.steps:
            if not step.result and step.id in self._results:
                step.result = self._results[step.id]

            if step.id in self._completed:
                if step.status != StepStatus.completed:
                    logger.info("Step %d is already completed; keeping it completed", step.id)
                    step.status = StepStatus.completed
                continue

            if step.status == StepStatus.failed:
                self._release(step.id)
                continue

            if step.status != StepStatus.pending:
                continue

            locked = self._locks.get(step.id)
            if locked is None:
                if step.tools:
                    self._locks[step.id] = tuple(step.tools)
            elif tuple(step.tools) != locked:
                logger.warning(
                    "Planner tried to change tools of pending step %d from %s to %s; keeping the locked set",
                    step.id,
                    list(locked),
                    step.tools,
                )
                step.tools = list(locked)
        return plan

    def _release(self, step_id: int) -> None:
        if self._locks.pop(step_id, None) is not None:
            logger.debug("Released tool lock of step %d", step_id)
