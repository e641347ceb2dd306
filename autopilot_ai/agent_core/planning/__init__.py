"""Planning subsystem: plan proposals, the tool-lock guard and the planner state machine."""

from .models import PlannerDeps, PlannerLimits, PlanRun
from .planner import Planner
from .steps import PROPOSE_PLAN, PlanGuard, ProposedPlan, ProposedStep, parse_plan_proposal

__all__ = [
    "PROPOSE_PLAN",
    "PlanGuard",
    "PlanRun",
    "Planner",
    "PlannerDeps",
    "PlannerLimits",
    "ProposedPlan",
    "ProposedStep",
    "parse_plan_proposal",
]
