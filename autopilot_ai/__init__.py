"""
Autopilot-AI: a plan-and-execute orchestration engine for autonomous agents.

The package turns a user goal into an ordered plan, executes every step
through a bounded reasoning loop that may only call the capabilities granted
to that step, and folds the results back into the planner until it produces a
final answer or a diagnosed failure.

Architecture
------------

- ``autopilot_ai.core``: ambient concerns (settings, logging, logfire
  monitoring).
- ``autopilot_ai.agent_core``: the engine.

  - ``capabilities``: capability descriptors and the name-keyed registry.
  - ``policy``: deny-list and argument-pattern gate evaluated before every
    capability call.
  - ``scratchpad``: per-task append-only notes shared between steps.
  - ``reasoning``: the reasoning-service contract (pydantic-ai messages) and
    the client applying timeouts and cost accounting.
  - ``runtime``: the per-step execution loop and its retry policy.
  - ``planning``: the plan state machine built on LangGraph.
  - ``scheduling``: the background scheduler for recurring tasks.
  - ``repos``: persistence protocols and their SQLAlchemy implementation.
  - ``service``: the single entry point shared by interactive messages and
    scheduled runs.
"""
