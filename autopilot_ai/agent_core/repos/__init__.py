"""Repository interfaces and SQL implementations for engine persistence.

Responsibilities
----------------

- Provide small async repository interfaces (Protocols) the engine depends on:
  message history, scheduled tasks, plans and cost entries.
- Provide an async SQLAlchemy implementation in ``repos.sql``.

The engine is written against the interfaces so it runs equally with a SQL
database or with in-memory fakes in unit tests.
"""

from .interfaces import CostRepository, HistoryRepository, PlanRepository, TaskRepository

__all__ = [
    "CostRepository",
    "HistoryRepository",
    "PlanRepository",
    "TaskRepository",
]
