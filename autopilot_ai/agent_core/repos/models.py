"""SQLAlchemy ORM models for engine persistence.

These ORM models define the SQL schema used by the SQL repository
implementation in ``autopilot_ai.agent_core.repos.sql``.

- Messages hold per-owner conversation history.
- Scheduled tasks drive the background scheduler.
- Plans and plan steps record what each task decided and did; the step list
  of a plan is overwritten on every sync.
- Cost entries account for reasoning-service usage.

Table names are prefixed with ``ap_`` to avoid collisions in shared databases.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class MessageRow(Base):
    """Row model for ``ap_messages``."""

    __tablename__ = "ap_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(128), index=True)
    role: Mapped[str] = mapped_column(String(16))
    content: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class ScheduledTaskRow(Base):
    """Row model for ``ap_scheduled_tasks``.

    ``interval_seconds == 0`` marks a one-shot task; ``run_after`` delays
    its first run.
    """

    __tablename__ = "ap_scheduled_tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(128), index=True)
    description: Mapped[str] = mapped_column(Text)
    interval_seconds: Mapped[int] = mapped_column(Integer, default=0)
    last_run_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    run_after: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(32), default="active")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class PlanRow(Base):
    """Row model for ``ap_plans``: one row per top-level task."""

    __tablename__ = "ap_plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(128), index=True)
    request: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class PlanStepRow(Base):
    """Row model for ``ap_plan_steps``.

    ``step_id`` is the id the planner assigned; ``position`` keeps plan order.
    """

    __tablename__ = "ap_plan_steps"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    plan_id: Mapped[int] = mapped_column(ForeignKey("ap_plans.id", ondelete="CASCADE"), index=True)
    position: Mapped[int] = mapped_column(Integer)
    step_id: Mapped[int] = mapped_column(Integer)
    description: Mapped[str] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(16))
    result: Mapped[str] = mapped_column(Text, default="")
    tools: Mapped[List[str]] = mapped_column(JSON, default=list)


class CostRow(Base):
    """Row model for ``ap_costs``."""

    __tablename__ = "ap_costs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(128), index=True)
    model: Mapped[str] = mapped_column(String(128))
    input_tokens: Mapped[int] = mapped_column(Integer, default=0)
    output_tokens: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
