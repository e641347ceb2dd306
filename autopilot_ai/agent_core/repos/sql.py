from __future__ import annotations

"""SQLAlchemy async repository implementations.

This module provides SQL-backed implementations of the repository interfaces
defined in ``autopilot_ai.agent_core.repos.interfaces``. They run against
Postgres (asyncpg) in production and SQLite (aiosqlite) in development and
tests.

Usage
-----

- Create an async engine with ``create_engine``.
- Create tables with ``create_all``.
- Create a session factory with ``create_sessionmaker``.
- Build repository instances with ``build_sql_repos``.

Transaction model
-----------------

Each repository method opens an ``AsyncSession``, performs its operation, and
commits, so every write is durable when the method returns and concurrent
tasks never share a session.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..schemas.domain import (
    CostEntry,
    HistoryMessage,
    MessageRole,
    PlanStep,
    ScheduledTask,
    StepStatus,
    as_utc,
)
from .interfaces import CostRepository, HistoryRepository, PlanRepository, TaskRepository
from .models import Base, CostRow, MessageRow, PlanRow, PlanStepRow, ScheduledTaskRow


def create_engine(db_url: str) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    Postgres URLs are normalized to the async driver, e.g. ``postgresql://``
    and other variants become ``postgresql+asyncpg://``. Other URLs (such as
    ``sqlite+aiosqlite://``) are used as given.
    """
    url = re.sub(r"^postgres(?:ql)?(?:\+[a-z0-9_]+)?://", "postgresql+asyncpg://", db_url, count=1)
    if url.startswith("postgresql+asyncpg://"):
        return create_async_engine(url, pool_pre_ping=True)
    return create_async_engine(url)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an ``async_sessionmaker`` with safe defaults for this project."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    """Create all tables for the current ORM metadata."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _opt_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite returns naive datetimes even for timezone-aware columns.
    return as_utc(value) if value is not None else None


def _task_from_row(row: ScheduledTaskRow) -> ScheduledTask:
    return ScheduledTask(
        id=row.id,
        owner_id=row.owner_id,
        description=row.description,
        interval_seconds=row.interval_seconds,
        last_run_at=_opt_utc(row.last_run_at),
        run_after=_opt_utc(row.run_after),
        status=row.status,
        created_at=as_utc(row.created_at),
    )


@dataclass(frozen=True)
class SqlHistoryRepository(HistoryRepository):
    """SQL implementation of ``HistoryRepository``."""

    session_factory: async_sessionmaker[AsyncSession]

    async def add_message(self, owner_id: str, role: MessageRole, content: str) -> None:
        async with self.session_factory() as s:
            s.add(MessageRow(owner_id=owner_id, role=MessageRole(role).value, content=content, created_at=_utc_now()))
            await s.commit()

    async def get_history(self, owner_id: str, *, limit: int) -> List[HistoryMessage]:
        """
        Return the owner's most recent messages, oldest first.

        Args:
            owner_id: The conversation owner.
            limit: Maximum number of messages to return.
        """
        async with self.session_factory() as s:
            stmt = (
                select(MessageRow)
                .where(MessageRow.owner_id == owner_id)
                .order_by(MessageRow.id.desc())
                .limit(limit)
            )
            rows = list((await s.execute(stmt)).scalars().all())
        rows.reverse()
        return [
            HistoryMessage(
                owner_id=r.owner_id,
                role=MessageRole(r.role),
                content=r.content,
                created_at=as_utc(r.created_at),
            )
            for r in rows
        ]


@dataclass(frozen=True)
class SqlTaskRepository(TaskRepository):
    """SQL implementation of ``TaskRepository``.

    Due-ness is decided by ``ScheduledTask.is_due`` after loading active
    tasks, which keeps the rule identical across database backends.
    """

    session_factory: async_sessionmaker[AsyncSession]

    async def add(self, task: ScheduledTask) -> ScheduledTask:
        async with self.session_factory() as s:
            row = ScheduledTaskRow(
                owner_id=task.owner_id,
                description=task.description,
                interval_seconds=task.interval_seconds,
                last_run_at=task.last_run_at,
                run_after=task.run_after,
                status=task.status,
                created_at=task.created_at,
            )
            s.add(row)
            await s.commit()
            return task.model_copy(update={"id": row.id})

    async def list(self, owner_id: str) -> List[ScheduledTask]:
        async with self.session_factory() as s:
            stmt = select(ScheduledTaskRow).where(ScheduledTaskRow.owner_id == owner_id).order_by(ScheduledTaskRow.id)
            rows = (await s.execute(stmt)).scalars().all()
        return [_task_from_row(r) for r in rows]

    async def delete(self, owner_id: str, task_id: int) -> bool:
        async with self.session_factory() as s:
            res = await s.execute(
                delete(ScheduledTaskRow).where(
                    ScheduledTaskRow.owner_id == owner_id,
                    ScheduledTaskRow.id == task_id,
                )
            )
            await s.commit()
        return bool(res.rowcount)

    async def clear(self, owner_id: str) -> int:
        async with self.session_factory() as s:
            res = await s.execute(delete(ScheduledTaskRow).where(ScheduledTaskRow.owner_id == owner_id))
            await s.commit()
        return int(res.rowcount or 0)

    async def due(self, now: datetime) -> List[ScheduledTask]:
        async with self.session_factory() as s:
            stmt = select(ScheduledTaskRow).where(ScheduledTaskRow.status == "active").order_by(ScheduledTaskRow.id)
            rows = (await s.execute(stmt)).scalars().all()
        return [t for t in (_task_from_row(r) for r in rows) if t.is_due(now)]

    async def mark_run(self, task_id: int, at: datetime) -> None:
        async with self.session_factory() as s:
            await s.execute(update(ScheduledTaskRow).where(ScheduledTaskRow.id == task_id).values(last_run_at=at))
            await s.commit()

    async def remove(self, task_id: int) -> None:
        async with self.session_factory() as s:
            await s.execute(delete(ScheduledTaskRow).where(ScheduledTaskRow.id == task_id))
            await s.commit()


@dataclass(frozen=True)
class SqlPlanRepository(PlanRepository):
    """SQL implementation of ``PlanRepository``."""

    session_factory: async_sessionmaker[AsyncSession]

    async def create(self, owner_id: str, request: str) -> int:
        async with self.session_factory() as s:
            row = PlanRow(owner_id=owner_id, request=request, created_at=_utc_now())
            s.add(row)
            await s.commit()
            return row.id

    async def sync_steps(self, plan_id: int, steps: Sequence[PlanStep]) -> None:
        """
        Overwrite the stored step list of a plan.

        Args:
            plan_id: Plan to update.
            steps: The full, ordered step list.
        """
        async with self.session_factory() as s:
            await s.execute(delete(PlanStepRow).where(PlanStepRow.plan_id == plan_id))
            for position, step in enumerate(steps):
                s.add(
                    PlanStepRow(
                        plan_id=plan_id,
                        position=position,
                        step_id=step.id,
                        description=step.description,
                        status=step.status.value,
                        result=step.result,
                        tools=list(step.tools),
                    )
                )
            await s.commit()

    async def get_steps(self, plan_id: int) -> List[PlanStep]:
        async with self.session_factory() as s:
            stmt = select(PlanStepRow).where(PlanStepRow.plan_id == plan_id).order_by(PlanStepRow.position)
            rows = (await s.execute(stmt)).scalars().all()
        return [
            PlanStep(
                id=r.step_id,
                description=r.description,
                status=StepStatus(r.status),
                result=r.result or "",
                tools=list(r.tools or []),
            )
            for r in rows
        ]


@dataclass(frozen=True)
class SqlCostRepository(CostRepository):
    """SQL implementation of ``CostRepository``."""

    session_factory: async_sessionmaker[AsyncSession]

    async def record(self, entry: CostEntry) -> None:
        async with self.session_factory() as s:
            s.add(
                CostRow(
                    owner_id=entry.owner_id,
                    model=entry.model,
                    input_tokens=entry.input_tokens,
                    output_tokens=entry.output_tokens,
                    created_at=entry.created_at,
                )
            )
            await s.commit()

    async def list(self, owner_id: Optional[str] = None) -> List[CostEntry]:
        async with self.session_factory() as s:
            stmt = select(CostRow).order_by(CostRow.id)
            if owner_id is not None:
                stmt = stmt.where(CostRow.owner_id == owner_id)
            rows = (await s.execute(stmt)).scalars().all()
        return [
            CostEntry(
                owner_id=r.owner_id,
                model=r.model,
                input_tokens=r.input_tokens,
                output_tokens=r.output_tokens,
                created_at=as_utc(r.created_at),
            )
            for r in rows
        ]

    async def total_tokens(self, owner_id: str) -> int:
        async with self.session_factory() as s:
            stmt = select(func.coalesce(func.sum(CostRow.input_tokens + CostRow.output_tokens), 0)).where(
                CostRow.owner_id == owner_id
            )
            return int((await s.execute(stmt)).scalar_one())


@dataclass(frozen=True)
class SqlRepoBundle:
    """Convenience bundle of all SQL repositories sharing one session factory."""

    history: SqlHistoryRepository
    tasks: SqlTaskRepository
    plans: SqlPlanRepository
    costs: SqlCostRepository


def build_sql_repos(*, session_factory: async_sessionmaker[AsyncSession]) -> SqlRepoBundle:
    """Build a ``SqlRepoBundle`` from a session factory."""
    return SqlRepoBundle(
        history=SqlHistoryRepository(session_factory=session_factory),
        tasks=SqlTaskRepository(session_factory=session_factory),
        plans=SqlPlanRepository(session_factory=session_factory),
        costs=SqlCostRepository(session_factory=session_factory),
    )
