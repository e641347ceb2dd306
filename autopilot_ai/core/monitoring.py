"""
Monitoring and Tracing Configuration Module.

This module provides integration with Pydantic Logfire for monitoring the
orchestration engine:
- Task start/completion events with trigger source and outcome
- Reasoning-service token usage per turn
- Capability invocations and policy denials
- Automatic instrumentation of pydantic-ai, SQLAlchemy and HTTPX

Every ``log_*`` helper is a no-op until ``initialize_logfire`` has configured
Logfire, so the engine can call them unconditionally.
"""

import logging
from typing import Optional

import logfire

from autopilot_ai.core.config import LogfireConfig, settings

logger = logging.getLogger(__name__)

_enabled = False


def initialize_logfire(config: Optional[LogfireConfig] = None) -> bool:
    """
    Initialize Pydantic Logfire for monitoring and tracing.

    Args:
        config: Logfire configuration; defaults to the application settings.

    Returns:
        Whether Logfire monitoring is active after the call.
    """
    global _enabled
    cfg = config or settings.logfire
    if not cfg.enabled:
        logger.info("Logfire monitoring is disabled. Set LOGFIRE_ENABLED=true to enable.")
        return False

    if not cfg.token:
        logger.warning(
            "Logfire is enabled but LOGFIRE_TOKEN is not set. "
            "Monitoring will not work. Set LOGFIRE_TOKEN to enable Logfire."
        )
        return False

    logfire.configure(
        token=cfg.token,
        service_name=cfg.service_name,
        environment=cfg.environment,
    )
    for name, instrument in (
        ("Pydantic AI", logfire.instrument_pydantic_ai),
        ("SQLAlchemy", logfire.instrument_sqlalchemy),
        ("HTTPX", logfire.instrument_httpx),
    ):
        try:
            instrument()
            logger.info("Logfire: %s instrumentation enabled", name)
        except Exception as e:
            logger.warning("Failed to instrument %s: %s", name, e)
    _enabled = True
    logger.info(
        "Logfire monitoring initialized: service=%s, environment=%s",
        cfg.service_name,
        cfg.environment,
    )
    return True


def is_enabled() -> bool:
    return _enabled


def log_task_started(owner_id: str, task_id: str, source: str, request: str) -> None:
    """
    Log the start of a top-level task.

    Args:
        owner_id: The conversation owner the task runs for
        task_id: The plan/task identifier
        source: What triggered the task (interactive, scheduler)
        request: The user goal or scheduled instruction
    """
    if not _enabled:
        return
    logfire.info("Task started", owner_id=owner_id, task_id=task_id, source=source, request=request)


def log_task_completed(owner_id: str, task_id: str, outcome: str, duration_ms: float) -> None:
    """
    Log the end of a top-level task.

    Args:
        owner_id: The conversation owner the task ran for
        task_id: The plan/task identifier
        outcome: ``done`` or the abort reason
        duration_ms: Wall-clock duration of the task in milliseconds
    """
    if not _enabled:
        return
    logfire.info("Task completed", owner_id=owner_id, task_id=task_id, outcome=outcome, duration_ms=duration_ms)


def log_reasoning_usage(owner_id: str, model: str, input_tokens: int, output_tokens: int) -> None:
    if not _enabled:
        return
    logfire.info(
        "Reasoning usage",
        owner_id=owner_id,
        model=model,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
    )


def log_capability_call(name: str, ok: bool, attempts: int, failure: Optional[str] = None) -> None:
    if not _enabled:
        return
    logfire.info("Capability invoked", capability=name, ok=ok, attempts=attempts, failure=failure)


def log_policy_denial(name: str, owner_id: str, reason: str) -> None:
    if not _enabled:
        return
    logfire.warn("Capability denied by policy", capability=name, owner_id=owner_id, reason=reason)
