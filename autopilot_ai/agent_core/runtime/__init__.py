"""Step execution runtime: the bounded per-step reasoning loop and its retry policy."""

from .executor import StepExecutor
from .models import EXHAUSTED_MESSAGE, MAX_WORKER_TURNS, ExecutorDeps, StepOutcome
from .retry import RetryPolicy, invoke_with_retry

__all__ = [
    "EXHAUSTED_MESSAGE",
    "ExecutorDeps",
    "MAX_WORKER_TURNS",
    "RetryPolicy",
    "StepExecutor",
    "StepOutcome",
    "invoke_with_retry",
]
