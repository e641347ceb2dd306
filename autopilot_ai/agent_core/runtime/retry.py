from __future__ import annotations

"""Retry policy for capability invocations.

Each attempt runs under a per-call timeout. Only ``FailureKind.execution``
failures are retried; a timeout ends the loop at once, as do not-found and
invalid-argument failures, which a retry cannot fix. Between attempts the
caller sleeps for an exponentially growing delay (1s, 2s, 4s, ... by default).
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterator, Optional

from ..capabilities.base import CapabilityResult, FailureKind
from ..errors import CapabilityTimeoutError

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    initial_backoff: float = 1.0
    backoff_factor: float = 2.0
    call_timeout: float = 30.0

    def backoff_schedule(self) -> Iterator[float]:
        """Delays in order: ``initial_backoff * backoff_factor ** n``."""
        delay = self.initial_backoff
        while True:
            yield delay
            delay *= self.backoff_factor


async def invoke_with_retry(
    name: str,
    invoke: Callable[[], Awaitable[CapabilityResult]],
    *,
    policy: RetryPolicy = RetryPolicy(),
    sleep: Optional[Sleep] = None,
) -> CapabilityResult:
    """
    Run ``invoke`` until it succeeds, fails permanently or attempts run out.

    Args:
        name: Capability name, for messages and logs.
        invoke: Zero-argument coroutine factory performing one attempt.
        policy: Attempt count, backoff and per-call timeout.
        sleep: Sleep function; defaults to ``asyncio.sleep``.

    Returns:
        The last ``CapabilityResult`` with ``attempts`` set to the number of attempts made.
    """
    sleep = sleep or asyncio.sleep
    delays = policy.backoff_schedule()
    result: Optional[CapabilityResult] = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            result = await asyncio.wait_for(invoke(), timeout=policy.call_timeout)
        except asyncio.TimeoutError:
            err = CapabilityTimeoutError(name, policy.call_timeout)
            logger.warning("Tool %s timed out on attempt %d; not retrying", name, attempt)
            return CapabilityResult(text=f"Error: {err}", failure=FailureKind.timeout, error=err, attempts=attempt)

        if result.ok or result.failure is None or not result.failure.retryable:
            return _with_attempts(result, attempt)

        if attempt == policy.max_attempts:
            break
        delay = next(delays)
        logger.warning(
            "Tool %s failed (attempt %d/%d): %s. Retrying in %gs...",
            name,
            attempt,
            policy.max_attempts,
            result.error or result.text,
            delay,
        )
        await sleep(delay)

    assert result is not None
    logger.error("Tool %s failed after %d attempts: %s", name, policy.max_attempts, result.error or result.text)
    return _with_attempts(result, policy.max_attempts)


def _with_attempts(result: CapabilityResult, attempts: int) -> CapabilityResult:
    return CapabilityResult(text=result.text, failure=result.failure, error=result.error, attempts=attempts)
