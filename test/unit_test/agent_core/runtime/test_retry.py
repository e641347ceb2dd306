from __future__ import annotations

import asyncio
from itertools import islice
from typing import List

import pytest

from autopilot_ai.agent_core.capabilities import CapabilityResult, FailureKind
from autopilot_ai.agent_core.runtime import RetryPolicy, invoke_with_retry


class _Attempts:
    """Attempt factory returning scripted results."""

    def __init__(self, *results: CapabilityResult) -> None:
        self._results = list(results)
        self.count = 0

    async def __call__(self) -> CapabilityResult:
        self.count += 1
        return self._results.pop(0)


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps: List[float]):
    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    return _sleep


def _fail(text: str = "Error: boom", kind: FailureKind = FailureKind.execution) -> CapabilityResult:
    return CapabilityResult.failed(kind, text, error=RuntimeError(text))


def test_backoff_schedule_is_exponential() -> None:
    assert list(islice(RetryPolicy().backoff_schedule(), 4)) == [1.0, 2.0, 4.0, 8.0]


@pytest.mark.asyncio
async def test_first_success_does_not_sleep(fake_sleep, sleeps) -> None:
    attempts = _Attempts(CapabilityResult(text="ok"))
    result = await invoke_with_retry("echo", attempts, sleep=fake_sleep)
    assert result.ok
    assert result.attempts == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_transient_failure_then_success(fake_sleep, sleeps) -> None:
    attempts = _Attempts(_fail(), _fail(), CapabilityResult(text="ok"))
    result = await invoke_with_retry("flaky", attempts, sleep=fake_sleep)
    assert result.text == "ok"
    assert result.attempts == 3
    assert sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_persistent_failure_returns_last_error_after_three_attempts(fake_sleep, sleeps) -> None:
    attempts = _Attempts(_fail("Error: one"), _fail("Error: two"), _fail("Error: three"))
    result = await invoke_with_retry("flaky", attempts, sleep=fake_sleep)
    assert not result.ok
    assert result.text == "Error: three"
    assert result.attempts == 3
    assert attempts.count == 3
    assert sleeps == [1.0, 2.0]


@pytest.mark.asyncio
@pytest.mark.parametrize("kind", [FailureKind.not_found, FailureKind.invalid_arguments, FailureKind.not_permitted])
async def test_permanent_failures_are_not_retried(kind: FailureKind, fake_sleep, sleeps) -> None:
    attempts = _Attempts(_fail(kind=kind))
    result = await invoke_with_retry("x", attempts, sleep=fake_sleep)
    assert result.failure == kind
    assert attempts.count == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_timeout_is_reported_without_retry(fake_sleep, sleeps) -> None:
    calls = 0

    async def _slow() -> CapabilityResult:
        nonlocal calls
        calls += 1
        await asyncio.sleep(10)
        return CapabilityResult(text="late")

    result = await invoke_with_retry("slow", _slow, policy=RetryPolicy(call_timeout=0.01), sleep=fake_sleep)
    assert result.failure == FailureKind.timeout
    assert result.text == "Error: Tool slow timed out after 0.01 seconds"
    assert calls == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_custom_policy_controls_attempts_and_delays(fake_sleep, sleeps) -> None:
    policy = RetryPolicy(max_attempts=4, initial_backoff=0.5, backoff_factor=3.0)
    attempts = _Attempts(_fail(), _fail(), _fail(), _fail())
    result = await invoke_with_retry("flaky", attempts, policy=policy, sleep=fake_sleep)
    assert result.attempts == 4
    assert sleeps == [0.5, 1.5, 4.5]
