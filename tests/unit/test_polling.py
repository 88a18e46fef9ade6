"""Tests for BoundedPoller: fixed attempts, fixed delay, no hidden retry."""

from __future__ import annotations

import pytest

from omni_vault.services.errors import PollTimeoutError
from omni_vault.services.polling import BoundedPoller


class _Recorder:
    def __init__(self) -> None:
        self.sleeps: list[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)


@pytest.mark.asyncio
async def test_returns_first_truthy_result():
    recorder = _Recorder()
    results = iter([None, False, "ready"])

    async def _check():
        return next(results)

    poller = BoundedPoller(max_attempts=5, delay_seconds=0.5, sleep=recorder.sleep)
    assert await poller.poll(_check) == "ready"
    assert recorder.sleeps == [0.5, 0.5]


@pytest.mark.asyncio
async def test_exhausts_attempts():
    recorder = _Recorder()
    calls = 0

    async def _check():
        nonlocal calls
        calls += 1
        return None

    poller = BoundedPoller(max_attempts=3, delay_seconds=1.0, sleep=recorder.sleep)
    with pytest.raises(PollTimeoutError):
        await poller.poll(_check, description="health")
    assert calls == 3
    assert recorder.sleeps == [1.0, 1.0]


@pytest.mark.asyncio
async def test_retryable_errors_are_chained():
    recorder = _Recorder()

    async def _check():
        raise ConnectionError("refused")

    poller = BoundedPoller(max_attempts=2, delay_seconds=0, retry_on=(ConnectionError,), sleep=recorder.sleep)
    with pytest.raises(PollTimeoutError) as excinfo:
        await poller.poll(_check)
    assert isinstance(excinfo.value.__cause__, ConnectionError)


@pytest.mark.asyncio
async def test_other_errors_propagate_immediately():
    recorder = _Recorder()

    async def _check():
        raise KeyError("boom")

    poller = BoundedPoller(max_attempts=5, delay_seconds=0, retry_on=(ConnectionError,), sleep=recorder.sleep)
    with pytest.raises(KeyError):
        await poller.poll(_check)
    assert recorder.sleeps == []


@pytest.mark.parametrize("attempts,delay", [(0, 1.0), (3, -1.0)])
def test_invalid_parameters(attempts, delay):
    with pytest.raises(ValueError):
        BoundedPoller(max_attempts=attempts, delay_seconds=delay)
