"""Deadline guard tests."""

import asyncio

import pytest

from utils.error_handling import UpstreamTimeoutError
from utils.timeout import guard


@pytest.mark.asyncio
async def test_guard_returns_result_within_budget():
    async def fast():
        return ["ok"]

    assert await guard(fast(), 1.0, "fast call") == ["ok"]


@pytest.mark.asyncio
async def test_guard_raises_tagged_timeout():
    async def slow():
        await asyncio.sleep(1)

    with pytest.raises(UpstreamTimeoutError) as exc_info:
        await guard(slow(), 0.01, "people search")

    assert exc_info.value.label == "people search"
    assert exc_info.value.status_code == 504
    assert "people search timed out after 10ms" in str(exc_info.value)


@pytest.mark.asyncio
async def test_guard_does_not_cancel_underlying_operation():
    finished = asyncio.Event()

    async def slow():
        await asyncio.sleep(0.05)
        finished.set()
        return "late"

    with pytest.raises(UpstreamTimeoutError):
        await guard(slow(), 0.01, "slow call")

    await asyncio.wait_for(finished.wait(), timeout=1)
    assert finished.is_set()


@pytest.mark.asyncio
async def test_guard_propagates_operation_errors():
    async def broken():
        raise RuntimeError("upstream exploded")

    with pytest.raises(RuntimeError, match="upstream exploded"):
        await guard(broken(), 1.0, "broken call")


@pytest.mark.asyncio
async def test_late_failure_is_swallowed():
    async def slow_then_fail():
        await asyncio.sleep(0.02)
        raise RuntimeError("too late to matter")

    with pytest.raises(UpstreamTimeoutError):
        await guard(slow_then_fail(), 0.005, "flaky call")

    # Let the detached task finish; nothing should propagate here.
    await asyncio.sleep(0.05)
