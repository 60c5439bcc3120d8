from __future__ import annotations

import asyncio

import pytest

from instructor_analytics.services.tasks import gather_all


async def _value(value: int, delay: float) -> int:
    await asyncio.sleep(delay)
    return value


def test_results_come_back_in_argument_order() -> None:
    results = asyncio.run(gather_all(_value(1, 0.03), _value(2, 0.0), _value(3, 0.01)))
    assert results == [1, 2, 3]


def test_first_failure_is_raised_unwrapped_and_siblings_are_cancelled() -> None:
    cancelled: list[str] = []
    finished: list[str] = []

    async def _fail() -> None:
        await asyncio.sleep(0.01)
        raise ConnectionError("connection reset by peer")

    async def _slow(name: str) -> None:
        try:
            await asyncio.sleep(0.2)
        except asyncio.CancelledError:
            cancelled.append(name)
            raise
        finished.append(name)

    async def _scenario() -> None:
        with pytest.raises(ConnectionError):
            await gather_all(_slow("a"), _fail(), _slow("b"))
        await asyncio.sleep(0.3)

    asyncio.run(_scenario())

    assert sorted(cancelled) == ["a", "b"]
    assert finished == []
