"""Concurrent reads that fail together."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any


async def gather_all(*coros: Coroutine[Any, Any, Any]) -> list[Any]:
    """Run `coros` in a TaskGroup and return their results in order.

    The first failure cancels the reads still running and is re-raised
    unwrapped, so callers see the storage error rather than an
    ExceptionGroup.  The group, with any further failures, is its __context__.
    """
    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(coro) for coro in coros]
    except ExceptionGroup as eg:
        raise eg.exceptions[0]
    return [task.result() for task in tasks]
