"""Tests for bounded task fan-out."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List

from leanintel.concurrency import TaskOutcome, parallel_limit


def test_results_keep_input_order_and_limit_is_respected() -> None:
    in_flight = 0
    peak = 0

    def task(value: int, delay: float) -> Callable[[], Awaitable[int]]:
        async def run() -> int:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(delay)
            in_flight -= 1
            return value

        return run

    tasks = [task(i, delay) for i, delay in enumerate([0.03, 0.01, 0.02, 0.0, 0.01])]
    outcomes = asyncio.run(parallel_limit(tasks, limit=2))

    assert [outcome.value for outcome in outcomes] == [0, 1, 2, 3, 4]
    assert [outcome.index for outcome in outcomes] == [0, 1, 2, 3, 4]
    assert peak == 2


def test_failures_do_not_cancel_siblings() -> None:
    async def ok() -> str:
        return "ok"

    async def boom() -> str:
        raise RuntimeError("boom")

    outcomes = asyncio.run(parallel_limit([ok, boom, ok], limit=3))

    assert [outcome.status for outcome in outcomes] == ["fulfilled", "rejected", "fulfilled"]
    assert isinstance(outcomes[1].error, RuntimeError)
    assert outcomes[1].ok is False


def test_tasks_start_in_submission_order() -> None:
    started: List[int] = []

    def task(value: int) -> Callable[[], Awaitable[int]]:
        async def run() -> int:
            started.append(value)
            await asyncio.sleep(0)
            return value

        return run

    asyncio.run(parallel_limit([task(i) for i in range(6)], limit=1))

    assert started == [0, 1, 2, 3, 4, 5]


def test_progress_reports_each_completion() -> None:
    seen: List[tuple[int, int, str]] = []

    async def ok() -> int:
        return 1

    def record(done: int, total: int, outcome: TaskOutcome[int]) -> None:
        seen.append((done, total, outcome.status))

    asyncio.run(parallel_limit([ok, ok, ok], limit=2, on_progress=record))

    assert [item[0] for item in seen] == [1, 2, 3]
    assert {item[1] for item in seen} == {3}


def test_empty_and_zero_limit() -> None:
    assert asyncio.run(parallel_limit([], limit=3)) == []

    async def ok() -> int:
        return 7

    outcomes = asyncio.run(parallel_limit([ok, ok], limit=0))
    assert [outcome.value for outcome in outcomes] == [7, 7]
