"""Bounded fan-out for independent asynchronous tasks."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, List, Literal, Optional, Sequence, TypeVar

T = TypeVar("T")

TaskFactory = Callable[[], Awaitable[T]]
ProgressCallback = Callable[[int, int, "TaskOutcome[T]"], None]


@dataclass
class TaskOutcome(Generic[T]):
    status: Literal["fulfilled", "rejected"]
    index: int
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.status == "fulfilled"


async def parallel_limit(
    tasks: Sequence[TaskFactory[T]],
    limit: int = 3,
    on_progress: Optional[ProgressCallback] = None,
) -> List[TaskOutcome[T]]:
    """Run ``tasks`` with at most ``limit`` in flight.

    Tasks start in submission order once a slot frees. Outcomes are returned
    in input order; a failing task is recorded as ``rejected`` and never
    cancels its siblings.
    """
    total = len(tasks)
    if total == 0:
        return []

    semaphore = asyncio.Semaphore(max(1, min(limit, total)))
    outcomes: List[Optional[TaskOutcome[T]]] = [None] * total
    completed = 0

    async def _run(index: int, factory: TaskFactory[T]) -> None:
        nonlocal completed
        async with semaphore:
            try:
                value = await factory()
            except Exception as exc:
                outcome: TaskOutcome[T] = TaskOutcome("rejected", index, error=exc)
            else:
                outcome = TaskOutcome("fulfilled", index, value=value)
        outcomes[index] = outcome
        completed += 1
        if on_progress is not None:
            on_progress(completed, total, outcome)

    await asyncio.gather(*(_run(index, factory) for index, factory in enumerate(tasks)))
    return [outcome for outcome in outcomes if outcome is not None]


__all__ = ["TaskOutcome", "parallel_limit"]
