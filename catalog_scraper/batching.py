"""Run per-course follow-up fetches in fixed-size concurrent groups."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from .config import BatchingConfig, DelayConfig
from .log import log

T = TypeVar("T")

Task = Callable[[], Awaitable[T]]
Sleep = Callable[[float], Awaitable[None]]


class BatchScheduler:
    """Execute tasks either in concurrent batches or one at a time.

    Results come back in submission order. A task that raises yields ``None``
    for its slot only; the remaining tasks still run.
    """

    def __init__(
        self,
        enabled: bool = False,
        batch_size: int = 1,
        delay_between_batches: float = 0.0,
        delay_between_items: float = 0.0,
        sleep: Sleep = asyncio.sleep,
        source: Optional[str] = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.enabled = enabled
        self.batch_size = batch_size
        self.delay_between_batches = delay_between_batches
        self.delay_between_items = delay_between_items
        self.sleep = sleep
        self.source = source

    @classmethod
    def from_config(
        cls,
        batching: BatchingConfig,
        delays: DelayConfig,
        sleep: Sleep = asyncio.sleep,
        source: Optional[str] = None,
    ) -> "BatchScheduler":
        return cls(
            enabled=batching.enabled,
            batch_size=batching.batch_size,
            delay_between_batches=delays.between_batches,
            delay_between_items=delays.between_subjects,
            sleep=sleep,
            source=source,
        )

    async def _run_one(self, task: Task) -> Optional[T]:
        try:
            return await task()
        except Exception as exc:
            log("warn", f"Task failed: {exc!r}", self.source)
            return None

    async def run(self, tasks: Sequence[Task]) -> List[Optional[T]]:
        if self.enabled:
            return await self._run_batched(tasks)
        return await self._run_sequential(tasks)

    async def _run_batched(self, tasks: Sequence[Task]) -> List[Optional[T]]:
        results: List[Optional[T]] = []
        for start in range(0, len(tasks), self.batch_size):
            batch = tasks[start : start + self.batch_size]
            results.extend(await asyncio.gather(*(self._run_one(t) for t in batch)))
            if start + self.batch_size < len(tasks):
                await self.sleep(self.delay_between_batches)
        return results

    async def _run_sequential(self, tasks: Sequence[Task]) -> List[Optional[T]]:
        results: List[Optional[T]] = []
        for task in tasks:
            results.append(await self._run_one(task))
            await self.sleep(self.delay_between_items)
        return results
