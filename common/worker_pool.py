"""
Fixed-size async worker pool: one task per shard, results fanned in through a queue.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkerResult:
    """Outcome of one shard task. Produced once, consumed once."""

    shard_index: int
    error: Optional[BaseException] = None
    cancelled: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None and not self.cancelled


@dataclass(frozen=True)
class PoolOutcome:
    """What the pool observed once every task terminated."""

    launched: int
    terminated: int
    cancelled: int
    first_error: Optional[BaseException]

    @property
    def succeeded(self) -> bool:
        return self.first_error is None


class WorkerPool:
    """Launches every shard task at once and waits for all of them.

    The first failure taken off the result queue is the one reported; later
    failures are logged and dropped. By default siblings keep running after
    a failure. With cancel_on_failure the remaining tasks are cancelled, and
    still awaited, once the first failure arrives.
    """

    def __init__(self, worker_count: int, cancel_on_failure: bool = False):
        if worker_count <= 0:
            raise ValueError(f"worker_count must be positive, got {worker_count}")
        self.worker_count = worker_count
        self.cancel_on_failure = cancel_on_failure
        self.worker_tasks: List[asyncio.Task] = []

        logger.info(
            f"Initialized WorkerPool with {worker_count} workers "
            f"(cancel_on_failure={cancel_on_failure})"
        )

    @staticmethod
    def _collect(shard_index: int, results: asyncio.Queue, task: asyncio.Task) -> None:
        if task.cancelled():
            result = WorkerResult(shard_index, cancelled=True)
        else:
            result = WorkerResult(shard_index, error=task.exception())
        results.put_nowait(result)

    def _cancel_pending(self) -> None:
        pending = [task for task in self.worker_tasks if not task.done()]
        logger.info(f"Cancelling {len(pending)} running workers after first failure")
        for task in pending:
            task.cancel()

    async def run(self, job: Callable[[int], Awaitable[None]]) -> PoolOutcome:
        """Run job(shard_index) for every shard and wait for all of them."""
        results: asyncio.Queue = asyncio.Queue()
        self.worker_tasks = []

        for shard_index in range(self.worker_count):
            task = asyncio.create_task(job(shard_index))
            task.add_done_callback(functools.partial(self._collect, shard_index, results))
            self.worker_tasks.append(task)

        logger.info(f"Started {len(self.worker_tasks)} workers")

        first_error = None
        cancelled = 0
        for terminated in range(1, self.worker_count + 1):
            result = await results.get()

            if result.cancelled:
                cancelled += 1
            elif result.error is not None:
                if first_error is None:
                    first_error = result.error
                    logger.info(f"Worker {result.shard_index} failed first: {result.error}")
                    if self.cancel_on_failure:
                        self._cancel_pending()
                else:
                    logger.debug(f"Discarding later failure of worker {result.shard_index}: {result.error}")

            logger.debug(f"Worker {result.shard_index} terminated ({terminated}/{self.worker_count})")

        # Every done callback has fired; this only reaps the tasks.
        await asyncio.gather(*self.worker_tasks, return_exceptions=True)

        return PoolOutcome(
            launched=len(self.worker_tasks),
            terminated=self.worker_count,
            cancelled=cancelled,
            first_error=first_error,
        )
