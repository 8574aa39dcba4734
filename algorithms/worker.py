"""
Shard worker: repeats the object reader for one shard of the workload.
"""

import logging

from algorithms.reader import ObjectReader
from common.errors import ReadError, WorkerError
from common.reporter import LatencyReporter, ReadSample
from configuration import BenchmarkConfig

logger = logging.getLogger(__name__)


class ShardWorker:
    """Sequential read loop for one shard."""

    def __init__(self, storage_system, config: BenchmarkConfig, reporter: LatencyReporter):
        self.config = config
        self.reporter = reporter
        self.reader = ObjectReader(storage_system, chunk_size=config.read_chunk_size)

    async def run(self, shard_index: int) -> None:
        """Read this shard's object reads_per_worker times.

        Every successful read is reported immediately. The first failure
        stops the loop and is raised as WorkerError; the storage system has
        already retried transient errors by then.
        """
        object_name = self.config.object_name(shard_index)
        logger.debug(f"Worker {shard_index} reading {object_name} {self.config.reads_per_worker} times")

        for i in range(self.config.reads_per_worker):
            try:
                duration_ns = await self.reader.read_fully(object_name)
            except ReadError as e:
                logger.debug(f"Worker {shard_index} stopped at read {i + 1}: {e}")
                raise WorkerError(shard_index, e) from e

            self.reporter.report_sample(ReadSample(shard_index, duration_ns))
