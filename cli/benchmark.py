"""
Read benchmark coordinator: client setup, bucket provisioning, fan-out/fan-in of shard workers.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from algorithms.worker import ShardWorker
from common.errors import ClientInitError, ProvisionError
from common.reporter import LatencyReporter
from common.retry import RetryPolicy
from common.worker_pool import WorkerPool
from configuration import BenchmarkConfig
from systems.transport import build_storage_client

logger = logging.getLogger(__name__)


class BenchmarkState(Enum):
    IDLE = "idle"
    CLIENT_READY = "client_ready"
    CONTAINER_READY = "container_ready"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class BenchmarkOutcome:
    """Terminal state of a run and the error surfaced, if any."""

    state: BenchmarkState
    error: Optional[BaseException] = None
    workers_launched: int = 0
    workers_terminated: int = 0

    @property
    def succeeded(self) -> bool:
        return self.state is BenchmarkState.SUCCEEDED


class BenchmarkRunner:
    """Runs the read benchmark once.

    IDLE -> CLIENT_READY -> CONTAINER_READY -> RUNNING -> SUCCEEDED | FAILED.
    Client or bucket failures go straight to FAILED before any worker starts.
    """

    def __init__(
        self,
        config: BenchmarkConfig,
        reporter: LatencyReporter = None,
        session=None,
        client_builder=build_storage_client,
    ):
        config.validate()
        self.config = config
        self.reporter = reporter or LatencyReporter()
        self.session = session
        self.client_builder = client_builder
        self.storage_system = None
        self.state = BenchmarkState.IDLE

        logger.info(
            f"Initialized benchmark runner: {config.storage_type.upper()} "
            f"({config.protocol.value}) with {config.worker_count} workers x "
            f"{config.reads_per_worker} reads"
        )

    def _transition(self, state: BenchmarkState) -> None:
        logger.info(f"Benchmark state: {self.state.value} -> {state.value}")
        self.state = state

    def _fail(self, error: BaseException, launched: int = 0, terminated: int = 0) -> BenchmarkOutcome:
        self._transition(BenchmarkState.FAILED)
        logger.debug(f"Benchmark failed: {error!r}")
        self.reporter.report_failure(error)
        return BenchmarkOutcome(BenchmarkState.FAILED, error, launched, terminated)

    async def run_benchmark(self) -> BenchmarkOutcome:
        """Execute the benchmark and report the outcome."""
        if self.state is not BenchmarkState.IDLE:
            raise RuntimeError(f"Benchmark already ran (state={self.state.value})")

        try:
            self.storage_system = await self.client_builder(self.config, session=self.session)
        except ClientInitError as e:
            return self._fail(e)

        self.storage_system.set_retry(RetryPolicy.from_config(self.config))
        self._transition(BenchmarkState.CLIENT_READY)

        try:
            try:
                await self.storage_system.ensure_container(self.config.bucket_name)
            except Exception as e:
                return self._fail(ProvisionError(self.config.bucket_name, e))
            self._transition(BenchmarkState.CONTAINER_READY)

            worker = ShardWorker(self.storage_system, self.config, self.reporter)
            pool = WorkerPool(self.config.worker_count, cancel_on_failure=self.config.cancel_on_failure)

            self._transition(BenchmarkState.RUNNING)
            pool_outcome = await pool.run(worker.run)

            conn_count = self.storage_system.get_connection_count()
            if conn_count >= 0:
                logger.info(f"Established connections at end of run: {conn_count}")
        finally:
            await self.storage_system.close()

        if pool_outcome.first_error is not None:
            return self._fail(pool_outcome.first_error, pool_outcome.launched, pool_outcome.terminated)

        self._transition(BenchmarkState.SUCCEEDED)
        self.reporter.report_success()
        return BenchmarkOutcome(
            BenchmarkState.SUCCEEDED,
            workers_launched=pool_outcome.launched,
            workers_terminated=pool_outcome.terminated,
        )
