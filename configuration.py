"""
Configuration for the object read benchmark.

This module contains:
- Cloud credentials and endpoints
- Transport defaults (connection limits per protocol mode)
- Workload defaults (worker count, reads per worker, object naming)
- Retry policy defaults
- The immutable BenchmarkConfig built once per run
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

# =============================================================================
# CLOUD STORAGE CONFIGURATION
# =============================================================================

# AWS S3 credentials and configuration
S3_ENDPOINT: str = os.getenv("S3_ENDPOINT", "")
AWS_ACCESS_KEY_ID: str = os.getenv("AWS_ACCESS_KEY_ID", "")
AWS_SECRET_ACCESS_KEY: str = os.getenv("AWS_SECRET_ACCESS_KEY", "")
AWS_REGION: str = os.getenv("AWS_REGION", "eu-north-1")

# Cloudflare R2 credentials and configuration
R2_ENDPOINT: str = os.getenv("R2_ENDPOINT", "")
R2_ACCESS_KEY_ID: str = os.getenv("R2_ACCESS_KEY_ID", "")
R2_SECRET_ACCESS_KEY: str = os.getenv("R2_SECRET_ACCESS_KEY", "")

DEFAULT_STORAGE_TYPE: str = "r2"

# =============================================================================
# TRANSPORT CONFIGURATION
# =============================================================================

# Connection pool size used by the multiplexed protocol mode
MULTIPLEXED_POOL_SIZE: int = 1

# Single-stream (HTTP/1.1) connection caps per target host
MAX_CONNS_PER_HOST: int = 100
MAX_IDLE_CONNS_PER_HOST: int = 100

# Connect timeout only; reads have no client-level timeout
CONNECT_TIMEOUT_SECONDS: int = 60

# Idle keep-alive window for pooled single-stream connections (S3 drops idle
# connections after ~20s)
KEEPALIVE_TIMEOUT_SECONDS: int = 12

# Tag appended to the User-Agent of every request
USER_AGENT_TAG: str = "object-read-bench"

# Bytes pulled from the response body per read call
READ_CHUNK_SIZE: int = 1024 * 1024

# =============================================================================
# WORKLOAD CONFIGURATION
# =============================================================================

NUM_WORKERS: int = 48
READS_PER_WORKER: int = 800

BUCKET_NAME: str = os.getenv("BUCKET_NAME", "object-read-bench-us-central")
PROJECT_NAME: str = os.getenv("PROJECT_NAME", "")

# OBJECT_NAME_PREFIX<shard>OBJECT_NAME_SUFFIX is the object name format,
# shard goes from 0 to NUM_WORKERS - 1.
OBJECT_NAME_PREFIX: str = "50mb/1_thread."
OBJECT_NAME_SUFFIX: str = ".0"

# =============================================================================
# RETRY POLICY
# =============================================================================

RETRY_MAX_DURATION_SECONDS: float = 30.0
RETRY_MULTIPLIER: float = 2.0
RETRY_INITIAL_DELAY_SECONDS: float = 1.0

# HTTP statuses and error codes treated as transient
RETRYABLE_HTTP_STATUSES = frozenset({408, 429, 500, 502, 503, 504})
RETRYABLE_ERROR_CODES = frozenset({
    "RequestTimeout",
    "RequestTimeoutException",
    "SlowDown",
    "Throttling",
    "ThrottlingException",
    "InternalError",
    "ServiceUnavailable",
})

# =============================================================================
# CLI DEFAULTS
# =============================================================================

DEFAULT_CLIENT_PROTOCOL: str = "http"
SUCCESS_MESSAGE: str = "Read benchmark completed successfully!"
FAILURE_MESSAGE_PREFIX: str = "Error while running benchmark"


class ProtocolMode(Enum):
    """Transport protocol mode of the storage client."""

    SINGLE_STREAM = "single-stream"
    MULTIPLEXED = "multiplexed"

    @classmethod
    def from_flag(cls, value: str) -> "ProtocolMode":
        """Map the --client-protocol flag: 'http' is single-stream, anything else multiplexed."""
        if value == DEFAULT_CLIENT_PROTOCOL:
            return cls.SINGLE_STREAM
        return cls.MULTIPLEXED


@dataclass(frozen=True)
class BenchmarkConfig:
    """Process-wide benchmark parameters. Built once at startup, never mutated."""

    protocol: ProtocolMode = ProtocolMode.SINGLE_STREAM
    storage_type: str = DEFAULT_STORAGE_TYPE
    endpoint_url: Optional[str] = None
    worker_count: int = NUM_WORKERS
    reads_per_worker: int = READS_PER_WORKER
    max_conns_per_host: int = MAX_CONNS_PER_HOST
    max_idle_conns_per_host: int = MAX_IDLE_CONNS_PER_HOST
    multiplexed_pool_size: int = MULTIPLEXED_POOL_SIZE
    retry_max_duration: float = RETRY_MAX_DURATION_SECONDS
    retry_multiplier: float = RETRY_MULTIPLIER
    retry_initial_delay: float = RETRY_INITIAL_DELAY_SECONDS
    retry_deadline: Optional[float] = None
    bucket_name: str = BUCKET_NAME
    project: str = PROJECT_NAME
    object_name_prefix: str = OBJECT_NAME_PREFIX
    object_name_suffix: str = OBJECT_NAME_SUFFIX
    user_agent: str = USER_AGENT_TAG
    read_chunk_size: int = READ_CHUNK_SIZE
    cancel_on_failure: bool = False

    def object_name(self, shard_index: int) -> str:
        """Return the object read by the given shard."""
        return f"{self.object_name_prefix}{shard_index}{self.object_name_suffix}"

    def validate(self) -> None:
        """Raise ValueError if any parameter is out of range."""
        if self.worker_count <= 0:
            raise ValueError(f"worker_count must be positive, got {self.worker_count}")
        if self.reads_per_worker <= 0:
            raise ValueError(f"reads_per_worker must be positive, got {self.reads_per_worker}")
        if self.max_conns_per_host <= 0 or self.max_idle_conns_per_host <= 0:
            raise ValueError("connection limits per host must be positive")
        if self.multiplexed_pool_size <= 0:
            raise ValueError(f"multiplexed_pool_size must be positive, got {self.multiplexed_pool_size}")
        if self.retry_max_duration <= 0:
            raise ValueError(f"retry_max_duration must be positive, got {self.retry_max_duration}")
        if self.retry_multiplier < 1.0:
            raise ValueError(f"retry_multiplier must be >= 1.0, got {self.retry_multiplier}")
        if self.retry_initial_delay <= 0:
            raise ValueError(f"retry_initial_delay must be positive, got {self.retry_initial_delay}")
        if self.read_chunk_size <= 0:
            raise ValueError(f"read_chunk_size must be positive, got {self.read_chunk_size}")
