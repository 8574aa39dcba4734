"""
Error taxonomy for the object read benchmark.
"""

from typing import Optional


class BenchmarkError(Exception):
    """Base class for all benchmark errors."""


class ClientInitError(BenchmarkError):
    """Credential or transport construction failed. Fatal before any work starts."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class ProvisionError(BenchmarkError):
    """Container creation failed for a reason other than 'already exists'."""

    def __init__(self, bucket_name: str, cause: BaseException):
        self.bucket_name = bucket_name
        self.cause = cause
        super().__init__(f"while creating the bucket {bucket_name}: {cause}")


class ReadError(BenchmarkError):
    """Failure while reading one object."""

    call_type = "read"
    action = "while reading"

    def __init__(self, object_name: str, cause: BaseException):
        self.object_name = object_name
        self.cause = cause
        super().__init__(f"{self.action} {object_name}: {cause}")


class OpenError(ReadError):
    """Failed to open a read stream for an object."""

    call_type = "open"
    action = "while creating reader for"


class TransferError(ReadError):
    """Failed while draining the object body."""

    call_type = "transfer"
    action = "while reading and discarding content of"


class WorkerError(BenchmarkError):
    """A shard's read loop stopped on its first error."""

    def __init__(self, shard_index: int, cause: ReadError):
        self.shard_index = shard_index
        self.cause = cause
        super().__init__(f"while reading object (shard {shard_index}): {cause}")

    @property
    def call_type(self) -> str:
        return self.cause.call_type
