"""
Async base classes for S3-compatible object storage systems.
"""

import inspect
import itertools
import logging
import os
from typing import Any, Dict, List, Optional

import aioboto3
import psutil
from aiobotocore.config import AioConfig
from botocore.exceptions import ClientError

from common.errors import ClientInitError
from common.retry import RetryPolicy
from configuration import READ_CHUNK_SIZE

logger = logging.getLogger(__name__)

ALREADY_EXISTS_CODES = frozenset({"BucketAlreadyOwnedByYou", "BucketAlreadyExists"})

# Regions where CreateBucket must not carry a LocationConstraint
DEFAULT_LOCATION_REGIONS = frozenset({"", "auto", "us-east-1"})


def error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


def is_already_exists(error: BaseException) -> bool:
    """True if a CreateBucket failure only means the bucket is already there."""
    return isinstance(error, ClientError) and error_code(error) in ALREADY_EXISTS_CODES


async def _maybe_await(value):
    if inspect.isawaitable(value):
        return await value
    return value


class ObjectStream:
    """Sequential reader over one object's body.

    Each chunk read goes through the owning system's retry policy. When a
    chunk read fails with a transient error the body is dropped and the
    object is reopened at the current byte offset, so only the remaining
    bytes are transferred again.
    """

    def __init__(self, system: "ObjectStorageSystem", key: str, response: Dict[str, Any],
                 chunk_size: int = READ_CHUNK_SIZE):
        self.system = system
        self.key = key
        self.chunk_size = chunk_size
        self.content_length: Optional[int] = response.get("ContentLength")
        self.offset = 0
        self.reopen_count = 0
        self.closed = False
        self._body = response["Body"]

    async def read(self) -> bytes:
        """Read the next chunk; returns b'' at end of object."""
        if self.closed:
            raise ValueError(f"read from closed stream for {self.key}")
        return await self.system.retry_policy.call(
            self._read_chunk, description=f"read {self.key} at offset {self.offset}"
        )

    async def _read_chunk(self) -> bytes:
        if self.content_length is not None and self.offset >= self.content_length:
            return b""

        if self._body is None:
            response = await self.system.get_object(self.key, start=self.offset)
            self._body = response["Body"]
            self.reopen_count += 1
            logger.debug(f"Reopened {self.key} at offset {self.offset}")

        try:
            chunk = await self._body.read(self.chunk_size)
        except Exception:
            await self._release_body()
            raise

        self.offset += len(chunk)
        return chunk

    async def drain(self) -> int:
        """Read to the end, discarding the data. Returns bytes read."""
        while True:
            chunk = await self.read()
            if not chunk:
                return self.offset

    async def _release_body(self):
        body, self._body = self._body, None
        if body is not None:
            await _maybe_await(body.close())

    async def close(self):
        if self.closed:
            return
        self.closed = True
        await self._release_body()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class ObjectStorageSystem:
    """Async client for an S3-compatible object store.

    One instance is shared by all workers. It owns one or more aiobotocore
    clients (channels), the retry policy applied to every remote call, and
    the credential source. Everything is set up before the workers start.
    """

    def __init__(
        self,
        endpoint: str,
        bucket_name: str,
        credentials: dict,
        transport_config: Optional[AioConfig] = None,
        channel_count: int = 1,
        project: str = "",
        session=None,
    ):
        self.endpoint = endpoint
        self.bucket_name = bucket_name
        self.credentials = credentials
        self.region_name = credentials.get("region_name", "auto")
        self.project = project
        self.channel_count = max(1, channel_count)
        self._config = transport_config

        self.session = session or aioboto3.Session(
            aws_access_key_id=credentials.get("access_key_id") or None,
            aws_secret_access_key=credentials.get("secret_access_key") or None,
            region_name=self.region_name,
        )

        self.clients: List[Any] = []
        self._client_cycle = None
        self.retry_policy = RetryPolicy()

        logger.info(
            f"Initialized storage for {endpoint or 'default endpoint'} "
            f"(bucket={bucket_name}, channels={self.channel_count})"
        )

    def set_retry(self, policy: RetryPolicy) -> None:
        """Attach the retry policy used for every subsequent remote call."""
        self.retry_policy = policy

    async def acquire_credentials(self):
        """Resolve credentials from the session's chain. Raises ClientInitError."""
        try:
            credentials = await _maybe_await(self.session.get_credentials())
        except Exception as e:
            raise ClientInitError("while acquiring credentials", e) from e

        if credentials is None:
            raise ClientInitError("while acquiring credentials: no credentials found")
        return credentials

    async def open(self):
        """Create the underlying aiobotocore client(s)."""
        for _ in range(self.channel_count):
            client = await self.session.client(
                "s3",
                endpoint_url=self.endpoint or None,
                config=self._config,
            ).__aenter__()
            self.clients.append(client)
        self._client_cycle = itertools.cycle(self.clients)

    async def close(self):
        clients, self.clients = self.clients, []
        self._client_cycle = None
        for client in clients:
            await client.__aexit__(None, None, None)

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def client(self):
        """Next client channel, round-robin."""
        if self._client_cycle is None:
            raise RuntimeError("Storage client not initialized. Use async context manager.")
        return next(self._client_cycle)

    async def get_object(self, key: str, start: int = 0) -> Dict[str, Any]:
        """Issue one GetObject call, from byte ``start`` to the end."""
        params = {"Bucket": self.bucket_name, "Key": key}
        if start > 0:
            params["Range"] = f"bytes={start}-"
        return await self.client.get_object(**params)

    async def open_reader(self, key: str, chunk_size: int = READ_CHUNK_SIZE) -> ObjectStream:
        """Open a read stream for the whole object."""
        response = await self.retry_policy.call(self.get_object, key, description=f"open {key}")
        return ObjectStream(self, key, response, chunk_size)

    async def ensure_container(self, bucket_name: Optional[str] = None) -> bool:
        """Create the bucket if needed.

        Returns True if the bucket was created, False if it already existed.
        """
        bucket_name = bucket_name or self.bucket_name
        params: Dict[str, Any] = {"Bucket": bucket_name}
        if self.region_name not in DEFAULT_LOCATION_REGIONS:
            params["CreateBucketConfiguration"] = {"LocationConstraint": self.region_name}

        try:
            await self.retry_policy.call(
                self.client.create_bucket, **params, description=f"create bucket {bucket_name}"
            )
        except ClientError as e:
            if not is_already_exists(e):
                raise
            logger.info(f"Bucket {bucket_name} already exists ({error_code(e)})")
            if self.project:
                await self.retry_policy.call(
                    self.client.head_bucket,
                    Bucket=bucket_name,
                    ExpectedBucketOwner=self.project,
                    description=f"verify owner of {bucket_name}",
                )
            return False

        logger.info(f"Created bucket {bucket_name}")
        return True

    def get_connection_count(self) -> int:
        """Get number of established connections for this process."""
        try:
            process = psutil.Process(os.getpid())
            connections = process.net_connections(kind="inet")
            return len([c for c in connections if c.status == psutil.CONN_ESTABLISHED])
        except psutil.Error as e:
            logger.debug(f"Failed to get connection count: {e}")
            return -1
