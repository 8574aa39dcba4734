"""
Object reader: one full sequential read of a named object, timed.
"""

import logging
import time

from common.errors import OpenError, TransferError
from configuration import READ_CHUNK_SIZE

logger = logging.getLogger(__name__)


class ObjectReader:
    """Reads whole objects from a storage system and measures wall-clock time.

    Retries are not handled here; the storage system applies its retry
    policy to the open call and to every chunk read.
    """

    def __init__(self, storage_system, chunk_size: int = READ_CHUNK_SIZE, clock=time.perf_counter_ns):
        self.storage_system = storage_system
        self.chunk_size = chunk_size
        self._clock = clock

    async def read_fully(self, object_name: str) -> int:
        """Read object_name to the end and discard it.

        Returns:
            Nanoseconds from just before the open to just after the last byte.
            Closing the stream is not timed.

        Raises:
            OpenError: the read stream could not be opened
            TransferError: the stream failed while draining or closing
        """
        start = self._clock()
        try:
            stream = await self.storage_system.open_reader(object_name, chunk_size=self.chunk_size)
        except Exception as e:
            raise OpenError(object_name, e) from e

        # A failed close counts as a failed transfer
        try:
            async with stream:
                bytes_read = await stream.drain()
                elapsed = self._clock() - start
        except Exception as e:
            raise TransferError(object_name, e) from e

        logger.debug(f"Read {bytes_read} bytes of {object_name} in {elapsed / 1e6:.3f}ms")
        return elapsed
