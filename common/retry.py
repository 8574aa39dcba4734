"""
Bounded exponential backoff applied to every remote storage call.
"""

import asyncio
import logging
import random
import time
from typing import Any, Awaitable, Callable, Optional

from aiohttp.client_exceptions import ClientConnectionError, ClientPayloadError
from botocore.exceptions import ClientError, HTTPClientError, IncompleteReadError
from botocore.exceptions import ConnectionError as BotoConnectionError

from configuration import (
    RETRY_INITIAL_DELAY_SECONDS,
    RETRY_MAX_DURATION_SECONDS,
    RETRY_MULTIPLIER,
    RETRYABLE_ERROR_CODES,
    RETRYABLE_HTTP_STATUSES,
)

logger = logging.getLogger(__name__)


def is_transient(error: BaseException) -> bool:
    """Return True if the error is worth retrying on an idempotent read."""
    if isinstance(error, ClientError):
        error_code = error.response.get("Error", {}).get("Code", "")
        status_code = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
        return status_code in RETRYABLE_HTTP_STATUSES or error_code in RETRYABLE_ERROR_CODES

    return isinstance(
        error,
        (
            asyncio.TimeoutError,
            ConnectionError,
            BotoConnectionError,
            ClientConnectionError,
            ClientPayloadError,
            HTTPClientError,
            IncompleteReadError,
        ),
    )


class RetryPolicy:
    """Always-retry policy with capped exponential backoff.

    Every transient failure is retried. The pause before each retry is drawn
    from (0, current] and ``current`` grows by ``multiplier`` up to
    ``max_backoff``. There is no attempt limit: if ``deadline`` is set, the
    policy gives up once the next pause would cross it and re-raises the last
    error; without a deadline it keeps going until success or a non-transient
    error.
    """

    def __init__(
        self,
        max_backoff: float = RETRY_MAX_DURATION_SECONDS,
        multiplier: float = RETRY_MULTIPLIER,
        initial: float = RETRY_INITIAL_DELAY_SECONDS,
        deadline: Optional[float] = None,
        is_retryable: Callable[[BaseException], bool] = is_transient,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        jitter: Callable[[], float] = random.random,
    ):
        if max_backoff <= 0:
            raise ValueError(f"max_backoff must be positive, got {max_backoff}")
        if multiplier < 1.0:
            raise ValueError(f"multiplier must be >= 1.0, got {multiplier}")

        self.max_backoff = max_backoff
        self.multiplier = multiplier
        self.initial = min(initial, max_backoff)
        self.deadline = deadline
        self.is_retryable = is_retryable
        self._sleep = sleep
        self._clock = clock
        self._jitter = jitter

    def next_pause(self, current: float) -> float:
        """Pause before the next attempt, never above max_backoff."""
        return min(current * self._jitter(), self.max_backoff)

    def grow(self, current: float) -> float:
        return min(current * self.multiplier, self.max_backoff)

    async def call(self, fn: Callable[..., Awaitable[Any]], *args, description: str = "", **kwargs) -> Any:
        """Await fn(*args, **kwargs), retrying transient failures."""
        started = self._clock()
        current = self.initial
        attempt = 0

        while True:
            attempt += 1
            try:
                return await fn(*args, **kwargs)
            except Exception as e:
                if not self.is_retryable(e):
                    raise

                pause = self.next_pause(current)
                elapsed = self._clock() - started
                if self.deadline is not None and elapsed + pause > self.deadline:
                    logger.warning(
                        f"Giving up on {description or 'call'} after {attempt} attempts "
                        f"({elapsed:.1f}s): {e}"
                    )
                    raise

                logger.info(
                    f"Retrying {description or 'call'} after {type(e).__name__} "
                    f"(attempt {attempt}, sleeping {pause:.3f}s): {e}"
                )
                await self._sleep(pause)
                current = self.grow(current)

    @classmethod
    def from_config(cls, config) -> "RetryPolicy":
        return cls(
            max_backoff=config.retry_max_duration,
            multiplier=config.retry_multiplier,
            initial=config.retry_initial_delay,
            deadline=config.retry_deadline,
        )
