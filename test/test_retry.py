"""
Tests for the retry policy and transient error classification.
"""

import asyncio
import os
import sys
import unittest

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from aiohttp.client_exceptions import ClientPayloadError, ServerDisconnectedError
from botocore.exceptions import ConnectTimeoutError, EndpointConnectionError, ReadTimeoutError

from common.retry import RetryPolicy, is_transient
from configuration import BenchmarkConfig
from fakes import client_error, no_sleep_recorder


class FlakyCall:
    """Fails with the given errors in order, then returns a value."""

    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self, *args, **kwargs):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class TestIsTransient(unittest.TestCase):
    """Test error classification."""

    def test_network_errors_are_transient(self):
        errors = [
            ConnectionResetError("reset"),
            asyncio.TimeoutError(),
            ClientPayloadError("Response payload is not completed"),
            ServerDisconnectedError(),
            EndpointConnectionError(endpoint_url="https://example.invalid"),
            ConnectTimeoutError(endpoint_url="https://example.invalid"),
            ReadTimeoutError(endpoint_url="https://example.invalid"),
        ]
        for error in errors:
            with self.subTest(error=type(error).__name__):
                self.assertTrue(is_transient(error))

    def test_throttling_and_server_errors_are_transient(self):
        self.assertTrue(is_transient(client_error("SlowDown", 503)))
        self.assertTrue(is_transient(client_error("InternalError", 500)))
        self.assertTrue(is_transient(client_error("TooManyRequests", 429)))

    def test_client_errors_are_not_transient(self):
        self.assertFalse(is_transient(client_error("NoSuchKey", 404)))
        self.assertFalse(is_transient(client_error("AccessDenied", 403)))
        self.assertFalse(is_transient(ValueError("bad")))


class TestRetryPolicy(unittest.IsolatedAsyncioTestCase):
    """Test backoff behavior."""

    async def test_transient_failures_then_success(self):
        """k transient failures then success returns the result once."""
        sleep, pauses = no_sleep_recorder()
        policy = RetryPolicy(max_backoff=30.0, multiplier=2.0, initial=1.0,
                             sleep=sleep, jitter=lambda: 1.0)
        call = FlakyCall([client_error("SlowDown", 503)] * 3)

        result = await policy.call(call)

        self.assertEqual(result, "ok")
        self.assertEqual(call.calls, 4)
        self.assertEqual(pauses, [1.0, 2.0, 4.0])

    async def test_unreachable_endpoint_is_retried(self):
        sleep, pauses = no_sleep_recorder()
        policy = RetryPolicy(sleep=sleep)
        call = FlakyCall([EndpointConnectionError(endpoint_url="http://127.0.0.1:9")] * 2)

        self.assertEqual(await policy.call(call), "ok")
        self.assertEqual(call.calls, 3)
        self.assertEqual(len(pauses), 2)

    async def test_pause_never_exceeds_max_backoff(self):
        sleep, pauses = no_sleep_recorder()
        policy = RetryPolicy(max_backoff=5.0, multiplier=3.0, initial=1.0,
                             sleep=sleep, jitter=lambda: 1.0)
        call = FlakyCall([ConnectionResetError()] * 6)

        await policy.call(call)

        self.assertEqual(pauses, [1.0, 3.0, 5.0, 5.0, 5.0, 5.0])
        self.assertTrue(all(p <= 5.0 for p in pauses))

    async def test_initial_delay_capped_by_max_backoff(self):
        policy = RetryPolicy(max_backoff=0.5, initial=2.0)
        self.assertEqual(policy.initial, 0.5)

    async def test_jitter_draws_below_current(self):
        sleep, pauses = no_sleep_recorder()
        policy = RetryPolicy(max_backoff=30.0, multiplier=2.0, initial=1.0,
                             sleep=sleep, jitter=lambda: 0.5)
        await policy.call(FlakyCall([ConnectionResetError()] * 2))
        self.assertEqual(pauses, [0.5, 1.0])

    async def test_non_transient_error_is_not_retried(self):
        sleep, pauses = no_sleep_recorder()
        policy = RetryPolicy(sleep=sleep)
        error = client_error("NoSuchKey", 404)
        call = FlakyCall([error])

        with self.assertRaises(Exception) as ctx:
            await policy.call(call)

        self.assertIs(ctx.exception, error)
        self.assertEqual(call.calls, 1)
        self.assertEqual(pauses, [])

    async def test_deadline_surfaces_last_error(self):
        """Once the next pause would cross the deadline the last error is raised."""
        now = [0.0]

        async def sleep(seconds):
            now[0] += seconds

        policy = RetryPolicy(max_backoff=4.0, multiplier=2.0, initial=1.0, deadline=5.0,
                             sleep=sleep, clock=lambda: now[0], jitter=lambda: 1.0)
        errors = [ConnectionResetError(f"attempt {i}") for i in range(10)]
        call = FlakyCall(errors)

        with self.assertRaises(ConnectionResetError) as ctx:
            await policy.call(call)

        # Pauses 1 + 2 fit in 5s, the next pause of 4 would not
        self.assertEqual(call.calls, 3)
        self.assertEqual(str(ctx.exception), "attempt 2")
        self.assertEqual(now[0], 3.0)

    async def test_no_deadline_keeps_retrying(self):
        sleep, pauses = no_sleep_recorder()
        policy = RetryPolicy(max_backoff=1.0, initial=1.0, sleep=sleep, jitter=lambda: 1.0)
        call = FlakyCall([ConnectionResetError()] * 50)

        self.assertEqual(await policy.call(call), "ok")
        self.assertEqual(call.calls, 51)

    async def test_arguments_are_forwarded(self):
        seen = []

        async def fn(*args, **kwargs):
            seen.append((args, kwargs))
            return len(seen)

        policy = RetryPolicy()
        result = await policy.call(fn, "a", Bucket="b", description="forwarding")

        self.assertEqual(result, 1)
        self.assertEqual(seen, [(("a",), {"Bucket": "b"})])

    def test_from_config(self):
        config = BenchmarkConfig(retry_max_duration=10.0, retry_multiplier=1.5,
                                 retry_initial_delay=0.2, retry_deadline=60.0)
        policy = RetryPolicy.from_config(config)
        self.assertEqual(policy.max_backoff, 10.0)
        self.assertEqual(policy.multiplier, 1.5)
        self.assertEqual(policy.initial, 0.2)
        self.assertEqual(policy.deadline, 60.0)

    def test_rejects_invalid_parameters(self):
        with self.assertRaises(ValueError):
            RetryPolicy(max_backoff=0)
        with self.assertRaises(ValueError):
            RetryPolicy(multiplier=0.9)


if __name__ == '__main__':
    unittest.main()
