"""
Tests for the command line interface.
"""

import io
import os
import sys
import unittest
from contextlib import redirect_stderr
from unittest.mock import AsyncMock, patch

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cli.benchmark import BenchmarkOutcome, BenchmarkState
from cli.main import ReadBenchmarkCLI
from configuration import NUM_WORKERS, READS_PER_WORKER, ProtocolMode


class TestReadBenchmarkCLI(unittest.TestCase):

    def setUp(self):
        self.cli = ReadBenchmarkCLI()

    def parse(self, *args):
        return self.cli.build_config(self.cli.parser.parse_args(list(args)))

    def test_defaults(self):
        config = self.parse()
        self.assertIs(config.protocol, ProtocolMode.SINGLE_STREAM)
        self.assertEqual(config.worker_count, NUM_WORKERS)
        self.assertEqual(config.reads_per_worker, READS_PER_WORKER)
        self.assertIsNone(config.retry_deadline)
        self.assertFalse(config.cancel_on_failure)

    def test_flags_map_to_config(self):
        config = self.parse(
            "--client-protocol", "grpc",
            "--storage", "s3",
            "--bucket", "other",
            "--workers", "4",
            "--reads-per-worker", "10",
            "--pool-size", "3",
            "--retry-deadline", "120",
            "--cancel-on-failure",
        )
        self.assertIs(config.protocol, ProtocolMode.MULTIPLEXED)
        self.assertEqual(config.storage_type, "s3")
        self.assertEqual(config.bucket_name, "other")
        self.assertEqual(config.worker_count, 4)
        self.assertEqual(config.reads_per_worker, 10)
        self.assertEqual(config.multiplexed_pool_size, 3)
        self.assertEqual(config.retry_deadline, 120.0)
        self.assertTrue(config.cancel_on_failure)

    def _run_with_outcome(self, state):
        runner = AsyncMock()
        runner.run_benchmark.return_value = BenchmarkOutcome(state)
        with patch("cli.benchmark.BenchmarkRunner", return_value=runner) as runner_cls:
            code = self.cli.run(["--workers", "2", "--reads-per-worker", "1"])
        return code, runner_cls

    def test_exit_code_success(self):
        code, runner_cls = self._run_with_outcome(BenchmarkState.SUCCEEDED)
        self.assertEqual(code, 0)
        config = runner_cls.call_args[0][0]
        self.assertEqual(config.worker_count, 2)

    def test_exit_code_failure(self):
        code, _ = self._run_with_outcome(BenchmarkState.FAILED)
        self.assertEqual(code, 1)

    def test_invalid_values_exit(self):
        with redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                self.cli.run(["--workers", "0"])
            with self.assertRaises(SystemExit):
                self.cli.run(["--storage", "gcs"])


if __name__ == '__main__':
    unittest.main()
