"""
Tests for duration formatting and output lines.
"""

import io
import os
import sys
import unittest

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from common.reporter import LatencyReporter, ReadSample, format_duration
from configuration import FAILURE_MESSAGE_PREFIX, SUCCESS_MESSAGE


class TestFormatDuration(unittest.TestCase):

    def test_units(self):
        cases = {
            0: "0s",
            850: "850ns",
            1_500: "1.5µs",
            12_345_678: "12.345678ms",
            2_500_000_000: "2.5s",
            90 * 1_000_000_000: "1m30s",
            3_605 * 1_000_000_000: "1h0m5s",
        }
        for ns, expected in cases.items():
            with self.subTest(ns=ns):
                self.assertEqual(format_duration(ns), expected)

    def test_whole_units_have_no_fraction(self):
        self.assertEqual(format_duration(1_000_000), "1ms")
        self.assertEqual(format_duration(1_000_000_000), "1s")

    def test_negative(self):
        self.assertEqual(format_duration(-1_500), "-1.5µs")


class TestLatencyReporter(unittest.TestCase):

    def setUp(self):
        self.out = io.StringIO()
        self.err = io.StringIO()
        self.reporter = LatencyReporter(self.out, self.err)

    def test_sample_line_is_duration_only(self):
        self.reporter.report_sample(ReadSample(shard_index=3, duration_ns=12_500_000))
        self.assertEqual(self.out.getvalue(), "12.5ms\n")
        self.assertEqual(self.err.getvalue(), "")

    def test_success_line(self):
        self.reporter.report_success()
        self.assertEqual(self.out.getvalue(), SUCCESS_MESSAGE + "\n")

    def test_failure_goes_to_stderr(self):
        self.reporter.report_failure(RuntimeError("boom"))
        self.assertEqual(self.out.getvalue(), "")
        self.assertEqual(self.err.getvalue(), f"{FAILURE_MESSAGE_PREFIX}: boom\n")


if __name__ == '__main__':
    unittest.main()
