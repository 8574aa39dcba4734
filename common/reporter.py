"""
Result output: one line per read on stdout, final status on stdout/stderr.
"""

import sys
from dataclasses import dataclass

from configuration import FAILURE_MESSAGE_PREFIX, SUCCESS_MESSAGE

NANOS_PER_MICRO = 1_000
NANOS_PER_MILLI = 1_000_000
NANOS_PER_SECOND = 1_000_000_000
NANOS_PER_MINUTE = 60 * NANOS_PER_SECOND
NANOS_PER_HOUR = 60 * NANOS_PER_MINUTE


@dataclass(frozen=True)
class ReadSample:
    """Latency of one full object read."""

    shard_index: int
    duration_ns: int


def _with_fraction(value: int, unit: int) -> str:
    whole, remainder = divmod(value, unit)
    digits = len(str(unit)) - 1
    fraction = f"{remainder:0{digits}d}".rstrip("0")
    return f"{whole}.{fraction}" if fraction else str(whole)


def format_duration(duration_ns: int) -> str:
    """Format nanoseconds as a short human-readable duration.

    Examples: 0s, 850ns, 1.5µs, 12.345678ms, 2.5s, 1m30s, 1h0m5s.
    """
    if duration_ns == 0:
        return "0s"

    sign = "-" if duration_ns < 0 else ""
    ns = abs(duration_ns)

    if ns < NANOS_PER_MICRO:
        return f"{sign}{ns}ns"
    if ns < NANOS_PER_MILLI:
        return f"{sign}{_with_fraction(ns, NANOS_PER_MICRO)}µs"
    if ns < NANOS_PER_SECOND:
        return f"{sign}{_with_fraction(ns, NANOS_PER_MILLI)}ms"

    hours, ns = divmod(ns, NANOS_PER_HOUR)
    minutes, ns = divmod(ns, NANOS_PER_MINUTE)
    seconds = _with_fraction(ns, NANOS_PER_SECOND)
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{sign}{minutes}m{seconds}s"
    return f"{sign}{seconds}s"


class LatencyReporter:
    """Writes benchmark output lines.

    Streams default to the current sys.stdout/sys.stderr at write time.
    """

    def __init__(self, out=None, err=None):
        self._out = out
        self._err = err

    @property
    def out(self):
        return self._out or sys.stdout

    @property
    def err(self):
        return self._err or sys.stderr

    def report_sample(self, sample: ReadSample) -> None:
        print(format_duration(sample.duration_ns), file=self.out, flush=True)

    def report_success(self) -> None:
        print(SUCCESS_MESSAGE, file=self.out, flush=True)

    def report_failure(self, error: BaseException) -> None:
        print(f"{FAILURE_MESSAGE_PREFIX}: {error}", file=self.err, flush=True)
