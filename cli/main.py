"""
Command line entry point for the object read benchmark.
"""

import argparse
import logging
import sys

import uvloop

from configuration import (
    BUCKET_NAME,
    DEFAULT_CLIENT_PROTOCOL,
    DEFAULT_STORAGE_TYPE,
    MAX_CONNS_PER_HOST,
    MAX_IDLE_CONNS_PER_HOST,
    MULTIPLEXED_POOL_SIZE,
    NUM_WORKERS,
    OBJECT_NAME_PREFIX,
    OBJECT_NAME_SUFFIX,
    PROJECT_NAME,
    READS_PER_WORKER,
    RETRY_MAX_DURATION_SECONDS,
    RETRY_MULTIPLIER,
    BenchmarkConfig,
    ProtocolMode,
)

# Set up logging (only if not already configured)
if not logging.root.handlers:
    logging.basicConfig(level=logging.WARNING, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


class ReadBenchmarkCLI:
    """CLI interface for the object read benchmark."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self):
        """Create the argument parser."""
        parser = argparse.ArgumentParser(
            description='Object storage read latency benchmark',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # 48 workers x 800 reads over pooled HTTP/1.1 connections
  object-read-bench --storage r2

  # Same workload with the multiplexed connection policy
  object-read-bench --client-protocol grpc

  # Small smoke run against S3
  object-read-bench --storage s3 --workers 2 --reads-per-worker 3
            """
        )

        parser.add_argument('--client-protocol', type=str, default=DEFAULT_CLIENT_PROTOCOL,
                            help=f"'{DEFAULT_CLIENT_PROTOCOL}' for single-stream HTTP/1.1, "
                                 f"anything else for multiplexed (default: {DEFAULT_CLIENT_PROTOCOL})")
        parser.add_argument('--storage', choices=['r2', 's3'], default=DEFAULT_STORAGE_TYPE,
                            help=f'Storage type to use (default: {DEFAULT_STORAGE_TYPE})')
        parser.add_argument('--endpoint-url', type=str, default=None,
                            help='Endpoint URL override (default: from environment)')
        parser.add_argument('--bucket', type=str, default=BUCKET_NAME,
                            help=f'Bucket to read from (default: {BUCKET_NAME})')
        parser.add_argument('--project', type=str, default=PROJECT_NAME,
                            help='Expected bucket owner, checked when the bucket already exists')
        parser.add_argument('--object-prefix', type=str, default=OBJECT_NAME_PREFIX,
                            help=f'Object name prefix (default: {OBJECT_NAME_PREFIX})')
        parser.add_argument('--object-suffix', type=str, default=OBJECT_NAME_SUFFIX,
                            help=f'Object name suffix (default: {OBJECT_NAME_SUFFIX})')
        parser.add_argument('--workers', type=int, default=NUM_WORKERS,
                            help=f'Number of concurrent workers (default: {NUM_WORKERS})')
        parser.add_argument('--reads-per-worker', type=int, default=READS_PER_WORKER,
                            help=f'Full-object reads per worker (default: {READS_PER_WORKER})')
        parser.add_argument('--max-conns-per-host', type=int, default=MAX_CONNS_PER_HOST,
                            help=f'Connection cap per host (default: {MAX_CONNS_PER_HOST})')
        parser.add_argument('--max-idle-conns-per-host', type=int, default=MAX_IDLE_CONNS_PER_HOST,
                            help=f'Idle connection cap per host (default: {MAX_IDLE_CONNS_PER_HOST})')
        parser.add_argument('--pool-size', type=int, default=MULTIPLEXED_POOL_SIZE,
                            help=f'Client channels in multiplexed mode (default: {MULTIPLEXED_POOL_SIZE})')
        parser.add_argument('--retry-max-duration', type=float, default=RETRY_MAX_DURATION_SECONDS,
                            help=f'Longest single backoff wait in seconds (default: {RETRY_MAX_DURATION_SECONDS})')
        parser.add_argument('--retry-multiplier', type=float, default=RETRY_MULTIPLIER,
                            help=f'Backoff multiplier (default: {RETRY_MULTIPLIER})')
        parser.add_argument('--retry-deadline', type=float, default=None,
                            help='Give up retrying a call after this many seconds (default: never)')
        parser.add_argument('--cancel-on-failure', action='store_true',
                            help='Cancel the remaining workers after the first failure')
        parser.add_argument('--verbose', '-v', action='store_true',
                            help='Log progress at INFO level')

        return parser

    def build_config(self, args) -> BenchmarkConfig:
        """Build the immutable run configuration from parsed arguments."""
        return BenchmarkConfig(
            protocol=ProtocolMode.from_flag(args.client_protocol),
            storage_type=args.storage,
            endpoint_url=args.endpoint_url,
            worker_count=args.workers,
            reads_per_worker=args.reads_per_worker,
            max_conns_per_host=args.max_conns_per_host,
            max_idle_conns_per_host=args.max_idle_conns_per_host,
            multiplexed_pool_size=args.pool_size,
            retry_max_duration=args.retry_max_duration,
            retry_multiplier=args.retry_multiplier,
            retry_deadline=args.retry_deadline,
            bucket_name=args.bucket,
            project=args.project,
            object_name_prefix=args.object_prefix,
            object_name_suffix=args.object_suffix,
            cancel_on_failure=args.cancel_on_failure,
        )

    async def run_benchmark(self, config: BenchmarkConfig) -> int:
        """Run the read benchmark; returns the process exit code."""
        from cli.benchmark import BenchmarkRunner

        runner = BenchmarkRunner(config)
        outcome = await runner.run_benchmark()
        return 0 if outcome.succeeded else 1

    def run(self, args=None) -> int:
        """Run the CLI with the given arguments."""
        if args is None:
            args = sys.argv[1:]

        parsed_args = self.parser.parse_args(args)

        if parsed_args.verbose:
            logging.root.setLevel(logging.INFO)

        try:
            config = self.build_config(parsed_args)
            config.validate()
        except ValueError as e:
            self.parser.error(str(e))

        try:
            return uvloop.run(self.run_benchmark(config))
        except KeyboardInterrupt:
            logger.warning("Benchmark interrupted by user")
            return 1


def main():
    """Main entry point."""
    cli = ReadBenchmarkCLI()
    sys.exit(cli.run())


if __name__ == '__main__':
    main()
