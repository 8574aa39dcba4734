"""
Common utilities for the object read benchmark.
"""

from .retry import RetryPolicy
from .worker_pool import WorkerPool, WorkerResult

__all__ = ['RetryPolicy', 'WorkerPool', 'WorkerResult']
