"""
Worker Pool Module
==================

Responsibility:
- Static contiguous partitioning of job index ranges.
- Bounded parallel execution over a joblib thread pool, joined before return.
- Per-chunk success/failure records for the caller to inspect.
"""

from .worker_pool import parallelize, partition_range, resolve_n_jobs, ChunkOutcome

__all__ = ['parallelize', 'partition_range', 'resolve_n_jobs', 'ChunkOutcome']
