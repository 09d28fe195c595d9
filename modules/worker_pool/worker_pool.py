"""
Worker-pool dispatcher.

Runs ``job_fn(worker_id, start, end)`` over ``[0, job_count)`` on a bounded
joblib thread pool and joins before returning. Threads share the read-only
dataset and the caller's pre-allocated result slots; each chunk writes only
to the slots of its own index range, so no locking is needed.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from joblib import Parallel, delayed

from utils import constants
from utils.exceptions import ConfigurationError
from utils.resource_limits import cpu_count

JobFn = Callable[[int, int, int], None]


@dataclass
class ChunkOutcome:
    """Success/failure record of one dispatched index range."""
    worker_id: int
    start: int
    end: int
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def resolve_n_jobs(n_jobs: Optional[int]) -> int:
    """Map an n_jobs request to a worker count; None or <= 0 means every CPU."""
    if n_jobs is None or n_jobs <= 0:
        return cpu_count()
    return int(n_jobs)


def partition_range(job_count: int, n_workers: int) -> List[Tuple[int, int]]:
    """
    Split ``[0, job_count)`` into at most `n_workers` contiguous, non-empty ranges
    whose sizes differ by at most one.
    """
    if job_count <= 0:
        return []
    n_workers = max(1, min(n_workers, job_count))
    size, extra = divmod(job_count, n_workers)
    ranges = []
    start = 0
    for worker_id in range(n_workers):
        end = start + size + (1 if worker_id < extra else 0)
        ranges.append((start, end))
        start = end
    return ranges


def parallelize(n_jobs: Optional[int], job_count: int, job_fn: JobFn, *,
                dispatch: str = constants.DISPATCH_STATIC,
                logger: Optional[logging.Logger] = None) -> List[ChunkOutcome]:
    """
    Dispatch `job_count` units of work and wait for all of them.

    Args:
        n_jobs: Maximum concurrent workers (None / <= 0: all CPUs).
        job_count: Size of the index range.
        job_fn: Called as job_fn(worker_id, start, end) for each range.
        dispatch: 'static' hands each worker one contiguous range;
            'dynamic' submits one index per task so idle workers pick up
            the next index as they free up.

    Returns:
        One ChunkOutcome per dispatched range, in range order. An exception
        raised by job_fn ends that range and is recorded in its outcome.
    """
    logger = logger or logging.getLogger(__name__)
    if job_count <= 0:
        return []

    n_workers = min(resolve_n_jobs(n_jobs), job_count)
    if dispatch == constants.DISPATCH_STATIC:
        ranges = partition_range(job_count, n_workers)
    elif dispatch == constants.DISPATCH_DYNAMIC:
        ranges = [(i, i + 1) for i in range(job_count)]
    else:
        raise ConfigurationError(
            f"Unknown dispatch strategy '{dispatch}'. Available: {list(constants.DISPATCH_STRATEGIES)}"
        )

    def run_chunk(worker_id: int, start: int, end: int) -> ChunkOutcome:
        try:
            job_fn(worker_id, start, end)
        except Exception as e:
            logger.debug(f"Worker {worker_id} stopped in range [{start}, {end}): {e}")
            return ChunkOutcome(worker_id, start, end, error=e)
        return ChunkOutcome(worker_id, start, end)

    logger.debug(f"Dispatching {job_count} jobs over {n_workers} workers ({dispatch}).")
    if n_workers == 1:
        return [run_chunk(worker_id, start, end) for worker_id, (start, end) in enumerate(ranges)]

    return Parallel(n_jobs=n_workers, backend=constants.PARALLEL_BACKEND)(
        delayed(run_chunk)(worker_id, start, end)
        for worker_id, (start, end) in enumerate(ranges)
    )
