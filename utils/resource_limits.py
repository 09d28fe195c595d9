"""
Resource Limits Validator

Guards a search against resource exhaustion before any fitting starts.

Features:
- Search grid size limits
- Worker count vs available CPUs
- Scratch buffer memory estimates
- Dataset size vs fold count
"""

import psutil
import logging
from typing import Any, Dict, List, Tuple, Optional
from dataclasses import dataclass

from utils.constants import (
    MAX_SEARCH_CONFIGURATIONS,
    GRID_SIZE_WARNING_RATIO,
    MAX_MEMORY_USAGE_PERCENT,
    MIN_CV_SPLITS,
)


@dataclass
class ResourceLimit:
    """Represents a resource limit violation."""
    resource: str
    current: Any
    limit: Any
    severity: str  # 'error', 'warning', 'info'
    message: str


def cpu_count() -> int:
    """Number of logical CPUs, never less than one."""
    return psutil.cpu_count(logical=True) or 1


class ResourceLimitsValidator:
    """
    Validates search configuration and dataset dimensions against resource limits.

    Prevents:
    - Combinatoric grid explosions
    - Oversubscribed worker pools
    - Out-of-memory crashes from per-worker scratch tables
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.violations: List[ResourceLimit] = []

    def validate_config(self, config: Dict, grid_size: int) -> Tuple[bool, List[ResourceLimit]]:
        """
        Validate a search configuration against all resource limits.

        Args:
            config: Configuration dictionary
            grid_size: Number of assignments the configured grid expands to

        Returns:
            Tuple of (is_valid, violations_list)
        """
        self.violations = []

        self._validate_grid_limits(config, grid_size)
        self._validate_worker_limits(config)

        self._log_violations(self.violations)
        has_errors = any(v.severity == 'error' for v in self.violations)
        return (not has_errors, self.violations)

    def _validate_grid_limits(self, config: Dict, grid_size: int) -> None:
        max_configs = config.get('resources', {}).get('max_search_configs', MAX_SEARCH_CONFIGURATIONS)

        if grid_size > max_configs:
            self.violations.append(ResourceLimit(
                resource='Search Grid Size',
                current=grid_size,
                limit=max_configs,
                severity='error',
                message=f"Search grid size ({grid_size:,}) exceeds maximum "
                       f"({max_configs:,}). Reduce the parameter grid or raise "
                       f"'resources.max_search_configs'."
            ))
        elif grid_size > max_configs * GRID_SIZE_WARNING_RATIO:
            self.violations.append(ResourceLimit(
                resource='Search Grid Size',
                current=grid_size,
                limit=max_configs,
                severity='warning',
                message=f"Search grid size ({grid_size:,}) is close to maximum "
                       f"({max_configs:,}). Consider reducing."
            ))

    def _validate_worker_limits(self, config: Dict) -> None:
        search = config.get('search', {})
        cores = cpu_count()
        outer = search.get('n_jobs', 1)
        inner = search.get('cv_n_jobs', 1)
        outer = cores if outer is None or outer <= 0 else outer
        inner = cores if inner is None or inner <= 0 else inner

        if outer * inner > cores:
            self.violations.append(ResourceLimit(
                resource='Worker Count',
                current=outer * inner,
                limit=cores,
                severity='warning',
                message=f"Requested {outer} search workers x {inner} fold workers "
                       f"on {cores} CPUs. Nested parallelism will oversubscribe."
            ))

    def validate_dataset(self, n_samples: int, n_columns: int, n_splits: int,
                         n_workers: int = 1, itemsize: int = 8) -> Tuple[bool, List[ResourceLimit]]:
        """
        Validate dataset dimensions against the cross-validation setup.

        Args:
            n_samples: Number of rows in the dataset
            n_columns: Number of feature plus target columns
            n_splits: Number of folds
            n_workers: Number of concurrent workers, each holding a scratch table
            itemsize: Bytes per cell

        Returns:
            Tuple of (is_valid, violations_list)
        """
        violations = []

        if n_splits < MIN_CV_SPLITS:
            violations.append(ResourceLimit(
                resource='Fold Count',
                current=n_splits,
                limit=MIN_CV_SPLITS,
                severity='warning',
                message=f"Only {n_splits} fold(s) requested; scores will not be cross-validated."
            ))

        if n_samples < n_splits:
            violations.append(ResourceLimit(
                resource='Dataset Rows',
                current=n_samples,
                limit=n_splits,
                severity='error',
                message=f"Dataset has only {n_samples} rows for {n_splits} folds."
            ))

        # One scratch table (train + test rows) per worker
        estimated_memory_mb = (n_samples * n_columns * itemsize * n_workers) / (1024**2)
        try:
            available_mb = psutil.virtual_memory().available / (1024**2)
            budget_mb = available_mb * MAX_MEMORY_USAGE_PERCENT / 100
            if estimated_memory_mb > budget_mb:
                violations.append(ResourceLimit(
                    resource='Scratch Memory',
                    current=f"{estimated_memory_mb:.0f}MB",
                    limit=f"{budget_mb:.0f}MB",
                    severity='warning',
                    message=f"Scratch tables need ~{estimated_memory_mb:.0f}MB across "
                           f"{n_workers} workers; only {available_mb:.0f}MB available."
                ))
        except Exception as e:
            self.logger.warning(f"Could not check system memory: {e}")

        self._log_violations(violations)
        has_errors = any(v.severity == 'error' for v in violations)
        return (not has_errors, violations)

    def _log_violations(self, violations: List[ResourceLimit]) -> None:
        for violation in violations:
            if violation.severity == 'error':
                self.logger.error(violation.message)
            elif violation.severity == 'warning':
                self.logger.warning(violation.message)
            else:
                self.logger.info(violation.message)
