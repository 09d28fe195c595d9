import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from modules.scoring import select_best_index
from modules.split_engine import Split, make_splitter
from modules.worker_pool import parallelize, resolve_n_jobs
from utils import constants
from utils.exceptions import ConfigurationError, DataValidationError, EstimatorFailure


@dataclass
class FoldResult:
    """Outputs of one fold: the fitted clone, its test score and timings (seconds)."""
    fold: int
    estimator: Any
    test_score: float
    fit_time: float
    score_time: float
    train_size: int
    test_size: int


@dataclass
class CrossValidateResult:
    """
    Per-fold outputs indexed by fold number.

    A fold that failed under the 'collect' error policy has no FoldResult; its
    failure is in `errors` and its score reads as NaN.
    """
    folds: List[Optional[FoldResult]]
    errors: Dict[int, EstimatorFailure] = field(default_factory=dict)

    @property
    def n_folds(self) -> int:
        return len(self.folds)

    @property
    def ok(self) -> bool:
        return not self.errors

    def _column(self, attr: str) -> np.ndarray:
        return np.array(
            [getattr(f, attr) if f is not None else math.nan for f in self.folds],
            dtype=float,
        )

    @property
    def test_score(self) -> np.ndarray:
        return self._column('test_score')

    @property
    def fit_time(self) -> np.ndarray:
        return self._column('fit_time')

    @property
    def score_time(self) -> np.ndarray:
        return self._column('score_time')

    @property
    def estimators(self) -> List[Any]:
        return [f.estimator if f is not None else None for f in self.folds]

    def mean_score(self) -> float:
        """Arithmetic mean of fold scores; NaN if any fold is missing."""
        if not self.folds:
            return math.nan
        return float(np.mean(self.test_score))

    def best_fold(self, lower_is_better: bool = False) -> Optional[int]:
        return select_best_index(self.test_score, lower_is_better)


def _allocate_scratch(X: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """One worker's scratch tables, large enough for any fold's test rows."""
    return np.empty_like(X), np.empty_like(y)


def _gather(source: np.ndarray, index: np.ndarray, scratch: Optional[np.ndarray] = None) -> np.ndarray:
    """Rows of `source` named by `index`, in that order; written into `scratch` when given."""
    if scratch is None:
        return source[index]
    out = scratch[:index.size]
    np.take(source, index, axis=0, out=out)
    return out


def _process_split(fold: int, split: Split, estimator: Any, X: np.ndarray, y: np.ndarray,
                   scorer: Callable, X_job: Optional[np.ndarray], y_job: Optional[np.ndarray]) -> FoldResult:
    n_train, n_test = split.train_index.size, split.test_index.size
    # Fitted estimators may keep their training arrays; only test rows use scratch
    X_train = _gather(X, split.train_index)
    y_train = _gather(y, split.train_index)
    X_test = _gather(X, split.test_index, X_job)
    y_test = _gather(y, split.test_index, y_job)

    fold_estimator = estimator.clone()

    t0 = time.perf_counter()
    try:
        fold_estimator.fit(X_train, y_train)
    except Exception as e:
        raise EstimatorFailure(f"Fold {fold}: fit failed: {e}", stage='fit', fold=fold) from e
    fit_time = time.perf_counter() - t0

    t0 = time.perf_counter()
    try:
        y_pred = fold_estimator.transform(X_test, y_test)
    except Exception as e:
        raise EstimatorFailure(f"Fold {fold}: transform failed: {e}", stage='transform', fold=fold) from e
    try:
        score = float(scorer(y_test, y_pred))
    except Exception as e:
        raise EstimatorFailure(f"Fold {fold}: scoring failed: {e}", stage='score', fold=fold) from e
    score_time = time.perf_counter() - t0

    return FoldResult(
        fold=fold,
        estimator=fold_estimator,
        test_score=score,
        fit_time=fit_time,
        score_time=score_time,
        train_size=n_train,
        test_size=n_test,
    )


def cross_validate(estimator: Any, X, y, groups=None, scorer: Callable = None, cv: Any = None,
                   n_jobs: Optional[int] = 1, *, on_error: str = constants.ON_ERROR_RAISE,
                   dispatch: str = constants.DISPATCH_STATIC, reuse_scratch: bool = True,
                   logger: Optional[logging.Logger] = None) -> CrossValidateResult:
    """
    Evaluate `estimator` by cross-validation.

    Each fold gathers its train/test rows, fits a fresh clone, predicts the test
    rows and scores them. Folds are partitioned into contiguous chunks, one per
    worker; a worker gathers every fold's test rows into one reused pair of
    scratch tables, while training rows always get fresh arrays. Each fold
    output is written into that fold's own slot.

    Args:
        estimator: Object exposing clone(), fit(X, y) and transform(X, y).
        X, y: Feature and target tables (same number of rows).
        groups: Forwarded to the splitter for group-aware strategies.
        scorer: Callable (y_true, y_pred) -> float.
        cv: Splitter, sklearn cross-validator, int fold count, or None.
        n_jobs: Fold workers; clamped to the number of folds.
        on_error: 'raise' aborts on the first failing fold (lowest fold index
            reported); 'collect' records failures in the result's `errors`.
        dispatch: Worker pool strategy, 'static' or 'dynamic'.
        reuse_scratch: Gather test rows into per-worker buffers instead of
            fresh arrays per fold.

    Returns:
        CrossValidateResult with one slot per fold.

    Raises:
        EstimatorFailure: a fold failed and on_error is 'raise'.
        DataValidationError: mismatched X/y or invalid split indices.
    """
    logger = logger or logging.getLogger(__name__)
    if scorer is None:
        raise ConfigurationError("cross_validate requires a scorer (y_true, y_pred) -> float")
    if on_error not in constants.ERROR_POLICIES:
        raise ConfigurationError(f"on_error must be one of {list(constants.ERROR_POLICIES)}, got '{on_error}'")

    X = np.asarray(X)
    y = np.asarray(y)
    if X.shape[0] != y.shape[0]:
        raise DataValidationError(f"X and y length mismatch: {X.shape[0]} vs {y.shape[0]}")
    n_samples = X.shape[0]

    splitter = make_splitter(cv, logger=logger)
    n_splits = splitter.get_n_splits(X, y, groups)
    splits = list(splitter.split(X, y) if groups is None else splitter.split(X, y, groups=groups))
    if len(splits) != n_splits:
        raise DataValidationError(f"Splitter announced {n_splits} folds but produced {len(splits)}")
    for fold, split in enumerate(splits):
        split.validate(n_samples, fold)

    n_workers = min(resolve_n_jobs(n_jobs), max(n_splits, 1))
    folds: List[Optional[FoldResult]] = [None] * n_splits
    failures: List[Optional[EstimatorFailure]] = [None] * n_splits

    def run_chunk(worker_id: int, start: int, end: int) -> None:
        X_job, y_job = _allocate_scratch(X, y) if reuse_scratch else (None, None)
        for i in range(start, end):
            try:
                folds[i] = _process_split(i, splits[i], estimator, X, y, scorer, X_job, y_job)
            except EstimatorFailure as e:
                if on_error == constants.ON_ERROR_RAISE:
                    raise
                failures[i] = e

    outcomes = parallelize(n_workers, n_splits, run_chunk, dispatch=dispatch, logger=logger)

    # Chunks are contiguous and in range order, so the first failed outcome
    # holds the lowest failing fold.
    for outcome in outcomes:
        if outcome.error is not None:
            raise outcome.error

    result = CrossValidateResult(
        folds=folds,
        errors={i: e for i, e in enumerate(failures) if e is not None},
    )
    for i, e in result.errors.items():
        logger.warning(f"Fold {i} failed ({e.stage}): {e}")
    logger.debug(
        f"Cross-validated {n_splits} folds on {n_workers} worker(s): "
        f"mean score {result.mean_score():.6g}"
    )
    return result
