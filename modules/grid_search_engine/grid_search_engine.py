import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import pandas as pd
from sklearn.model_selection import KFold

from modules.cross_validation_engine import CrossValidateResult, cross_validate, summarize_folds
from modules.model_factory import EstimatorFactory
from modules.param_grid import expand_param_grid
from modules.param_injector import set_params
from modules.scoring import get_scorer, select_best_index
from modules.split_engine import make_splitter
from modules.worker_pool import parallelize, resolve_n_jobs
from utils import constants
from utils.error_handling import with_context
from utils.exceptions import (
    ConfigurationError,
    DataValidationError,
    ModelSelectionException,
    NotFittedError,
    SchemaError,
)
from utils.resource_limits import ResourceLimitsValidator


@dataclass
class AssignmentResult:
    """One slot of the search arena, owned by exactly one worker while it is filled."""
    index: int
    params: Dict[str, Any]
    score: float = math.nan
    estimator: Any = None
    cv_result: Optional[CrossValidateResult] = None
    error: Optional[ModelSelectionException] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not math.isnan(self.score)


@dataclass
class GridSearchResult:
    """
    Outcome of a grid search.

    `cv_results` is column oriented: one column per parameter plus
    ``"score"``, one row per assignment in enumeration order.
    """
    assignments: List[AssignmentResult]
    param_names: List[str]
    lower_is_better: bool = False
    best_index: Optional[int] = None
    errors: Dict[int, ModelSelectionException] = field(default_factory=dict)

    @property
    def cv_results(self) -> Dict[str, List[Any]]:
        table = {name: [a.params[name] for a in self.assignments] for name in self.param_names}
        table[constants.SCORE_COLUMN] = [a.score for a in self.assignments]
        return table

    @property
    def best(self) -> Optional[AssignmentResult]:
        if self.best_index is None:
            return None
        return self.assignments[self.best_index]

    @property
    def best_params(self) -> Optional[Dict[str, Any]]:
        return dict(self.best.params) if self.best is not None else None

    @property
    def best_score(self) -> float:
        return self.best.score if self.best is not None else math.nan

    @property
    def best_estimator(self) -> Any:
        return self.best.estimator if self.best is not None else None

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.cv_results, columns=[*self.param_names, constants.SCORE_COLUMN])


class GridSearchCV:
    """
    Exhaustive search over a parameter grid, scored by cross-validation.

    Every assignment of the grid is injected into a fresh clone of `estimator`
    and evaluated by k-fold cross-validation; its score is the mean fold
    score. Assignments are spread over `n_jobs` workers (folds inside one
    assignment over `cv_n_jobs`). Each worker writes only to the arena slots
    of its own index range, and the best assignment is picked afterwards by a
    sequential scan in enumeration order, so the answer does not depend on
    the degree of parallelism. Among equal scores the first assignment wins.

    The fitted search is itself an estimator (clone / fit / transform) and
    can be nested inside :func:`cross_validate`.
    """

    def __init__(self, estimator: Any, param_grid: Optional[Dict[str, Any]], scorer: Callable,
                 cv: Any = None, n_jobs: Optional[int] = 1, lower_is_better: bool = False, *,
                 cv_n_jobs: Optional[int] = 1, on_error: str = constants.ON_ERROR_RAISE,
                 dispatch: str = constants.DISPATCH_STATIC, reuse_scratch: bool = True,
                 verbose: bool = False, logger: Optional[logging.Logger] = None):
        if on_error not in constants.ERROR_POLICIES:
            raise ConfigurationError(
                f"on_error must be one of {list(constants.ERROR_POLICIES)}, got '{on_error}'"
            )
        if dispatch not in constants.DISPATCH_STRATEGIES:
            raise ConfigurationError(
                f"dispatch must be one of {list(constants.DISPATCH_STRATEGIES)}, got '{dispatch}'"
            )
        if not callable(scorer):
            raise ConfigurationError(f"scorer must be callable, got {type(scorer).__name__}")

        self.estimator = self._as_estimator(estimator)
        self.param_grid = param_grid
        self.scorer = scorer
        self.cv = cv
        self.n_jobs = n_jobs
        self.lower_is_better = lower_is_better
        self.cv_n_jobs = cv_n_jobs
        self.on_error = on_error
        self.dispatch = dispatch
        self.reuse_scratch = reuse_scratch
        self.verbose = verbose
        self.logger = logger or logging.getLogger(__name__)

        self.result_: Optional[GridSearchResult] = None

    @staticmethod
    def _as_estimator(estimator: Any) -> Any:
        # Plain scikit-learn models lack clone(); wrap them
        if hasattr(estimator, 'clone') and hasattr(estimator, 'fit') and hasattr(estimator, 'transform'):
            return estimator
        return EstimatorFactory.wrap(estimator)

    # ------------------------------------------------------------------
    # Construction from configuration
    # ------------------------------------------------------------------

    @classmethod
    def from_config(cls, config: Dict[str, Any], logger: Optional[logging.Logger] = None) -> "GridSearchCV":
        """
        Build a search from a validated configuration dictionary.

        `lower_is_better` defaults to the configured scorer's natural direction.
        """
        estimator_cfg = config['estimator']
        estimator = EstimatorFactory.create(estimator_cfg['model'], estimator_cfg.get('params', {}))
        scorer_spec = get_scorer(config.get('scoring', 'r2'))

        cv_cfg = config.get('cv', {})
        shuffle = cv_cfg.get('shuffle', constants.DEFAULT_CV_SHUFFLE)
        cv = KFold(
            n_splits=cv_cfg.get('n_splits', constants.DEFAULT_CV_SPLITS),
            shuffle=shuffle,
            random_state=cv_cfg.get('seed', constants.DEFAULT_CV_SEED) if shuffle else None,
        )

        search_cfg = config.get('search', {})
        lower_is_better = search_cfg.get('lower_is_better')
        if lower_is_better is None:
            lower_is_better = scorer_spec.lower_is_better

        return cls(
            estimator,
            config.get('param_grid', {}),
            scorer_spec.func,
            cv=cv,
            n_jobs=search_cfg.get('n_jobs', 1),
            lower_is_better=lower_is_better,
            cv_n_jobs=search_cfg.get('cv_n_jobs', 1),
            on_error=search_cfg.get('on_error', constants.ON_ERROR_RAISE),
            dispatch=search_cfg.get('dispatch', constants.DISPATCH_STATIC),
            reuse_scratch=search_cfg.get('reuse_scratch', True),
            verbose=search_cfg.get('verbose', False),
            logger=logger,
        )

    # ------------------------------------------------------------------
    # Estimator contract
    # ------------------------------------------------------------------

    def clone(self) -> "GridSearchCV":
        """Unfitted copy with the same settings."""
        cv = self.cv.clone() if hasattr(self.cv, 'clone') else self.cv
        return GridSearchCV(
            self.estimator.clone(),
            self.param_grid,
            self.scorer,
            cv=cv,
            n_jobs=self.n_jobs,
            lower_is_better=self.lower_is_better,
            cv_n_jobs=self.cv_n_jobs,
            on_error=self.on_error,
            dispatch=self.dispatch,
            reuse_scratch=self.reuse_scratch,
            verbose=self.verbose,
            logger=self.logger,
        )

    def fit(self, X, y, groups=None) -> "GridSearchCV":
        """
        Run the search.

        Raises:
            SchemaError: malformed grid, or a parameter named like the score column.
            ConfigurationError, EstimatorFailure: first failing assignment (in
                enumeration order) when on_error is 'raise', with its index
                and params attached.
            DataValidationError: dataset too small for the splitter.
        """
        assignments = expand_param_grid(self.param_grid)
        param_names = list(self.param_grid) if self.param_grid else []
        if constants.SCORE_COLUMN in param_names:
            raise SchemaError(
                f"Parameter name '{constants.SCORE_COLUMN}' collides with the score column"
            )

        X = np.asarray(X)
        y = np.asarray(y)
        if X.shape[0] != y.shape[0]:
            raise DataValidationError(f"X and y length mismatch: {X.shape[0]} vs {y.shape[0]}")

        splitter = make_splitter(self.cv, logger=self.logger)
        n_splits = splitter.get_n_splits(X, y, groups)
        n_workers = min(resolve_n_jobs(self.n_jobs), max(len(assignments), 1))
        fold_workers = min(resolve_n_jobs(self.cv_n_jobs), max(n_splits, 1))
        self._validate_dataset(X, y, n_splits, n_workers * fold_workers)

        slots = [AssignmentResult(index=i, params=params) for i, params in enumerate(assignments)]
        self.logger.info(
            f"Grid search: {len(slots)} assignments x {n_splits} folds "
            f"on {n_workers} worker(s) ({self.dispatch}), {fold_workers} fold worker(s) each."
        )

        def run_chunk(worker_id: int, start: int, end: int) -> None:
            for i in range(start, end):
                self._evaluate(slots[i], splitter, X, y, groups)

        t0 = time.perf_counter()
        outcomes = parallelize(n_workers, len(slots), run_chunk, dispatch=self.dispatch, logger=self.logger)

        # Ranges are contiguous and in order: the first failed outcome holds
        # the lowest failing assignment.
        for outcome in outcomes:
            if outcome.error is not None:
                self.logger.error(f"Grid search aborted: {outcome.error}")
                raise outcome.error

        result = GridSearchResult(
            assignments=slots,
            param_names=param_names,
            lower_is_better=self.lower_is_better,
            errors={slot.index: slot.error for slot in slots if slot.error is not None},
        )
        result.best_index = select_best_index(
            [slot.score for slot in slots], self.lower_is_better
        )
        self.result_ = result
        self._log_summary(result, time.perf_counter() - t0)
        return self

    def _evaluate(self, slot: AssignmentResult, splitter, X: np.ndarray, y: np.ndarray, groups) -> None:
        """Fill one arena slot: inject, cross-validate, aggregate."""
        try:
            estimator = set_params(self.estimator.clone(), slot.params)
            cv_result = cross_validate(
                estimator, X, y, groups,
                scorer=self.scorer,
                cv=splitter.clone(),
                n_jobs=self.cv_n_jobs,
                on_error=self.on_error,
                dispatch=self.dispatch,
                reuse_scratch=self.reuse_scratch,
                logger=self.logger,
            )
        except ModelSelectionException as e:
            error = with_context(
                e, f"Assignment {slot.index} {slot.params}",
                assignment_index=slot.index, params=slot.params,
            )
            if self.on_error == constants.ON_ERROR_RAISE:
                raise error from e
            slot.error = error
            self.logger.warning(str(error))
            return

        slot.cv_result = cv_result
        if cv_result.errors:
            fold, failure = next(iter(cv_result.errors.items()))
            slot.error = with_context(
                failure, f"Assignment {slot.index} {slot.params}",
                assignment_index=slot.index, params=slot.params, fold=fold,
            )
            self.logger.warning(str(slot.error))
            return

        slot.score = cv_result.mean_score()
        best_fold = cv_result.best_fold(self.lower_is_better)
        slot.estimator = cv_result.folds[best_fold].estimator if best_fold is not None else None

        log = self.logger.info if self.verbose else self.logger.debug
        log(f"[{slot.index + 1}] {slot.params} -> score {slot.score:.6g}")

    def _validate_dataset(self, X: np.ndarray, y: np.ndarray, n_splits: int, n_workers: int) -> None:
        n_columns = (X.shape[1] if X.ndim > 1 else 1) + (y.shape[1] if y.ndim > 1 else 1)
        validator = ResourceLimitsValidator(self.logger)
        ok, violations = validator.validate_dataset(
            X.shape[0], n_columns, n_splits,
            n_workers=n_workers if self.reuse_scratch else 0,
            itemsize=max(X.itemsize, y.itemsize),
        )
        if not ok:
            errors = [v.message for v in violations if v.severity == 'error']
            raise DataValidationError("; ".join(errors))

    def _log_summary(self, result: GridSearchResult, elapsed: float) -> None:
        if result.errors:
            self.logger.warning(f"{len(result.errors)} of {len(result.assignments)} assignments failed.")
        if result.best_index is None:
            self.logger.warning("No assignment produced a score; no best estimator selected.")
            return
        self.logger.info(
            f"Best assignment [{result.best_index}] {result.best_params} "
            f"score {result.best_score:.6g} ({elapsed:.2f}s)"
        )
        if self.verbose and result.best.cv_result is not None:
            cv_result = result.best.cv_result
            summary = summarize_folds({
                'test_score': cv_result.test_score,
                'fit_time': cv_result.fit_time,
                'score_time': cv_result.score_time,
            })
            self.logger.info(f"Fold summary of best assignment:\n{summary.to_string(index=False)}")

    # ------------------------------------------------------------------
    # Fitted attributes
    # ------------------------------------------------------------------

    def _check_fitted(self) -> GridSearchResult:
        if self.result_ is None:
            raise NotFittedError("GridSearchCV is not fitted yet; call fit() first")
        return self.result_

    @property
    def cv_results_(self) -> Dict[str, List[Any]]:
        return self._check_fitted().cv_results

    @property
    def best_index_(self) -> Optional[int]:
        return self._check_fitted().best_index

    @property
    def best_params_(self) -> Optional[Dict[str, Any]]:
        return self._check_fitted().best_params

    @property
    def best_score_(self) -> float:
        return self._check_fitted().best_score

    @property
    def best_estimator_(self) -> Any:
        return self._check_fitted().best_estimator

    @property
    def errors_(self) -> Dict[int, ModelSelectionException]:
        return self._check_fitted().errors

    def transform(self, X, y=None):
        """Predictions of the best assignment's representative estimator."""
        best = self.best_estimator_
        if best is None:
            raise NotFittedError("GridSearchCV found no successful assignment to predict with")
        return best.transform(X, y)

    def predict(self, X):
        return self.transform(X)

    def __repr__(self) -> str:
        return (
            f"GridSearchCV(estimator={self.estimator!r}, param_grid={self.param_grid!r}, "
            f"n_jobs={self.n_jobs}, lower_is_better={self.lower_is_better})"
        )
