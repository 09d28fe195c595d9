"""
Split contracts and splitter adapters.

Splitters are external strategies: this module only fixes the shape they must
yield (a :class:`Split` of index arrays into the original dataset) and adapts
scikit-learn cross-validators to that shape. Index generation itself is left
to scikit-learn.
"""
import copy
import logging
from dataclasses import dataclass
from typing import Any, Iterator, Optional

import numpy as np
from sklearn.model_selection import KFold

from utils import constants
from utils.exceptions import ConfigurationError, DataValidationError


@dataclass(frozen=True)
class Split:
    """
    A single train/test partition (fold).

    Notes
    -----
    - Indices reference rows of the *original* X/y, in the order the rows are
      gathered for training and testing.
    - Train and test indices are disjoint; together they need not cover
      every sample.
    """
    train_index: np.ndarray
    test_index: np.ndarray

    @classmethod
    def from_indices(cls, train_index, test_index) -> "Split":
        return cls(
            train_index=np.asarray(train_index, dtype=np.intp).ravel(),
            test_index=np.asarray(test_index, dtype=np.intp).ravel(),
        )

    def validate(self, n_samples: int, fold: int) -> None:
        """Raise DataValidationError if the indices are out of range or overlap."""
        for label, index in (('train', self.train_index), ('test', self.test_index)):
            if index.size and (index.min() < 0 or index.max() >= n_samples):
                raise DataValidationError(
                    f"Fold {fold}: {label} indices fall outside [0, {n_samples})", fold=fold
                )
        overlap = np.intersect1d(self.train_index, self.test_index)
        if overlap.size:
            raise DataValidationError(
                f"Fold {fold}: {overlap.size} sample(s) appear in both train and test "
                f"(first: {int(overlap[0])})", fold=fold
            )


class BaseSplitter:
    """Splitter protocol: fold count, a restartable sequence of Splits, and cloning."""

    def get_n_splits(self, X=None, y=None, groups=None) -> int:
        raise NotImplementedError("Subclasses must implement get_n_splits.")

    def split(self, X, y=None, groups=None) -> Iterator[Split]:
        raise NotImplementedError("Subclasses must implement split.")

    def clone(self) -> "BaseSplitter":
        return copy.deepcopy(self)


class SklearnSplitter(BaseSplitter):
    """
    Adapts any scikit-learn style cross-validator (KFold, ShuffleSplit, ...).
    Folds yielded as (train, test) tuples are normalized into Split.
    """

    def __init__(self, cv: Any):
        self.cv = cv

    def get_n_splits(self, X=None, y=None, groups=None) -> int:
        return int(self.cv.get_n_splits(X, y, groups))

    def split(self, X, y=None, groups=None) -> Iterator[Split]:
        if groups is None:
            folds = self.cv.split(X, y)
        else:
            folds = self.cv.split(X, y, groups)
        for fold in folds:
            yield fold if isinstance(fold, Split) else Split.from_indices(*fold)

    def __repr__(self) -> str:
        return f"SklearnSplitter({self.cv!r})"


def make_splitter(cv: Any = None, *, seed: Optional[int] = constants.DEFAULT_CV_SEED,
                  logger: Optional[logging.Logger] = None) -> BaseSplitter:
    """
    Resolve a `cv` argument into a splitter.

    - None: shuffled K-Fold with the default number of splits and `seed`.
    - int: unshuffled K-Fold with that many splits.
    - BaseSplitter: returned as is.
    - anything with split() and get_n_splits(): wrapped in SklearnSplitter.
    """
    logger = logger or logging.getLogger(__name__)
    if cv is None:
        logger.debug(f"No splitter given; using {constants.DEFAULT_CV_SPLITS}-fold shuffled KFold.")
        return SklearnSplitter(KFold(
            n_splits=constants.DEFAULT_CV_SPLITS,
            shuffle=constants.DEFAULT_CV_SHUFFLE,
            random_state=seed,
        ))
    if isinstance(cv, BaseSplitter):
        return cv
    if isinstance(cv, (int, np.integer)) and not isinstance(cv, bool):
        return SklearnSplitter(KFold(n_splits=int(cv)))
    if hasattr(cv, 'split') and hasattr(cv, 'get_n_splits'):
        return SklearnSplitter(cv)
    raise ConfigurationError(
        f"Cannot use {type(cv).__name__} as a splitter; expected None, an int, "
        f"or an object with split() and get_n_splits()"
    )
