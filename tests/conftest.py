"""Shared fixtures and estimator doubles for the search engine tests."""

import logging
from unittest.mock import MagicMock

import numpy as np
import pytest


class ThresholdEstimator:
    """
    Least-squares slope through the origin on the first feature.
    Only alpha=1.0 with beta="y" fits exactly; any other assignment is biased.
    """

    parameter_types = {"alpha": float, "beta": str}

    def __init__(self, alpha=0.1, beta="x"):
        self.alpha = alpha
        self.beta = beta
        self.coef_ = None

    def clone(self):
        return ThresholdEstimator(alpha=self.alpha, beta=self.beta)

    def fit(self, X, y):
        x = np.asarray(X, dtype=float)[:, 0]
        self.coef_ = float(np.dot(x, y) / np.dot(x, x))
        return self

    def transform(self, X, y=None):
        pred = self.coef_ * np.asarray(X, dtype=float)[:, 0]
        if self.alpha == 1.0 and self.beta == "y":
            return pred
        return pred + 0.5


class ConstantEstimator:
    """Predicts `level` everywhere; can be told to fail at one stage."""

    parameter_types = {"level": float, "tag": str, "fail_stage": str}

    def __init__(self, level=0.0, tag="a", fail_stage="none"):
        self.level = level
        self.tag = tag
        self.fail_stage = fail_stage

    def clone(self):
        return ConstantEstimator(level=self.level, tag=self.tag, fail_stage=self.fail_stage)

    def fit(self, X, y):
        if self.fail_stage == "fit":
            raise RuntimeError("fit exploded")
        return self

    def transform(self, X, y=None):
        if self.fail_stage == "transform":
            raise RuntimeError("transform exploded")
        return np.full(len(X), self.level)


def exact_match_scorer(y_true, y_pred):
    return 1.0 if np.allclose(y_true, y_pred) else 0.0


def level_scorer(y_true, y_pred):
    """Scores a ConstantEstimator by the level it predicts."""
    return float(np.mean(y_pred))


@pytest.fixture
def mock_logger():
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def linear_data():
    """y = 2 * x0 on 24 rows; the second feature is a constant column."""
    x0 = np.arange(1, 25, dtype=float)
    X = np.column_stack([x0, np.ones_like(x0)])
    y = 2.0 * x0
    return X, y


@pytest.fixture
def constant_data():
    return np.zeros((12, 2)), np.zeros(12)


@pytest.fixture
def regression_data():
    rng = np.random.RandomState(0)
    X = rng.normal(size=(60, 4))
    y = X @ np.array([1.5, -2.0, 0.5, 0.0]) + rng.normal(scale=0.3, size=60)
    return X, y
