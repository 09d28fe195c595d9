"""
Named scorer lookup.

Scorers are plain callables ``(y_true, y_pred) -> float``. This module does not
implement any metric; it maps configuration names onto scikit-learn metric
functions together with their natural ranking direction.
"""

from typing import Callable, Dict, List, NamedTuple

from sklearn.metrics import (
    accuracy_score,
    balanced_accuracy_score,
    explained_variance_score,
    mean_absolute_error,
    mean_squared_error,
    median_absolute_error,
    r2_score,
)

from utils.exceptions import ConfigurationError

Scorer = Callable[..., float]


class ScorerSpec(NamedTuple):
    name: str
    func: Scorer
    lower_is_better: bool


_SCORERS: Dict[str, ScorerSpec] = {
    # Regression (higher is better)
    'r2': ScorerSpec('r2', r2_score, False),
    'explained_variance': ScorerSpec('explained_variance', explained_variance_score, False),
    # Regression errors (lower is better)
    'mean_squared_error': ScorerSpec('mean_squared_error', mean_squared_error, True),
    'mean_absolute_error': ScorerSpec('mean_absolute_error', mean_absolute_error, True),
    'median_absolute_error': ScorerSpec('median_absolute_error', median_absolute_error, True),
    # Classification
    'accuracy': ScorerSpec('accuracy', accuracy_score, False),
    'balanced_accuracy': ScorerSpec('balanced_accuracy', balanced_accuracy_score, False),
}


def get_scorer(name: str) -> ScorerSpec:
    """Look up a scorer by name."""
    try:
        return _SCORERS[name]
    except KeyError:
        raise ConfigurationError(f"Unknown scorer: {name}. Available: {get_available_scorers()}") from None


def get_available_scorers() -> List[str]:
    return sorted(_SCORERS)
