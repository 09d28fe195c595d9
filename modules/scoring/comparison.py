"""Comparison policy for ranking scores."""

import math
from typing import Iterable, Optional


def is_better(score: float, reference: float, lower_is_better: bool = False) -> bool:
    """Strict improvement of `score` over `reference`; NaN never improves."""
    if math.isnan(score):
        return False
    if math.isnan(reference):
        return True
    if lower_is_better:
        return score < reference
    return score > reference


def select_best_index(scores: Iterable[float], lower_is_better: bool = False) -> Optional[int]:
    """
    Index of the best score, scanning in order.

    Only a strict improvement replaces the current best, so among equal scores
    the first one wins. NaN scores are skipped; returns None when no finite
    score exists.
    """
    best: Optional[int] = None
    best_score = math.nan
    for i, score in enumerate(scores):
        score = float(score)
        if math.isnan(score):
            continue
        if best is None or is_better(score, best_score, lower_is_better):
            best, best_score = i, score
    return best
