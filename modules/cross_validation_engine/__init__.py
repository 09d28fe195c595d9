"""
Cross-Validation Engine
=======================

Responsibility:
- Fold-parallel evaluation of one estimator over a splitter's folds.
- Per-worker scratch reuse for gathered train/test rows.
- Fit/transform/score failure reporting with fold context.
- Fold consistency summaries.
"""

from .cross_validation_engine import cross_validate, CrossValidateResult, FoldResult
from .cv_analysis import fold_table, summarize_folds

__all__ = ['cross_validate', 'CrossValidateResult', 'FoldResult', 'fold_table', 'summarize_folds']
