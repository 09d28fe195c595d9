"""
Scoring Module
==============

Responsibility:
- Comparison policy (higher-is-better / lower-is-better, first-best tie-break).
- Lookup of named scikit-learn metrics for configuration-driven searches.
"""

from .comparison import is_better, select_best_index
from .scorers import ScorerSpec, get_scorer, get_available_scorers

__all__ = ['is_better', 'select_best_index', 'ScorerSpec', 'get_scorer', 'get_available_scorers']
