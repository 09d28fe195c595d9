"""
Grid Search Engine
==================

Responsibility:
- Exhaustive hyperparameter search over a parameter grid.
- Assignment-parallel evaluation writing into a pre-allocated result arena.
- Deterministic best selection (enumeration order, first-best tie-break).
- Configuration-driven construction of searches.
"""

from .grid_search_engine import GridSearchCV, GridSearchResult, AssignmentResult

__all__ = ['GridSearchCV', 'GridSearchResult', 'AssignmentResult']
