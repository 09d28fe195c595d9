"""
Parameter Grid Module
=====================

Responsibility:
- Validation of parameter grids (name -> candidate values).
- Expansion of a grid into the full cross product of assignments.
- Cheap assignment counting for resource guardrails.
"""

from .param_grid import expand_param_grid, count_assignments, validate_param_grid

__all__ = ['expand_param_grid', 'count_assignments', 'validate_param_grid']
