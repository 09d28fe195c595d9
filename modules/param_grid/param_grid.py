from collections.abc import Mapping, Sequence
from typing import Any, Dict, List, Optional

import numpy as np

from utils.exceptions import SchemaError

ParamGrid = Mapping
ParamAssignment = Dict[str, Any]


def _candidate_list(name: str, candidates: Any) -> List[Any]:
    """Normalize one candidate sequence to a list, rejecting malformed input."""
    if isinstance(candidates, np.ndarray):
        candidates = candidates.tolist()
    if isinstance(candidates, (str, bytes)) or not isinstance(candidates, Sequence):
        raise SchemaError(
            f"Candidates for parameter '{name}' must be a list of values, "
            f"got {type(candidates).__name__}"
        )
    values = list(candidates)
    if not values:
        raise SchemaError(f"Parameter '{name}' has no candidate values")

    seen: List[Any] = []
    for value in values:
        if value in seen:
            raise SchemaError(f"Parameter '{name}' lists candidate {value!r} more than once")
        seen.append(value)
    return values


def validate_param_grid(param_grid: ParamGrid) -> None:
    """Raise SchemaError unless `param_grid` is a well-formed name -> candidates mapping."""
    if not isinstance(param_grid, Mapping):
        raise SchemaError(f"Parameter grid must be a mapping, got {type(param_grid).__name__}")
    for name, candidates in param_grid.items():
        if not isinstance(name, str) or not name:
            raise SchemaError(f"Parameter names must be non-empty strings, got {name!r}")
        _candidate_list(name, candidates)


def expand_param_grid(param_grid: Optional[ParamGrid]) -> List[ParamAssignment]:
    """
    Expand a parameter grid into every assignment of its cross product.

    The working set starts as the single empty assignment and is folded one
    parameter at a time: each partial assignment is copied once per candidate
    of the next parameter. The last parameter therefore varies fastest.

    A missing grid (None) yields no assignments; an empty grid yields exactly
    one, the empty assignment.
    """
    if param_grid is None:
        return []
    validate_param_grid(param_grid)

    assignments: List[ParamAssignment] = [{}]
    for name, candidates in param_grid.items():
        values = _candidate_list(name, candidates)
        assignments = [
            {**partial, name: value}
            for partial in assignments
            for value in values
        ]
    return assignments


def count_assignments(param_grid: Optional[ParamGrid]) -> int:
    """Number of assignments `expand_param_grid` would produce, without building them."""
    if param_grid is None:
        return 0
    validate_param_grid(param_grid)
    total = 1
    for name, candidates in param_grid.items():
        total *= len(_candidate_list(name, candidates))
    return total
