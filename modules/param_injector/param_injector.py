"""
Parameter injection.

Bridges untyped assignments (name -> value) onto estimators without runtime
reflection. An estimator either

* exposes a ``set_parameter(name, value)`` capability, or
* declares its tunable parameters as ``parameter_types = {name: type}``
  (or is registered through :func:`register_parameters`), from which a table
  of typed setters is built once per class.
"""

import threading
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Mapping

import numpy as np

from utils.exceptions import ConfigurationError

_REGISTRY: Dict[type, Dict[str, type]] = {}
_REGISTRY_LOCK = threading.Lock()


@dataclass(frozen=True)
class ParameterSetter:
    """Typed setter for one tunable attribute."""
    name: str
    declared_type: type
    owner: str

    def coerce(self, value: Any) -> Any:
        declared = self.declared_type
        # bool is an int subclass; never let it pass as a number
        if isinstance(value, (bool, np.bool_)) and declared is not bool:
            raise self._mismatch(value)

        if declared is float:
            if isinstance(value, (int, float, np.integer, np.floating)):
                return float(value)
        elif declared is int:
            if isinstance(value, (int, np.integer)):
                return int(value)
        elif declared is bool:
            if isinstance(value, (bool, np.bool_)):
                return bool(value)
        elif declared is str:
            if isinstance(value, str):
                return value
        elif isinstance(value, declared):
            return value
        raise self._mismatch(value)

    def _mismatch(self, value: Any) -> ConfigurationError:
        return ConfigurationError(
            f"failed to set {self.owner}.{self.name} ({self.declared_type.__name__}) "
            f"to {value!r} ({type(value).__name__})"
        )


def register_parameters(cls: type, parameter_types: Mapping[str, type]) -> None:
    """Declare the tunable parameters of a class that cannot carry ``parameter_types`` itself."""
    with _REGISTRY_LOCK:
        _REGISTRY[cls] = dict(parameter_types)
    setter_table.cache_clear()


@lru_cache(maxsize=None)
def setter_table(cls: type) -> Dict[str, ParameterSetter]:
    """Build (once per class) the table of typed setters for `cls`."""
    with _REGISTRY_LOCK:
        declared = _REGISTRY.get(cls)
    if declared is None:
        declared = getattr(cls, 'parameter_types', None)
    if not declared:
        raise ConfigurationError(
            f"{cls.__name__} declares no tunable parameters; define 'parameter_types' "
            f"or a set_parameter(name, value) method"
        )
    return {
        name: ParameterSetter(name=name, declared_type=declared_type, owner=cls.__name__)
        for name, declared_type in declared.items()
    }


def set_params(estimator: Any, assignment: Mapping[str, Any]) -> Any:
    """
    Apply `assignment` onto `estimator` in place and return it.

    Raises:
        ConfigurationError: unknown parameter name, or a value whose type is
            incompatible with the declared parameter type.
    """
    if not assignment:
        return estimator

    set_parameter = getattr(estimator, 'set_parameter', None)
    if callable(set_parameter):
        for name, value in assignment.items():
            set_parameter(name, value)
        return estimator

    table = setter_table(type(estimator))
    resolved = []
    for name, value in assignment.items():
        setter = table.get(name)
        if setter is None:
            raise ConfigurationError(
                f"no parameter {name} in {type(estimator).__name__}. "
                f"Available: {sorted(table)}"
            )
        resolved.append((setter, setter.coerce(value)))

    # Everything validated; nothing is written on failure
    for setter, value in resolved:
        setattr(estimator, setter.name, value)
    return estimator
