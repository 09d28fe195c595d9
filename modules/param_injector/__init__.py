"""
Parameter Injector Module
=========================

Responsibility:
- Applying one parameter assignment onto an estimator by name.
- Typed setter tables built once per estimator class.
- Numeric widening (int / float32 -> float) and loud failure on mismatch.
"""

from .param_injector import set_params, register_parameters, setter_table, ParameterSetter

__all__ = ['set_params', 'register_parameters', 'setter_table', 'ParameterSetter']
