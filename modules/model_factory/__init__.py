"""
Model Factory Module
====================

Responsibility:
- Adapting scikit-learn estimators to the clone / fit / transform contract.
- Name-based creation of supported estimators with strict parameter injection.
"""

from .model_factory import EstimatorFactory, SklearnEstimator

__all__ = ['EstimatorFactory', 'SklearnEstimator']
