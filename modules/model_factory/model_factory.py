from typing import Dict, Any, List, Optional

import numpy as np
from sklearn.base import clone as sk_clone
from sklearn.ensemble import (
    ExtraTreesRegressor,
    RandomForestRegressor,
    GradientBoostingRegressor,
    RandomForestClassifier,
)
from sklearn.neighbors import KNeighborsRegressor, KNeighborsClassifier
from sklearn.linear_model import (
    LinearRegression,
    Ridge,
    Lasso,
    ElasticNet,
    LogisticRegression,
)
from sklearn.svm import SVR, SVC
from sklearn.tree import DecisionTreeRegressor, DecisionTreeClassifier
from sklearn.utils._param_validation import InvalidParameterError, validate_parameter_constraints

from modules.param_injector import set_params
from utils.exceptions import ConfigurationError


class SklearnEstimator:
    """
    Adapts a scikit-learn estimator to the clone / fit / transform contract.

    - clone() goes through sklearn.base.clone, so clones share no fitted state.
    - transform() returns predict() output shaped like the targets it was given.
    - set_parameter() validates names against get_params() and values against
      the model's declared parameter constraints before setting.
    """

    def __init__(self, model: Any):
        self.model = model

    def clone(self) -> "SklearnEstimator":
        return SklearnEstimator(sk_clone(self.model))

    def fit(self, X, y) -> "SklearnEstimator":
        y = np.asarray(y)
        # Single-column target tables are passed as vectors
        if y.ndim == 2 and y.shape[1] == 1:
            y = y.ravel()
        self.model.fit(X, y)
        return self

    def transform(self, X, y=None) -> np.ndarray:
        predictions = np.asarray(self.model.predict(X))
        if y is not None:
            target_shape = np.shape(y)
            if predictions.shape != target_shape and predictions.size == int(np.prod(target_shape)):
                predictions = predictions.reshape(target_shape)
        return predictions

    def set_parameter(self, name: str, value: Any) -> None:
        valid = self.model.get_params(deep=True)
        if name not in valid:
            raise ConfigurationError(
                f"no parameter {name} in {type(self.model).__name__}. Available: {sorted(valid)}"
            )
        constraints = getattr(self.model, '_parameter_constraints', {})
        if name in constraints:
            try:
                validate_parameter_constraints(
                    {name: constraints[name]}, {name: value}, caller_name=type(self.model).__name__
                )
            except InvalidParameterError as e:
                raise ConfigurationError(
                    f"invalid value {value!r} for {type(self.model).__name__}.{name}: {e}"
                ) from e
        self.model.set_params(**{name: value})

    def __repr__(self) -> str:
        return f"SklearnEstimator({self.model!r})"


class EstimatorFactory:
    """
    Factory for creating scikit-learn estimators wrapped for the search engine.
    Parameters are injected strictly: unknown names fail instead of being dropped.
    """

    REGRESSORS = {
        'LinearRegression': LinearRegression,
        'Ridge': Ridge,
        'Lasso': Lasso,
        'ElasticNet': ElasticNet,
        'KNeighborsRegressor': KNeighborsRegressor,
        'DecisionTreeRegressor': DecisionTreeRegressor,
        'ExtraTreesRegressor': ExtraTreesRegressor,
        'RandomForestRegressor': RandomForestRegressor,
        'GradientBoostingRegressor': GradientBoostingRegressor,
        'SVR': SVR,
    }

    CLASSIFIERS = {
        'LogisticRegression': LogisticRegression,
        'KNeighborsClassifier': KNeighborsClassifier,
        'DecisionTreeClassifier': DecisionTreeClassifier,
        'RandomForestClassifier': RandomForestClassifier,
        'SVC': SVC,
    }

    @classmethod
    def create(cls, model_name: str, params: Optional[Dict[str, Any]] = None) -> SklearnEstimator:
        """
        Create and return a wrapped, unfitted estimator.
        """
        model_class = cls.REGRESSORS.get(model_name) or cls.CLASSIFIERS.get(model_name)
        if model_class is None:
            raise ConfigurationError(
                f"Unknown model name: {model_name}. Available: {cls.get_available_models()}"
            )
        estimator = SklearnEstimator(model_class())
        return set_params(estimator, params or {})

    @classmethod
    def get_available_models(cls) -> List[str]:
        """Return list of all supported model names."""
        return list(cls.REGRESSORS.keys()) + list(cls.CLASSIFIERS.keys())

    @classmethod
    def wrap(cls, model: Any) -> SklearnEstimator:
        """Wrap an already constructed scikit-learn estimator."""
        if isinstance(model, SklearnEstimator):
            return model
        if not (hasattr(model, 'fit') and hasattr(model, 'predict') and hasattr(model, 'get_params')):
            raise ConfigurationError(f"{type(model).__name__} is not a scikit-learn estimator")
        return SklearnEstimator(model)
