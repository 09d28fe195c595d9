"""
Custom exception hierarchy for the grid search / cross-validation engine.
"""


class ModelSelectionException(Exception):
    """Base exception for all model selection errors.

    Carries the assignment and fold that triggered the failure, when known,
    so callers can tell which part of a search went wrong.
    """

    def __init__(self, message: str = "", *, assignment_index=None, params=None, fold=None):
        super().__init__(message)
        self.assignment_index = assignment_index
        self.params = params
        self.fold = fold


class ConfigurationError(ModelSelectionException):
    """Configuration or parameter injection failed."""
    pass


class SchemaError(ModelSelectionException):
    """Parameter grid is empty or malformed."""
    pass


class EstimatorFailure(ModelSelectionException):
    """Estimator fit, transform or scoring failed."""

    def __init__(self, message: str = "", *, stage=None, **context):
        super().__init__(message, **context)
        self.stage = stage


class DataValidationError(ModelSelectionException):
    """Data or split validation failed."""
    pass


class NotFittedError(ModelSelectionException):
    """A search was used before being fitted."""
    pass
