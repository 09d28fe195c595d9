import functools
import logging
from utils.exceptions import ModelSelectionException


def handle_engine_errors(operation_name: str, wrap_as=ModelSelectionException):
    """Decorator for consistent error handling in engines."""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except ModelSelectionException:
                # Re-raise our custom exceptions
                raise
            except Exception as e:
                # Wrap unexpected errors
                logger = args[0].logger if args and hasattr(args[0], 'logger') else logging.getLogger()
                logger.error(f"{operation_name} failed: {e}", exc_info=True)
                raise wrap_as(f"{operation_name} failed: {str(e)}") from e
        return wrapper
    return decorator


def with_context(error: ModelSelectionException, message: str, **context) -> ModelSelectionException:
    """
    Build a copy of `error` (same class) whose message is prefixed and whose
    context attributes are filled in. The original error becomes the cause.
    """
    merged = {
        'assignment_index': error.assignment_index,
        'params': error.params,
        'fold': error.fold,
    }
    merged.update({k: v for k, v in context.items() if v is not None})
    extra = {'stage': getattr(error, 'stage', None)} if hasattr(error, 'stage') else {}
    wrapped = type(error)(f"{message}: {error}", **merged, **extra)
    wrapped.__cause__ = error
    return wrapped
