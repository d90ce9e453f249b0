"""Helpers that turn service exceptions into operation results."""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable

from tradehub.errors import AppError, MissingParametersError, StoreFailureError

from .types import OperationResult

logger = logging.getLogger(__name__)


def ok(**data: Any) -> OperationResult:
    """Build a successful result, merging any extra fields."""
    result: OperationResult = {"success": True}
    result.update(data)  # type: ignore[typeddict-item]
    return result


def fail(error: AppError, **data: Any) -> OperationResult:
    """Build a failed result from an application error."""
    result: OperationResult = {
        "success": False,
        "error": error.message,
        "errorKind": error.kind,
    }
    result.update(data)  # type: ignore[typeddict-item]
    return result


def require(**params: Any) -> None:
    """Raise MissingParametersError if any keyword argument is empty."""
    missing = [name for name, value in params.items() if not value]
    if missing:
        raise MissingParametersError(
            f"Missing required parameters: {', '.join(sorted(missing))}"
        )


def operation(
    default_message: str,
) -> Callable[[Callable[..., OperationResult]], Callable[..., OperationResult]]:
    """Wrap a service function so that it never raises.

    ``AppError`` subclasses raised inside the function (including inside a
    Firestore transaction, which aborts it) are converted into a failed result.
    Anything else is treated as a store failure and keeps its original message.
    """

    def decorator(func: Callable[..., OperationResult]) -> Callable[..., OperationResult]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> OperationResult:
            try:
                return func(*args, **kwargs)
            except AppError as e:
                logger.info(f"{func.__name__} rejected: {e.message}")
                return fail(e)
            except Exception as e:
                logger.exception(f"Error in {func.__name__}: {e}")
                return fail(StoreFailureError(str(e) or default_message))

        return wrapper

    return decorator
