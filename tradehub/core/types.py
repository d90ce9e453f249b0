"""Core data types for the tradehub application."""

from typing import Any, Optional, Tuple, TypedDict  # noqa: UP035


class OperationResult(TypedDict, total=False):
    """Result returned by every public group operation."""

    success: bool
    error: Optional[str]
    errorKind: Optional[str]
    message: str


# A Firestore where-clause: (field, operator, value)
QueryFilter = Tuple[str, str, Any]  # noqa: UP006
