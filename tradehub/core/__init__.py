"""Core module for the tradehub application."""

from .stores import DocumentStore, RealtimeStore, StoreTransaction
from .types import OperationResult

__all__ = [
    "DocumentStore",
    "OperationResult",
    "RealtimeStore",
    "StoreTransaction",
]
