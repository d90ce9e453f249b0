"""Group membership services."""

from .context import GroupContext
from .group_service import GroupService

__all__ = ["GroupContext", "GroupService"]
