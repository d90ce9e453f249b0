"""Best-effort removal of Realtime Database projection nodes.

The caller frequently lacks read access to other users' subtrees, so every
step treats a permission error as "cannot tell" rather than as a failure.
The sequence is: read -> delete -> verify -> overwrite with null -> verify.
Running it on an already-removed node is a no-op.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from firebase_admin import exceptions

if TYPE_CHECKING:
    from .stores import RealtimeStore

logger = logging.getLogger(__name__)


class CleanupState(str, Enum):
    """What we know about the node being removed."""

    UNKNOWN = "unknown"
    EXISTS = "exists"
    DELETED = "deleted"
    ASSUMED_DELETED = "assumed-deleted"


@dataclass
class CleanupOutcome:
    """Final state of one cleanup run."""

    path: str
    state: CleanupState
    used_fallback: bool = False

    @property
    def succeeded(self) -> bool:
        return self.state in (CleanupState.DELETED, CleanupState.ASSUMED_DELETED)


class ProjectionCleanup:
    """Removes a single RTS path without ever raising."""

    def __init__(self, realtime: RealtimeStore, path: str) -> None:
        self.realtime = realtime
        self.path = path
        self.state = CleanupState.UNKNOWN
        self.used_fallback = False

    def run(self) -> CleanupOutcome:
        self.state = self._read_state(after_write=False)
        if self.state is CleanupState.DELETED:
            return self._outcome()

        if self._attempt(self.realtime.delete_path, "delete"):
            self.state = self._read_state(after_write=True)

        if not self._settled():
            self.used_fallback = True
            logger.warning(f"Delete did not clear {self.path}, overwriting with null")
            if self._attempt(self._null_out, "null overwrite"):
                self.state = self._read_state(after_write=True)

        if not self._settled():
            logger.error(f"Failed to remove {self.path} (state: {self.state.value})")
        return self._outcome()

    def _settled(self) -> bool:
        return self.state in (CleanupState.DELETED, CleanupState.ASSUMED_DELETED)

    def _null_out(self, path: str) -> None:
        self.realtime.set_path(path, None)

    def _attempt(self, step, label: str) -> bool:
        try:
            step(self.path)
            return True
        except exceptions.PermissionDeniedError:
            logger.warning(f"Permission denied on {label} of {self.path}")
        except Exception as e:
            logger.warning(f"Could not {label} {self.path}: {e}")
        return False

    def _read_state(self, after_write: bool) -> CleanupState:
        try:
            value = self.realtime.get_path(self.path)
        except exceptions.PermissionDeniedError:
            if after_write:
                logger.warning(
                    f"Cannot verify removal of {self.path} due to permissions, "
                    "assuming success"
                )
                return CleanupState.ASSUMED_DELETED
            return CleanupState.UNKNOWN
        except Exception as e:
            logger.warning(f"Could not read {self.path}: {e}")
            return CleanupState.UNKNOWN
        return CleanupState.DELETED if value is None else CleanupState.EXISTS

    def _outcome(self) -> CleanupOutcome:
        return CleanupOutcome(self.path, self.state, self.used_fallback)


def remove_projection(realtime: RealtimeStore, path: str) -> CleanupOutcome:
    """Run the cleanup sequence for ``path``."""
    return ProjectionCleanup(realtime, path).run()
