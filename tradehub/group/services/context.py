"""Shared state and lookups for the group service functions."""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Sequence

from tradehub.core.constants import (
    GROUP_META_ROOT,
    GROUPS_COLLECTION,
    INVITATIONS_COLLECTION,
    INVITE_TTL_DAYS,
    JOIN_REQUESTS_COLLECTION,
    MAX_GROUP_MEMBERS,
    MS_PER_DAY,
)
from tradehub.core.stores import now_ms
from tradehub.errors import NotFoundError

from ..models import Group, Invitation, JoinRequest

if TYPE_CHECKING:
    from tradehub.core.stores import DocumentStore, RealtimeStore


def group_path(group_id: str) -> str:
    return f"{GROUPS_COLLECTION}/{group_id}"


def invitation_path(invite_id: str) -> str:
    return f"{INVITATIONS_COLLECTION}/{invite_id}"


def join_request_path(request_id: str) -> str:
    return f"{JOIN_REQUESTS_COLLECTION}/{request_id}"


def meta_path(user_id: str, group_id: str) -> str:
    return f"{GROUP_META_ROOT}/{user_id}/{group_id}"


@dataclass
class GroupContext:
    """Explicitly constructed store handles plus the group policy knobs."""

    documents: DocumentStore
    realtime: RealtimeStore
    max_members: int = MAX_GROUP_MEMBERS
    invite_ttl_days: int = INVITE_TTL_DAYS
    clock: Callable[[], int] = field(default=now_ms)
    pick_successor: Callable[[Sequence[str]], str] = field(default=secrets.choice)

    def now(self) -> int:
        return self.clock()

    def invite_expiry(self) -> int:
        return self.now() + self.invite_ttl_days * MS_PER_DAY

    def load_group(self, group_id: str) -> Group:
        data = self.documents.get_document(group_path(group_id))
        if data is None:
            raise NotFoundError("Group not found")
        return Group.from_dict(group_id, data)

    def load_invitation(self, invite_id: str) -> Invitation:
        data = self.documents.get_document(invitation_path(invite_id))
        if data is None:
            raise NotFoundError("Invitation not found")
        return Invitation.from_dict(invite_id, data)

    def load_join_request(self, request_id: str) -> JoinRequest:
        data = self.documents.get_document(join_request_path(request_id))
        if data is None:
            raise NotFoundError("Join request not found")
        return JoinRequest.from_dict(request_id, data)
