"""Data models for the group blueprint."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from tradehub.core.constants import (
    DEFAULT_DISPLAY_NAME,
    DEFAULT_GROUP_NAME,
    MAX_GROUP_MEMBERS,
)


class InvitationStatus(str, Enum):
    """Lifecycle of a group invitation."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class JoinRequestStatus(str, Enum):
    """Lifecycle of a join request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass
class Identity:
    """An authenticated caller as handed to us by the UI layer."""

    id: str
    display_name: str = DEFAULT_DISPLAY_NAME
    avatar: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Identity:
        return cls(
            id=data.get("id") or "",
            display_name=data.get("displayName") or DEFAULT_DISPLAY_NAME,
            avatar=data.get("avatar"),
        )


@dataclass
class Member:
    """Entry of the ``members`` map on a group document."""

    id: str
    display_name: str = DEFAULT_DISPLAY_NAME
    avatar: Optional[str] = None
    joined_at: Any = None
    muted: bool = False

    @classmethod
    def from_dict(cls, member_id: str, data: dict[str, Any]) -> Member:
        return cls(
            id=data.get("id") or member_id,
            display_name=data.get("displayName") or DEFAULT_DISPLAY_NAME,
            avatar=data.get("avatar"),
            joined_at=data.get("joinedAt"),
            muted=bool(data.get("muted", False)),
        )

    @classmethod
    def from_identity(cls, identity: Identity, joined_at: Any) -> Member:
        return cls(
            id=identity.id,
            display_name=identity.display_name or DEFAULT_DISPLAY_NAME,
            avatar=identity.avatar,
            joined_at=joined_at,
        )

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.id,
            "displayName": self.display_name,
            "avatar": self.avatar,
            "joinedAt": self.joined_at,
        }
        if self.muted:
            data["muted"] = True
        return data


@dataclass
class Group:
    """A group document in Firestore.

    ``member_ids`` mirrors the keys of ``members`` and ``member_count`` is
    always ``len(member_ids)`` once a mutation has been written.
    """

    id: str
    name: str
    created_by: str
    description: str = ""
    avatar: Optional[str] = None
    creator_display_name: str = DEFAULT_DISPLAY_NAME
    member_ids: list[str] = field(default_factory=list)
    members: dict[str, Member] = field(default_factory=dict)
    member_count: int = 0
    is_active: bool = True
    max_members: int = MAX_GROUP_MEMBERS
    created_at: Any = None
    updated_at: Any = None

    @classmethod
    def from_dict(cls, group_id: str, data: dict[str, Any]) -> Group:
        members = {
            uid: Member.from_dict(uid, member or {})
            for uid, member in (data.get("members") or {}).items()
        }
        member_ids = list(data.get("memberIds") or [])
        return cls(
            id=data.get("id") or group_id,
            name=data.get("name") or data.get("groupName") or DEFAULT_GROUP_NAME,
            created_by=data.get("createdBy") or "",
            description=data.get("description") or "",
            avatar=data.get("avatar"),
            creator_display_name=data.get("creatorDisplayName")
            or DEFAULT_DISPLAY_NAME,
            member_ids=member_ids,
            members=members,
            member_count=data.get("memberCount", len(member_ids)),
            is_active=data.get("isActive", True),
            max_members=data.get("maxMembers") or MAX_GROUP_MEMBERS,
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "groupName": self.name,
            "description": self.description,
            "avatar": self.avatar,
            "createdBy": self.created_by,
            "creatorDisplayName": self.creator_display_name,
            "memberIds": list(self.member_ids),
            "members": {uid: m.to_dict() for uid, m in self.members.items()},
            "memberCount": self.member_count,
            "isActive": self.is_active,
            "maxMembers": self.max_members,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def membership_fields(self) -> dict[str, Any]:
        """The fields rewritten by every membership mutation."""
        return {
            "memberIds": list(self.member_ids),
            "members": {uid: m.to_dict() for uid, m in self.members.items()},
            "memberCount": self.member_count,
        }

    def is_member(self, user_id: str) -> bool:
        return user_id in self.member_ids

    def is_creator(self, user_id: str) -> bool:
        return bool(user_id) and self.created_by == user_id

    @property
    def is_full(self) -> bool:
        return len(self.member_ids) >= self.max_members

    def add_member(self, member: Member) -> None:
        if member.id not in self.member_ids:
            self.member_ids.append(member.id)
        self.members[member.id] = member
        self.member_count = len(self.member_ids)

    def remove_member(self, user_id: str) -> None:
        self.member_ids = [uid for uid in self.member_ids if uid != user_id]
        self.members.pop(user_id, None)
        self.member_count = len(self.member_ids)

    def is_consistent(self) -> bool:
        return (
            self.member_count == len(self.member_ids)
            and set(self.member_ids) == set(self.members)
            and len(set(self.member_ids)) == len(self.member_ids)
        )


@dataclass
class Invitation:
    """A ``group_invitations`` document."""

    group_id: str
    invited_by: str
    invited_user_id: str
    expires_at: int
    status: InvitationStatus = InvitationStatus.PENDING
    id: str = ""
    timestamp: Any = None
    group_name: str = DEFAULT_GROUP_NAME
    group_avatar: Optional[str] = None
    invited_by_display_name: str = DEFAULT_DISPLAY_NAME
    invited_by_avatar: Optional[str] = None
    invited_user_display_name: str = DEFAULT_DISPLAY_NAME
    invited_user_avatar: Optional[str] = None

    @classmethod
    def from_dict(cls, invite_id: str, data: dict[str, Any]) -> Invitation:
        return cls(
            id=invite_id,
            group_id=data.get("groupId") or "",
            invited_by=data.get("invitedBy") or "",
            invited_user_id=data.get("invitedUserId") or "",
            expires_at=int(data.get("expiresAt") or 0),
            status=InvitationStatus(data.get("status", InvitationStatus.PENDING)),
            timestamp=data.get("timestamp"),
            group_name=data.get("groupName") or DEFAULT_GROUP_NAME,
            group_avatar=data.get("groupAvatar"),
            invited_by_display_name=data.get("invitedByDisplayName")
            or DEFAULT_DISPLAY_NAME,
            invited_by_avatar=data.get("invitedByAvatar"),
            invited_user_display_name=data.get("invitedUserDisplayName")
            or DEFAULT_DISPLAY_NAME,
            invited_user_avatar=data.get("invitedUserAvatar"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "groupId": self.group_id,
            "invitedBy": self.invited_by,
            "invitedUserId": self.invited_user_id,
            "status": self.status.value,
            "timestamp": self.timestamp,
            "expiresAt": self.expires_at,
            "groupName": self.group_name,
            "groupAvatar": self.group_avatar,
            "invitedByDisplayName": self.invited_by_display_name,
            "invitedByAvatar": self.invited_by_avatar,
            "invitedUserDisplayName": self.invited_user_display_name,
            "invitedUserAvatar": self.invited_user_avatar,
        }

    def is_expired(self, now: int) -> bool:
        return bool(self.expires_at) and now > self.expires_at


@dataclass
class JoinRequest:
    """A ``group_join_requests`` document."""

    group_id: str
    requester_id: str
    creator_id: str
    status: JoinRequestStatus = JoinRequestStatus.PENDING
    id: str = ""
    requester_display_name: str = DEFAULT_DISPLAY_NAME
    requester_avatar: Optional[str] = None
    group_name: str = DEFAULT_GROUP_NAME
    created_at: Any = None

    @classmethod
    def from_dict(cls, request_id: str, data: dict[str, Any]) -> JoinRequest:
        return cls(
            id=request_id,
            group_id=data.get("groupId") or "",
            requester_id=data.get("requesterId") or "",
            creator_id=data.get("creatorId") or "",
            status=JoinRequestStatus(data.get("status", JoinRequestStatus.PENDING)),
            requester_display_name=data.get("requesterDisplayName")
            or DEFAULT_DISPLAY_NAME,
            requester_avatar=data.get("requesterAvatar"),
            group_name=data.get("groupName") or DEFAULT_GROUP_NAME,
            created_at=data.get("createdAt"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "groupId": self.group_id,
            "requesterId": self.requester_id,
            "requesterDisplayName": self.requester_display_name,
            "requesterAvatar": self.requester_avatar,
            "creatorId": self.creator_id,
            "status": self.status.value,
            "createdAt": self.created_at,
            "groupName": self.group_name,
        }


@dataclass
class GroupMeta:
    """Per-user projection stored at ``group_meta_data/{userId}/{groupId}``."""

    group_id: str
    group_name: str = DEFAULT_GROUP_NAME
    group_avatar: Optional[str] = None
    last_message: Optional[str] = None
    last_message_timestamp: int = 0
    unread_count: int = 0
    muted: bool = False
    joined_at: int = 0
    created_by: Optional[str] = None

    @classmethod
    def for_group(cls, group: Group, joined_at: int) -> GroupMeta:
        return cls(
            group_id=group.id,
            group_name=group.name,
            group_avatar=group.avatar,
            joined_at=joined_at,
            created_by=group.created_by or None,
        )

    @classmethod
    def from_dict(cls, group_id: str, data: dict[str, Any]) -> GroupMeta:
        return cls(
            group_id=data.get("groupId") or group_id,
            group_name=data.get("groupName") or DEFAULT_GROUP_NAME,
            group_avatar=data.get("groupAvatar"),
            last_message=data.get("lastMessage"),
            last_message_timestamp=data.get("lastMessageTimestamp") or 0,
            unread_count=data.get("unreadCount") or 0,
            muted=bool(data.get("muted", False)),
            joined_at=data.get("joinedAt") or 0,
            created_by=data.get("createdBy"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "groupId": self.group_id,
            "groupName": self.group_name,
            "groupAvatar": self.group_avatar,
            "lastMessage": self.last_message,
            "lastMessageTimestamp": self.last_message_timestamp,
            "unreadCount": self.unread_count,
            "muted": self.muted,
            "joinedAt": self.joined_at,
            "createdBy": self.created_by,
        }
