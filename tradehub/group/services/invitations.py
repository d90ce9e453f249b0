"""Invitation workflow: send, accept, decline and housekeeping."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from tradehub.core.constants import INVITATIONS_COLLECTION
from tradehub.core.results import ok, operation, require
from tradehub.core.stores import server_timestamp
from tradehub.errors import (
    AlreadyMemberError,
    AlreadyProcessedError,
    DuplicateInviteError,
    ExpiredError,
    GroupFullError,
    NotYoursError,
    UnauthorizedError,
    ValidationError,
)

from ..models import Group, Identity, Invitation, InvitationStatus
from ..permissions import has_permission
from .context import invitation_path
from .membership import add_member_in_transaction
from .projection import resolve_profiles, write_group_meta

if TYPE_CHECKING:
    from tradehub.core.types import OperationResult

    from .context import GroupContext

logger = logging.getLogger(__name__)


def serialize_invitation(invitation: Invitation) -> dict[str, Any]:
    return {"id": invitation.id, **invitation.to_dict()}


def find_pending_invitation(
    ctx: GroupContext, group_id: str, user_id: str
) -> Invitation | None:
    """Return the live pending invitation for the pair, ignoring expired ones."""
    docs = ctx.documents.query_where(
        INVITATIONS_COLLECTION,
        ("groupId", "==", group_id),
        ("invitedUserId", "==", user_id),
        ("status", "==", InvitationStatus.PENDING.value),
    )
    now = ctx.now()
    for doc in docs:
        invitation = Invitation.from_dict(doc.id, doc.to_dict() or {})
        if not invitation.is_expired(now):
            return invitation
    return None


def create_invitation(
    ctx: GroupContext,
    group: Group,
    invited_user_id: str,
    inviter: Identity,
    invitee_profile: dict[str, Any],
) -> str:
    """Insert a pending invitation after the duplicate check.

    The check and the insert are separate round trips, so two concurrent
    senders can both insert. Accepting either one afterwards still goes
    through the in-transaction membership check.
    """
    if find_pending_invitation(ctx, group.id, invited_user_id) is not None:
        raise DuplicateInviteError()

    invitation = Invitation(
        group_id=group.id,
        invited_by=inviter.id,
        invited_user_id=invited_user_id,
        expires_at=ctx.invite_expiry(),
        timestamp=server_timestamp(),
        group_name=group.name,
        group_avatar=group.avatar,
        invited_by_display_name=inviter.display_name,
        invited_by_avatar=inviter.avatar,
        invited_user_display_name=invitee_profile["displayName"],
        invited_user_avatar=invitee_profile.get("avatar"),
    )
    return ctx.documents.add_document(INVITATIONS_COLLECTION, invitation.to_dict())


def invite_many(
    ctx: GroupContext,
    group: Group,
    user_ids: list[str],
    inviter: Identity,
    users_map: dict[str, dict[str, Any]] | None = None,
) -> tuple[int, list[str]]:
    """Invite each id in turn; return the count sent and the ids that failed.

    Ids that already hold a pending invitation are skipped silently.
    """
    profiles = resolve_profiles(ctx, user_ids, users_map)
    sent = 0
    failed = []
    for uid in user_ids:
        try:
            create_invitation(ctx, group, uid, inviter, profiles[uid])
            sent += 1
        except DuplicateInviteError:
            logger.info(f"Skipping {uid}: already invited to {group.id}")
        except Exception as e:
            logger.warning(f"Failed to invite {uid} to {group.id}: {e}")
            failed.append(uid)
    return sent, failed


@operation("Failed to send invitation")
def send_invite(
    ctx: GroupContext,
    group_id: str,
    invited_user_id: str,
    inviter: Identity,
    users_map: dict[str, dict[str, Any]] | None = None,
) -> OperationResult:
    require(group_id=group_id, invited_user_id=invited_user_id, inviter_id=inviter.id)
    group = ctx.load_group(group_id)
    if group.is_member(invited_user_id):
        raise AlreadyMemberError()
    if group.is_full:
        raise GroupFullError()

    profile = resolve_profiles(ctx, [invited_user_id], users_map)[invited_user_id]
    invite_id = create_invitation(ctx, group, invited_user_id, inviter, profile)
    return ok(inviteId=invite_id)


@operation("Failed to accept invitation")
def accept_invite(ctx: GroupContext, invite_id: str, user: Identity) -> OperationResult:
    """Join the group named by the invitation.

    The projection entry is written after the transaction commits. If that
    write fails the user is still a member and the next listing repairs it.
    """
    require(invite_id=invite_id, user_id=user.id)
    invitation = ctx.load_invitation(invite_id)
    if invitation.invited_user_id != user.id:
        raise NotYoursError()
    if invitation.status is not InvitationStatus.PENDING:
        raise AlreadyProcessedError()
    if invitation.is_expired(ctx.now()):
        raise ExpiredError()

    group = add_member_in_transaction(
        ctx,
        invitation.group_id,
        user,
        invitation_path(invite_id),
        {
            "status": InvitationStatus.ACCEPTED.value,
            "respondedAt": server_timestamp(),
        },
    )
    write_group_meta(ctx, user.id, group)
    return ok(groupId=group.id, groupName=group.name)


@operation("Failed to decline invitation")
def decline_invite(ctx: GroupContext, invite_id: str, user_id: str) -> OperationResult:
    require(invite_id=invite_id, user_id=user_id)
    invitation = ctx.load_invitation(invite_id)
    if invitation.invited_user_id != user_id:
        raise NotYoursError()
    if invitation.status is not InvitationStatus.PENDING:
        raise AlreadyProcessedError()

    ctx.documents.update_document(
        invitation_path(invite_id),
        {
            "status": InvitationStatus.DECLINED.value,
            "respondedAt": server_timestamp(),
        },
    )
    return ok()


@operation("Failed to add members")
def add_members(
    ctx: GroupContext,
    group_id: str,
    member_ids: list[str],
    inviter: Identity,
    users_map: dict[str, dict[str, Any]] | None = None,
) -> OperationResult:
    """Creator-only bulk invite of users who are not yet members."""
    require(group_id=group_id, member_ids=member_ids, inviter_id=inviter.id)
    group = ctx.load_group(group_id)
    if not has_permission(group, inviter.id, "add_member"):
        raise UnauthorizedError("Only the creator can add members")

    new_ids = [
        uid for uid in dict.fromkeys(member_ids) if uid and not group.is_member(uid)
    ]
    if not new_ids:
        raise ValidationError("All selected users are already members")
    if len(group.member_ids) + len(new_ids) > group.max_members:
        raise GroupFullError(
            f"Cannot add {len(new_ids)} members. Group limit is {group.max_members}."
        )

    sent, failed = invite_many(ctx, group, new_ids, inviter, users_map)
    return ok(invitedCount=sent, failedIds=failed)


@operation("Failed to load invitations")
def get_pending_invitations(ctx: GroupContext, user_id: str) -> OperationResult:
    require(user_id=user_id)
    docs = ctx.documents.query_where(
        INVITATIONS_COLLECTION,
        ("invitedUserId", "==", user_id),
        ("status", "==", InvitationStatus.PENDING.value),
    )
    now = ctx.now()
    invitations = [Invitation.from_dict(doc.id, doc.to_dict() or {}) for doc in docs]
    live = [inv for inv in invitations if not inv.is_expired(now)]
    live.sort(key=lambda inv: inv.expires_at, reverse=True)
    return ok(invitations=[serialize_invitation(inv) for inv in live])


@operation("Failed to load invitation")
def get_pending_invite_for_group(
    ctx: GroupContext, group_id: str, user_id: str
) -> OperationResult:
    require(group_id=group_id, user_id=user_id)
    invitation = find_pending_invitation(ctx, group_id, user_id)
    return ok(invitation=serialize_invitation(invitation) if invitation else None)


@operation("Failed to prune invitations")
def prune_expired_invitations(ctx: GroupContext) -> OperationResult:
    """Delete pending invitations past their expiry. Nothing schedules this."""
    docs = ctx.documents.query_where(
        INVITATIONS_COLLECTION, ("status", "==", InvitationStatus.PENDING.value)
    )
    now = ctx.now()
    expired = [
        invitation_path(doc.id)
        for doc in docs
        if Invitation.from_dict(doc.id, doc.to_dict() or {}).is_expired(now)
    ]
    deleted = ctx.documents.delete_documents(expired)
    logger.info(f"Pruned {deleted} expired invitations")
    return ok(deletedCount=deleted)
