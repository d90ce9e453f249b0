"""Group creation, editing, discovery and deletion."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from tradehub.core.constants import (
    DESCRIPTION_MAX_LENGTH,
    EXPLORE_PAGE_SIZE,
    GROUPS_COLLECTION,
    MIN_GROUP_MEMBERS,
    RECENT_GROUPS_DAYS,
)
from tradehub.core.results import ok, operation, require
from tradehub.core.stores import server_timestamp
from tradehub.errors import (
    DuplicateResourceError,
    GroupFullError,
    UnauthorizedError,
    ValidationError,
)

from ..models import Group, Identity, Member
from ..permissions import has_permission
from .cascade import cascade_group_removal, discover_member_ids
from .context import group_path
from .invitations import invite_many
from .projection import propagate_meta_fields, write_group_meta

if TYPE_CHECKING:
    from tradehub.core.types import OperationResult

    from .context import GroupContext

logger = logging.getLogger(__name__)


def _summary(group: Group) -> dict[str, Any]:
    return {
        "id": group.id,
        "name": group.name,
        "description": group.description,
        "avatar": group.avatar,
        "createdBy": group.created_by,
        "creatorDisplayName": group.creator_display_name,
        "memberCount": group.member_count,
        "maxMembers": group.max_members,
        "createdAt": group.created_at,
    }


def find_admin_group(ctx: GroupContext, user_id: str) -> Group | None:
    """Return the active group created by ``user_id``, if there is one."""
    docs = ctx.documents.query_where(
        GROUPS_COLLECTION,
        ("createdBy", "==", user_id),
        ("isActive", "==", True),
        limit=1,
    )
    if not docs:
        return None
    return Group.from_dict(docs[0].id, docs[0].to_dict() or {})


@operation("Failed to create group")
def create_group(  # noqa: PLR0913
    ctx: GroupContext,
    creator: Identity,
    member_ids: list[str],
    name: str,
    description: str,
    avatar: str | None = None,
    users_map: dict[str, dict[str, Any]] | None = None,
) -> OperationResult:
    """Create a group with the creator as its only member and invite the rest.

    The one-group-per-creator check is a query followed by a write, so two
    concurrent calls from the same creator can both pass it.
    """
    require(creator_id=creator.id)
    name = (name or "").strip()
    description = (description or "").strip()
    if not name:
        raise ValidationError("Group name is required")
    if not description:
        raise ValidationError("Group description is required")

    invitees = [uid for uid in dict.fromkeys(member_ids or []) if uid and uid != creator.id]
    total = len(invitees) + 1
    if total < MIN_GROUP_MEMBERS:
        raise ValidationError(f"A group needs at least {MIN_GROUP_MEMBERS} members")
    if total > ctx.max_members:
        raise GroupFullError(f"Group cannot exceed {ctx.max_members} members")

    if find_admin_group(ctx, creator.id) is not None:
        raise DuplicateResourceError("You can only create one group")

    group = Group(
        id=ctx.documents.new_id(GROUPS_COLLECTION),
        name=name,
        created_by=creator.id,
        description=description[:DESCRIPTION_MAX_LENGTH],
        avatar=avatar,
        creator_display_name=creator.display_name,
        max_members=ctx.max_members,
        created_at=server_timestamp(),
        updated_at=server_timestamp(),
    )
    group.add_member(Member.from_identity(creator, server_timestamp()))
    ctx.documents.set_document(group_path(group.id), group.to_dict())
    logger.info(f"Group {group.id} created by {creator.id}")

    write_group_meta(ctx, creator.id, group)
    sent, failed = invite_many(ctx, group, invitees, creator, users_map)
    return ok(groupId=group.id, groupName=group.name, invitedCount=sent, failedIds=failed)


@operation("Failed to delete group")
def delete_group(ctx: GroupContext, group_id: str) -> OperationResult:
    """Delete the group and everything that points at it.

    Authorization is the caller's job. Member discovery runs before the
    document is removed; cleanup after it never fails the operation, and the
    ids whose projection could not be removed come back as ``failedMemberIds``.
    """
    require(group_id=group_id)
    member_ids = discover_member_ids(ctx, group_id)
    ctx.documents.delete_document(group_path(group_id))
    failed = cascade_group_removal(ctx, group_id, member_ids)
    logger.info(
        f"Group {group_id} deleted; cleaned {len(member_ids) - len(failed)} "
        f"of {len(member_ids)} member projections"
    )
    return ok(failedMemberIds=failed)


@operation("Failed to load admin group")
def get_user_admin_group(ctx: GroupContext, user_id: str) -> OperationResult:
    require(user_id=user_id)
    group = find_admin_group(ctx, user_id)
    return ok(group=_summary(group) if group else None)


@operation("Failed to update group")
def update_group_details(  # noqa: PLR0913
    ctx: GroupContext,
    group_id: str,
    user_id: str,
    name: str | None = None,
    description: str | None = None,
    avatar: str | None = None,
) -> OperationResult:
    require(group_id=group_id, user_id=user_id)
    group = ctx.load_group(group_id)
    if not has_permission(group, user_id, "edit_group"):
        raise UnauthorizedError("Only the creator can edit the group")

    updates: dict[str, Any] = {}
    meta_fields: dict[str, Any] = {}
    if name is not None:
        name = name.strip()
        if not name:
            raise ValidationError("Group name is required")
        updates["name"] = updates["groupName"] = meta_fields["groupName"] = name
    if description is not None:
        updates["description"] = description.strip()[:DESCRIPTION_MAX_LENGTH]
    if avatar is not None:
        updates["avatar"] = meta_fields["groupAvatar"] = avatar
    if not updates:
        raise ValidationError("Nothing to update")

    ctx.documents.update_document(
        group_path(group_id), {**updates, "updatedAt": server_timestamp()}
    )
    if meta_fields:
        propagate_meta_fields(ctx, group_id, group.member_ids, meta_fields)
    return ok(updated=sorted(updates))


@operation("Failed to load groups")
def list_groups(
    ctx: GroupContext,
    limit: int = EXPLORE_PAGE_SIZE,
    cursor: str | None = None,
    search: str | None = None,
    recent_only: bool = False,
) -> OperationResult:
    """Page through active groups, newest first.

    ``cursor`` is the id of the last group of the previous page. The name
    filter runs on the fetched page, so a filtered page can be short while
    ``hasMore`` is still true.
    """
    filters: list[tuple[str, str, Any]] = [("isActive", "==", True)]
    if recent_only:
        since = datetime.now(timezone.utc) - timedelta(days=RECENT_GROUPS_DAYS)
        filters.append(("createdAt", ">=", since))

    start_after = None
    if cursor:
        start_after = ctx.documents.get_snapshot(group_path(cursor))

    docs = ctx.documents.query_where(
        GROUPS_COLLECTION,
        *filters,
        order_by="createdAt",
        descending=True,
        limit=limit + 1,
        cursor=start_after,
    )
    has_more = len(docs) > limit
    page = docs[:limit]

    groups = [Group.from_dict(doc.id, doc.to_dict() or {}) for doc in page]
    if search:
        needle = search.strip().lower()
        groups = [g for g in groups if needle in g.name.lower()]
    return ok(
        groups=[_summary(g) for g in groups],
        hasMore=has_more,
        cursor=page[-1].id if page else None,
    )
