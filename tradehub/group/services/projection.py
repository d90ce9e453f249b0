"""Maintenance of the per-user ``group_meta_data`` projection.

The projection is a read cache for inbox rendering. Firestore stays
authoritative; every write here is best-effort and a failure only leaves the
cache stale until the next listing repairs it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from tradehub.core.cleanup import CleanupOutcome, remove_projection
from tradehub.core.constants import (
    DEFAULT_DISPLAY_NAME,
    GROUP_META_ROOT,
    GROUPS_COLLECTION,
    USERS_ROOT,
)
from tradehub.core.results import ok, operation, require

from ..models import Group, GroupMeta
from .context import group_path, meta_path

if TYPE_CHECKING:
    from tradehub.core.types import OperationResult

    from .context import GroupContext

logger = logging.getLogger(__name__)


def write_group_meta(ctx: GroupContext, user_id: str, group: Group) -> bool:
    """Create a fresh projection entry for a new member."""
    meta = GroupMeta.for_group(group, joined_at=ctx.now())
    try:
        ctx.realtime.set_path(meta_path(user_id, group.id), meta.to_dict())
        return True
    except Exception as e:
        logger.warning(
            f"Could not write group metadata for {user_id} in {group.id}: {e}"
        )
        return False


def remove_group_meta(ctx: GroupContext, user_id: str, group_id: str) -> CleanupOutcome:
    return remove_projection(ctx.realtime, meta_path(user_id, group_id))


def propagate_meta_fields(
    ctx: GroupContext, group_id: str, member_ids: list[str], fields: dict[str, Any]
) -> bool:
    """Copy changed group fields into every member's projection."""
    updates = {
        f"{meta_path(uid, group_id)}/{key}": value
        for uid in member_ids
        for key, value in fields.items()
    }
    try:
        ctx.realtime.batch_update(updates)
        return True
    except Exception as e:
        logger.warning(f"Could not propagate metadata for group {group_id}: {e}")
        return False


def resolve_profiles(
    ctx: GroupContext,
    user_ids: list[str],
    users_map: dict[str, dict[str, Any]] | None = None,
) -> dict[str, dict[str, Any]]:
    """Display data for ``user_ids``, reading ``users/{id}`` only for misses."""
    profiles: dict[str, dict[str, Any]] = {}
    users_map = users_map or {}
    for uid in user_ids:
        known = users_map.get(uid)
        if known is None:
            try:
                known = ctx.realtime.get_path(f"{USERS_ROOT}/{uid}")
            except Exception as e:
                logger.warning(f"Could not fetch profile for {uid}: {e}")
                known = None
        known = known or {}
        profiles[uid] = {
            "displayName": known.get("displayName") or DEFAULT_DISPLAY_NAME,
            "avatar": known.get("avatar"),
        }
    return profiles


@operation("Failed to load groups")
def list_user_groups(ctx: GroupContext, user_id: str) -> OperationResult:
    """List the user's inbox entries, repairing the projection on the way.

    Entries whose group is gone or no longer lists the user are removed, and
    groups that list the user without an entry get one.
    """
    require(user_id=user_id)
    entries = ctx.realtime.get_path(f"{GROUP_META_ROOT}/{user_id}") or {}

    groups = []
    removed = 0
    for group_id, raw in entries.items():
        data = ctx.documents.get_document(group_path(group_id))
        if data is None or user_id not in (data.get("memberIds") or []):
            remove_group_meta(ctx, user_id, group_id)
            removed += 1
            continue
        groups.append(GroupMeta.from_dict(group_id, raw or {}).to_dict())

    repaired = 0
    member_of = ctx.documents.query_where(
        GROUPS_COLLECTION, ("memberIds", "array_contains", user_id)
    )
    for snapshot in member_of:
        if snapshot.id in entries:
            continue
        group = Group.from_dict(snapshot.id, snapshot.to_dict() or {})
        if write_group_meta(ctx, user_id, group):
            repaired += 1
            groups.append(GroupMeta.for_group(group, joined_at=ctx.now()).to_dict())

    groups.sort(key=lambda g: g.get("lastMessageTimestamp") or 0, reverse=True)
    return ok(groups=groups, removedCount=removed, repairedCount=repaired)


@operation("Failed to sync group metadata")
def sync_group_projections(ctx: GroupContext, group_id: str) -> OperationResult:
    """Create missing projection entries for every current member."""
    require(group_id=group_id)
    group = ctx.load_group(group_id)
    repaired = 0
    for uid in group.member_ids:
        if ctx.realtime.get_path(meta_path(uid, group_id)) is None:
            if write_group_meta(ctx, uid, group):
                repaired += 1
    return ok(repairedCount=repaired)
