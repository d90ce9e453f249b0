"""Cleanup that follows the removal of a group document.

None of these helpers raise: the group document is already gone by the time
they run, so a failure here only leaves orphaned data behind for the next
cleanup to find.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from firebase_admin import exceptions

from tradehub.core.cleanup import remove_projection
from tradehub.core.constants import (
    GROUP_MESSAGES_ROOT,
    GROUP_MIRROR_ROOT,
    INVITATIONS_COLLECTION,
    JOIN_REQUESTS_COLLECTION,
)

from .context import group_path, invitation_path, join_request_path
from .projection import remove_group_meta

if TYPE_CHECKING:
    from .context import GroupContext

logger = logging.getLogger(__name__)


def _mirror_member_ids(mirror: Any) -> list[str]:
    if not isinstance(mirror, dict):
        return []
    member_ids = mirror.get("memberIds")
    if isinstance(member_ids, dict):
        return list(member_ids)
    if isinstance(member_ids, list):
        return list(member_ids)
    members = mirror.get("members")
    if isinstance(members, dict):
        return list(members)
    return []


def discover_member_ids(ctx: GroupContext, group_id: str) -> list[str]:
    """Find everyone who may hold a projection entry for the group.

    Firestore ``memberIds`` first, then the Realtime Database group mirror,
    then, only if both came back empty, the ids on the group's invitations.
    """
    ds_ids: list[str] = []
    try:
        data = ctx.documents.get_document(group_path(group_id))
        if data:
            ds_ids = list(data.get("memberIds") or [])
    except Exception as e:
        logger.warning(f"Could not read group {group_id} before deletion: {e}")

    rts_ids: list[str] = []
    try:
        rts_ids = _mirror_member_ids(
            ctx.realtime.get_path(f"{GROUP_MIRROR_ROOT}/{group_id}")
        )
    except exceptions.PermissionDeniedError:
        logger.info(f"No read access to the realtime mirror of {group_id}")
    except Exception as e:
        logger.warning(f"Could not read realtime mirror of {group_id}: {e}")

    invite_ids: list[str] = []
    if not ds_ids and not rts_ids:
        try:
            invitations = ctx.documents.query_where(
                INVITATIONS_COLLECTION, ("groupId", "==", group_id)
            )
            invite_ids = [
                (doc.to_dict() or {}).get("invitedUserId") for doc in invitations
            ]
        except Exception as e:
            logger.warning(f"Could not read invitations of {group_id}: {e}")

    discovered = [
        uid
        for uid in ds_ids + rts_ids + invite_ids
        if isinstance(uid, str) and uid
    ]
    return list(dict.fromkeys(discovered))


def purge_realtime_group(ctx: GroupContext, group_id: str) -> None:
    """Remove the realtime mirror and message log of the group."""
    for path in (
        f"{GROUP_MIRROR_ROOT}/{group_id}",
        f"{GROUP_MESSAGES_ROOT}/{group_id}",
    ):
        remove_projection(ctx.realtime, path)


def purge_member_projections(
    ctx: GroupContext, group_id: str, member_ids: list[str]
) -> list[str]:
    """Remove each member's projection entry; return the ids that failed."""
    failed = []
    for uid in member_ids:
        outcome = remove_group_meta(ctx, uid, group_id)
        if not outcome.succeeded:
            failed.append(uid)
    if failed:
        logger.error(f"Failed to delete metadata for members of {group_id}: {failed}")
    return failed


def purge_group_records(ctx: GroupContext, group_id: str) -> None:
    """Delete every invitation and join request that references the group."""
    for collection, path_for in (
        (INVITATIONS_COLLECTION, invitation_path),
        (JOIN_REQUESTS_COLLECTION, join_request_path),
    ):
        try:
            docs = ctx.documents.query_where(collection, ("groupId", "==", group_id))
            ctx.documents.delete_documents(path_for(doc.id) for doc in docs)
        except Exception as e:
            logger.warning(f"Could not delete {collection} for {group_id}: {e}")


def cascade_group_removal(
    ctx: GroupContext, group_id: str, member_ids: list[str]
) -> list[str]:
    """Run the full post-deletion cleanup and return members left uncleaned."""
    purge_realtime_group(ctx, group_id)
    failed = purge_member_projections(ctx, group_id, member_ids)
    purge_group_records(ctx, group_id)
    return failed
