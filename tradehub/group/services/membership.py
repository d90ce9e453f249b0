"""Membership mutations on an existing group."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from tradehub.core.results import ok, operation, require
from tradehub.core.stores import server_timestamp
from tradehub.errors import (
    AlreadyMemberError,
    AlreadyProcessedError,
    GroupFullError,
    NotFoundError,
    NotMemberError,
    UnauthorizedError,
    ValidationError,
)

from ..models import Group, Identity, Member
from .cascade import cascade_group_removal
from .context import group_path
from .projection import propagate_meta_fields, remove_group_meta

if TYPE_CHECKING:
    from tradehub.core.stores import StoreTransaction
    from tradehub.core.types import OperationResult

    from .context import GroupContext

logger = logging.getLogger(__name__)


@dataclass
class Departure:
    """What a leave/remove transaction did to the group document."""

    group_deleted: bool = False
    new_creator_id: str | None = None
    remaining_ids: list[str] = field(default_factory=list)


def add_member_in_transaction(
    ctx: GroupContext,
    group_id: str,
    identity: Identity,
    record_path: str,
    record_update: dict[str, Any],
) -> Group:
    """Add ``identity`` to the group and close its invitation/request.

    Membership and capacity are re-checked on the fresh transactional read, so
    a second accept of a duplicate invitation fails instead of adding the user
    twice. The workflow record must still be pending when the transaction runs.
    """

    def _txn(txn: StoreTransaction) -> Group:
        group_data = txn.get_document(group_path(group_id))
        record = txn.get_document(record_path)
        if group_data is None:
            raise NotFoundError("Group not found")
        if record is None or record.get("status") != "pending":
            raise AlreadyProcessedError("This request has already been processed")

        group = Group.from_dict(group_id, group_data)
        if group.is_member(identity.id):
            raise AlreadyMemberError("Already in group")
        if group.is_full:
            raise GroupFullError()

        group.add_member(Member.from_identity(identity, server_timestamp()))
        txn.update_document(
            group_path(group_id),
            {**group.membership_fields(), "updatedAt": server_timestamp()},
        )
        txn.update_document(record_path, record_update)
        return group

    return ctx.documents.run_transaction(_txn)


def _depart_in_transaction(
    ctx: GroupContext, txn: StoreTransaction, group_id: str, user_id: str
) -> Departure | None:
    data = txn.get_document(group_path(group_id))
    if data is None:
        return None

    group = Group.from_dict(group_id, data)
    if not group.is_member(user_id):
        raise NotMemberError()

    group.remove_member(user_id)
    if not group.member_ids:
        txn.delete_document(group_path(group_id))
        return Departure(group_deleted=True)

    updates: dict[str, Any] = {
        **group.membership_fields(),
        "updatedAt": server_timestamp(),
    }
    departure = Departure(remaining_ids=list(group.member_ids))
    if group.is_creator(user_id):
        departure.new_creator_id = ctx.pick_successor(group.member_ids)
        updates["createdBy"] = departure.new_creator_id
    txn.update_document(group_path(group_id), updates)
    return departure


@operation("Failed to leave group")
def leave_group(ctx: GroupContext, group_id: str, user_id: str) -> OperationResult:
    """Remove the caller from the group.

    The caller's projection entry is removed whatever the transaction does.
    A creator who leaves hands the group to a randomly chosen remaining member;
    the last member out deletes the group.
    """
    require(group_id=group_id, user_id=user_id)
    try:
        departure = ctx.documents.run_transaction(
            lambda txn: _depart_in_transaction(ctx, txn, group_id, user_id)
        )
    finally:
        remove_group_meta(ctx, user_id, group_id)

    if departure is None:
        return ok(message="Group no longer exists")

    if departure.group_deleted:
        cascade_group_removal(ctx, group_id, member_ids=[])
        return ok(groupDeleted=True)

    if departure.new_creator_id:
        logger.info(
            f"Creator {user_id} left {group_id}; {departure.new_creator_id} took over"
        )
        propagate_meta_fields(
            ctx,
            group_id,
            departure.remaining_ids,
            {"createdBy": departure.new_creator_id},
        )
        return ok(newCreatorId=departure.new_creator_id)
    return ok()


@operation("Failed to remove member")
def remove_member(
    ctx: GroupContext, group_id: str, member_id: str, caller_id: str
) -> OperationResult:
    """Creator-only removal of another member."""
    require(group_id=group_id, member_id=member_id, caller_id=caller_id)

    def _txn(txn: StoreTransaction) -> Departure:
        data = txn.get_document(group_path(group_id))
        if data is None:
            raise NotFoundError("Group not found")
        group = Group.from_dict(group_id, data)
        if not group.is_creator(caller_id):
            raise UnauthorizedError("Only the creator can remove members")
        if group.is_creator(member_id):
            raise ValidationError("Cannot remove the group creator")
        if member_id == caller_id:
            raise ValidationError("Cannot remove yourself. Use leave group instead.")
        if not group.is_member(member_id):
            raise NotMemberError("User is not a member of this group")

        group.remove_member(member_id)
        if not group.member_ids:
            txn.delete_document(group_path(group_id))
            return Departure(group_deleted=True)
        txn.update_document(
            group_path(group_id),
            {**group.membership_fields(), "updatedAt": server_timestamp()},
        )
        return Departure(remaining_ids=list(group.member_ids))

    departure = ctx.documents.run_transaction(_txn)
    remove_group_meta(ctx, member_id, group_id)
    if departure.group_deleted:
        cascade_group_removal(ctx, group_id, member_ids=[])
        return ok(groupDeleted=True)
    return ok()


@operation("Failed to make member creator")
def make_member_creator(
    ctx: GroupContext, group_id: str, target_id: str, current_creator_id: str
) -> OperationResult:
    """Hand creator status to another member. There is no way back."""
    require(
        group_id=group_id, target_id=target_id, current_creator_id=current_creator_id
    )

    def _txn(txn: StoreTransaction) -> Group:
        data = txn.get_document(group_path(group_id))
        if data is None:
            raise NotFoundError("Group not found")
        group = Group.from_dict(group_id, data)
        if not group.is_creator(current_creator_id):
            raise UnauthorizedError("Only the creator can transfer creator status")
        if not group.is_member(target_id):
            raise NotMemberError("User is not a member of this group")
        if target_id == current_creator_id:
            raise ValidationError("You are already the creator")
        txn.update_document(
            group_path(group_id),
            {"createdBy": target_id, "updatedAt": server_timestamp()},
        )
        return group

    group = ctx.documents.run_transaction(_txn)
    propagate_meta_fields(ctx, group_id, group.member_ids, {"createdBy": target_id})
    return ok(newCreatorId=target_id)
