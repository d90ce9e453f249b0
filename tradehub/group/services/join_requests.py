"""Join-request workflow."""

from __future__ import annotations

from typing import TYPE_CHECKING

from tradehub.core.constants import JOIN_REQUESTS_COLLECTION
from tradehub.core.results import ok, operation, require
from tradehub.core.stores import server_timestamp
from tradehub.errors import (
    AlreadyMemberError,
    AlreadyProcessedError,
    DuplicateRequestError,
    GroupFullError,
    UnauthorizedError,
)

from ..models import Identity, JoinRequest, JoinRequestStatus
from .context import join_request_path
from .membership import add_member_in_transaction
from .projection import write_group_meta

if TYPE_CHECKING:
    from tradehub.core.types import OperationResult

    from .context import GroupContext


def _pending_request_exists(ctx: GroupContext, group_id: str, requester_id: str) -> bool:
    docs = ctx.documents.query_where(
        JOIN_REQUESTS_COLLECTION,
        ("groupId", "==", group_id),
        ("requesterId", "==", requester_id),
        ("status", "==", JoinRequestStatus.PENDING.value),
        limit=1,
    )
    return bool(docs)


def _load_pending_for_creator(
    ctx: GroupContext, request_id: str, creator_id: str
) -> JoinRequest:
    request = ctx.load_join_request(request_id)
    if request.creator_id != creator_id:
        raise UnauthorizedError("Only the group creator can handle join requests")
    if request.status is not JoinRequestStatus.PENDING:
        raise AlreadyProcessedError("Join request already processed")
    return request


@operation("Failed to send join request")
def send_join_request(
    ctx: GroupContext, group_id: str, requester: Identity
) -> OperationResult:
    require(group_id=group_id, requester_id=requester.id)
    group = ctx.load_group(group_id)
    if group.is_full:
        raise GroupFullError("Group is full. Cannot send join request.")
    if group.is_member(requester.id):
        raise AlreadyMemberError("You are already a member of this group")
    if _pending_request_exists(ctx, group_id, requester.id):
        raise DuplicateRequestError()

    request = JoinRequest(
        group_id=group_id,
        requester_id=requester.id,
        creator_id=group.created_by,
        requester_display_name=requester.display_name,
        requester_avatar=requester.avatar,
        group_name=group.name,
        created_at=server_timestamp(),
    )
    request_id = ctx.documents.add_document(
        JOIN_REQUESTS_COLLECTION, request.to_dict()
    )
    return ok(requestId=request_id)


@operation("Failed to approve join request")
def approve_join_request(
    ctx: GroupContext, request_id: str, creator_id: str
) -> OperationResult:
    """Add the requester to the group.

    A requester who is already a member is not an error: the request is
    closed and the result carries ``alreadyMember``. A group that filled up
    since the request was sent closes it as rejected.
    """
    require(request_id=request_id, creator_id=creator_id)
    request = _load_pending_for_creator(ctx, request_id, creator_id)
    group = ctx.load_group(request.group_id)
    closed = {
        "status": JoinRequestStatus.APPROVED.value,
        "respondedAt": server_timestamp(),
    }

    if group.is_member(request.requester_id):
        ctx.documents.update_document(join_request_path(request_id), closed)
        return ok(alreadyMember=True, message="User is already a member")
    if group.is_full:
        ctx.documents.update_document(
            join_request_path(request_id),
            {
                "status": JoinRequestStatus.REJECTED.value,
                "respondedAt": server_timestamp(),
                "rejectionReason": "Group is now full",
            },
        )
        raise GroupFullError("Group is now full")

    requester = Identity(
        id=request.requester_id,
        display_name=request.requester_display_name,
        avatar=request.requester_avatar,
    )
    group = add_member_in_transaction(
        ctx, group.id, requester, join_request_path(request_id), closed
    )
    write_group_meta(ctx, requester.id, group)
    return ok(groupId=group.id, requesterId=requester.id)


@operation("Failed to reject join request")
def reject_join_request(
    ctx: GroupContext, request_id: str, creator_id: str
) -> OperationResult:
    require(request_id=request_id, creator_id=creator_id)
    _load_pending_for_creator(ctx, request_id, creator_id)
    ctx.documents.update_document(
        join_request_path(request_id),
        {
            "status": JoinRequestStatus.REJECTED.value,
            "respondedAt": server_timestamp(),
        },
    )
    return ok()


@operation("Failed to load join requests")
def get_pending_join_requests(
    ctx: GroupContext, group_id: str, creator_id: str
) -> OperationResult:
    require(group_id=group_id, creator_id=creator_id)
    group = ctx.load_group(group_id)
    if not group.is_creator(creator_id):
        raise UnauthorizedError("Only the group creator can view join requests")

    docs = ctx.documents.query_where(
        JOIN_REQUESTS_COLLECTION,
        ("groupId", "==", group_id),
        ("status", "==", JoinRequestStatus.PENDING.value),
    )
    requests = [
        {"id": doc.id, **JoinRequest.from_dict(doc.id, doc.to_dict() or {}).to_dict()}
        for doc in docs
    ]
    return ok(requests=requests)
