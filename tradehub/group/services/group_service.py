"""Service object exposing every group operation on one set of store handles."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Sequence

from . import invitations, join_requests, lifecycle, membership, messaging, projection
from .context import GroupContext

if TYPE_CHECKING:
    from tradehub.core.stores import DocumentStore, RealtimeStore
    from tradehub.core.types import OperationResult

    from ..models import Identity


class GroupService:
    """Group membership operations bound to injected store handles.

    Every method returns an operation result dict and never raises.
    """

    def __init__(  # noqa: PLR0913
        self,
        documents: DocumentStore,
        realtime: RealtimeStore,
        max_members: int | None = None,
        invite_ttl_days: int | None = None,
        clock: Callable[[], int] | None = None,
        pick_successor: Callable[[Sequence[str]], str] | None = None,
    ) -> None:
        options: dict[str, Any] = {}
        if max_members is not None:
            options["max_members"] = max_members
        if invite_ttl_days is not None:
            options["invite_ttl_days"] = invite_ttl_days
        if clock is not None:
            options["clock"] = clock
        if pick_successor is not None:
            options["pick_successor"] = pick_successor
        self.ctx = GroupContext(documents=documents, realtime=realtime, **options)

    # Invitations

    def send_invite(
        self,
        group_id: str,
        invited_user_id: str,
        inviter: Identity,
        users_map: dict[str, dict[str, Any]] | None = None,
    ) -> OperationResult:
        return invitations.send_invite(
            self.ctx, group_id, invited_user_id, inviter, users_map
        )

    def accept_invite(self, invite_id: str, user: Identity) -> OperationResult:
        return invitations.accept_invite(self.ctx, invite_id, user)

    def decline_invite(self, invite_id: str, user_id: str) -> OperationResult:
        return invitations.decline_invite(self.ctx, invite_id, user_id)

    def add_members(
        self,
        group_id: str,
        member_ids: list[str],
        inviter: Identity,
        users_map: dict[str, dict[str, Any]] | None = None,
    ) -> OperationResult:
        return invitations.add_members(
            self.ctx, group_id, member_ids, inviter, users_map
        )

    def get_pending_invitations(self, user_id: str) -> OperationResult:
        return invitations.get_pending_invitations(self.ctx, user_id)

    def get_pending_invite_for_group(
        self, group_id: str, user_id: str
    ) -> OperationResult:
        return invitations.get_pending_invite_for_group(self.ctx, group_id, user_id)

    def prune_expired_invitations(self) -> OperationResult:
        return invitations.prune_expired_invitations(self.ctx)

    # Join requests

    def send_join_request(self, group_id: str, requester: Identity) -> OperationResult:
        return join_requests.send_join_request(self.ctx, group_id, requester)

    def approve_join_request(self, request_id: str, creator_id: str) -> OperationResult:
        return join_requests.approve_join_request(self.ctx, request_id, creator_id)

    def reject_join_request(self, request_id: str, creator_id: str) -> OperationResult:
        return join_requests.reject_join_request(self.ctx, request_id, creator_id)

    def get_pending_join_requests(
        self, group_id: str, creator_id: str
    ) -> OperationResult:
        return join_requests.get_pending_join_requests(self.ctx, group_id, creator_id)

    # Membership

    def leave_group(self, group_id: str, user_id: str) -> OperationResult:
        return membership.leave_group(self.ctx, group_id, user_id)

    def remove_member(
        self, group_id: str, member_id: str, caller_id: str
    ) -> OperationResult:
        return membership.remove_member(self.ctx, group_id, member_id, caller_id)

    def make_member_creator(
        self, group_id: str, target_id: str, current_creator_id: str
    ) -> OperationResult:
        return membership.make_member_creator(
            self.ctx, group_id, target_id, current_creator_id
        )

    # Lifecycle

    def create_group(  # noqa: PLR0913
        self,
        creator: Identity,
        member_ids: list[str],
        name: str,
        description: str,
        avatar: str | None = None,
        users_map: dict[str, dict[str, Any]] | None = None,
    ) -> OperationResult:
        return lifecycle.create_group(
            self.ctx, creator, member_ids, name, description, avatar, users_map
        )

    def delete_group(self, group_id: str) -> OperationResult:
        return lifecycle.delete_group(self.ctx, group_id)

    def get_user_admin_group(self, user_id: str) -> OperationResult:
        return lifecycle.get_user_admin_group(self.ctx, user_id)

    def update_group_details(  # noqa: PLR0913
        self,
        group_id: str,
        user_id: str,
        name: str | None = None,
        description: str | None = None,
        avatar: str | None = None,
    ) -> OperationResult:
        return lifecycle.update_group_details(
            self.ctx, group_id, user_id, name, description, avatar
        )

    def list_groups(
        self,
        limit: int = lifecycle.EXPLORE_PAGE_SIZE,
        cursor: str | None = None,
        search: str | None = None,
        recent_only: bool = False,
    ) -> OperationResult:
        return lifecycle.list_groups(self.ctx, limit, cursor, search, recent_only)

    # Projection and messages

    def list_user_groups(self, user_id: str) -> OperationResult:
        return projection.list_user_groups(self.ctx, user_id)

    def sync_group_projections(self, group_id: str) -> OperationResult:
        return projection.sync_group_projections(self.ctx, group_id)

    def post_message(
        self, group_id: str, sender: Identity, text: str
    ) -> OperationResult:
        return messaging.post_message(self.ctx, group_id, sender, text)

    def get_group(self, group_id: str):
        """Load the group record, raising ``NotFoundError`` if it is missing."""
        return self.ctx.load_group(group_id)
