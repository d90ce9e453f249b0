"""Permission checks for group actions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Group

CREATOR_ACTIONS = frozenset(
    {
        "delete_group",
        "add_member",
        "remove_member",
        "make_creator",
        "edit_group",
        "mute_member",
    }
)


def has_permission(group: Group | None, user_id: str | None, action: str) -> bool:
    """Return True if ``user_id`` may perform ``action`` on ``group``.

    The creator is the only privileged principal; everyone else is a plain
    member. Unknown actions are denied.
    """
    if group is None or not user_id:
        return False

    if action in CREATOR_ACTIONS:
        return group.is_creator(user_id)

    if action == "send_message":
        member = group.members.get(user_id)
        return group.is_member(user_id) and not (member and member.muted)

    if action == "view_group":
        return group.is_member(user_id)

    return False
