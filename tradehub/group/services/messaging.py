"""Posting chat messages and fanning out the inbox preview."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from tradehub.core.constants import GROUP_MESSAGES_ROOT
from tradehub.core.results import ok, operation, require
from tradehub.errors import UnauthorizedError, ValidationError

from ..models import Identity
from ..permissions import has_permission
from .context import meta_path

if TYPE_CHECKING:
    from tradehub.core.types import OperationResult

    from .context import GroupContext

logger = logging.getLogger(__name__)


def _unread_count(ctx: GroupContext, user_id: str, group_id: str) -> int:
    try:
        value = ctx.realtime.get_path(f"{meta_path(user_id, group_id)}/unreadCount")
    except Exception as e:
        logger.warning(f"Could not read unread count for {user_id}: {e}")
        return 0
    return value if isinstance(value, int) else 0


@operation("Failed to send message")
def post_message(
    ctx: GroupContext, group_id: str, sender: Identity, text: str
) -> OperationResult:
    """Append a message and refresh every member's projection in one update."""
    require(group_id=group_id, sender_id=sender.id)
    text = (text or "").strip()
    if not text:
        raise ValidationError("Message cannot be empty")

    group = ctx.load_group(group_id)
    if not has_permission(group, sender.id, "send_message"):
        raise UnauthorizedError("You cannot send messages in this group")

    timestamp = ctx.now()
    message_id = f"{timestamp}_{sender.id}"
    updates: dict[str, Any] = {
        f"{GROUP_MESSAGES_ROOT}/{group_id}/messages/{message_id}": {
            "text": text,
            "senderId": sender.id,
            "senderName": sender.display_name,
            "senderAvatar": sender.avatar,
            "timestamp": timestamp,
        }
    }
    for uid in group.member_ids:
        base = meta_path(uid, group_id)
        updates[f"{base}/lastMessage"] = text
        updates[f"{base}/lastMessageTimestamp"] = timestamp
        updates[f"{base}/lastMessageSenderId"] = sender.id
        updates[f"{base}/lastMessageSenderName"] = sender.display_name
        updates[f"{base}/unreadCount"] = (
            0 if uid == sender.id else _unread_count(ctx, uid, group_id) + 1
        )

    ctx.realtime.batch_update(updates)
    return ok(messageId=message_id, timestamp=timestamp)
