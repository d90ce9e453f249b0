"""JSON routes for the group blueprint."""

from __future__ import annotations

from typing import Any

from flask import current_app, jsonify, request, session

from tradehub.auth.decorators import login_required
from tradehub.errors import UnauthorizedError, ValidationError

from . import bp
from .models import Identity
from .permissions import has_permission

STATUS_BY_KIND = {
    "InvalidInput": 400,
    "MissingParameters": 400,
    "NotFound": 404,
    "Unauthorized": 403,
    "NotYours": 403,
    "Duplicate": 409,
    "AlreadyMember": 409,
    "AlreadyProcessed": 409,
    "DuplicateInvite": 409,
    "DuplicateRequest": 409,
    "NotMember": 409,
    "GroupFull": 409,
    "Expired": 410,
    "StoreFailure": 500,
}


def _service():
    return current_app.extensions["tradehub"]["groups"]


def _current_identity() -> Identity:
    """The logged-in caller as an identity tuple."""
    return Identity.from_dict(
        {
            "id": session["user_id"],
            "displayName": session.get("display_name"),
            "avatar": session.get("avatar"),
        }
    )


def _payload() -> dict[str, Any]:
    return request.get_json(silent=True) or {}


def _respond(result: dict[str, Any], success_status: int = 200) -> Any:
    if result.get("success"):
        return jsonify(result), success_status
    return jsonify(result), STATUS_BY_KIND.get(result.get("errorKind"), 400)


@bp.route("/", methods=["GET"])
@login_required
def list_groups():
    """Discovery listing of active groups."""
    try:
        limit = int(request.args.get("limit", 100))
    except ValueError:
        raise ValidationError("limit must be an integer")
    return _respond(
        _service().list_groups(
            limit=max(1, min(limit, 100)),
            cursor=request.args.get("cursor") or None,
            search=request.args.get("search") or None,
            recent_only=request.args.get("recent", "").lower() in ["true", "1"],
        )
    )


@bp.route("/", methods=["POST"])
@login_required
def create_group():
    data = _payload()
    return _respond(
        _service().create_group(
            _current_identity(),
            data.get("memberIds") or [],
            data.get("name", ""),
            data.get("description", ""),
            avatar=data.get("avatar"),
            users_map=data.get("usersMap"),
        ),
        success_status=201,
    )


@bp.route("/mine", methods=["GET"])
@login_required
def my_groups():
    """The caller's inbox, with stale entries cleaned up."""
    return _respond(_service().list_user_groups(session["user_id"]))


@bp.route("/admin", methods=["GET"])
@login_required
def admin_group():
    return _respond(_service().get_user_admin_group(session["user_id"]))


@bp.route("/<string:group_id>", methods=["GET"])
@login_required
def view_group(group_id):
    group = _service().get_group(group_id)
    if not has_permission(group, session["user_id"], "view_group"):
        raise UnauthorizedError("You are not a member of this group")
    return jsonify({"success": True, "group": group.to_dict()})


@bp.route("/<string:group_id>", methods=["PATCH"])
@login_required
def update_group(group_id):
    data = _payload()
    return _respond(
        _service().update_group_details(
            group_id,
            session["user_id"],
            name=data.get("name"),
            description=data.get("description"),
            avatar=data.get("avatar"),
        )
    )


@bp.route("/<string:group_id>", methods=["DELETE"])
@login_required
def delete_group(group_id):
    """Delete a group. Only its creator may do this."""
    group = _service().get_group(group_id)
    if not has_permission(group, session["user_id"], "delete_group"):
        current_app.logger.warning(
            f"User {session['user_id']} tried to delete group {group_id}"
        )
        raise UnauthorizedError("Only the creator can delete the group")
    return _respond(_service().delete_group(group_id))


@bp.route("/<string:group_id>/leave", methods=["POST"])
@login_required
def leave_group(group_id):
    return _respond(_service().leave_group(group_id, session["user_id"]))


@bp.route("/<string:group_id>/sync", methods=["POST"])
@login_required
def sync_group(group_id):
    return _respond(_service().sync_group_projections(group_id))


@bp.route("/<string:group_id>/members", methods=["POST"])
@login_required
def add_members(group_id):
    data = _payload()
    return _respond(
        _service().add_members(
            group_id,
            data.get("memberIds") or [],
            _current_identity(),
            users_map=data.get("usersMap"),
        )
    )


@bp.route("/<string:group_id>/members/<string:member_id>", methods=["DELETE"])
@login_required
def remove_member(group_id, member_id):
    return _respond(
        _service().remove_member(group_id, member_id, session["user_id"])
    )


@bp.route("/<string:group_id>/creator", methods=["POST"])
@login_required
def make_creator(group_id):
    return _respond(
        _service().make_member_creator(
            group_id, _payload().get("targetId", ""), session["user_id"]
        )
    )


@bp.route("/<string:group_id>/invitations", methods=["POST"])
@login_required
def send_invite(group_id):
    data = _payload()
    return _respond(
        _service().send_invite(
            group_id,
            data.get("invitedUserId", ""),
            _current_identity(),
            users_map=data.get("usersMap"),
        ),
        success_status=201,
    )


@bp.route("/<string:group_id>/invitations/pending", methods=["GET"])
@login_required
def pending_invite_for_group(group_id):
    return _respond(
        _service().get_pending_invite_for_group(group_id, session["user_id"])
    )


@bp.route("/invitations", methods=["GET"])
@login_required
def pending_invitations():
    return _respond(_service().get_pending_invitations(session["user_id"]))


@bp.route("/invitations/<string:invite_id>/accept", methods=["POST"])
@login_required
def accept_invite(invite_id):
    return _respond(_service().accept_invite(invite_id, _current_identity()))


@bp.route("/invitations/<string:invite_id>/decline", methods=["POST"])
@login_required
def decline_invite(invite_id):
    return _respond(_service().decline_invite(invite_id, session["user_id"]))


@bp.route("/<string:group_id>/join-requests", methods=["POST"])
@login_required
def send_join_request(group_id):
    return _respond(
        _service().send_join_request(group_id, _current_identity()),
        success_status=201,
    )


@bp.route("/<string:group_id>/join-requests", methods=["GET"])
@login_required
def pending_join_requests(group_id):
    return _respond(
        _service().get_pending_join_requests(group_id, session["user_id"])
    )


@bp.route("/join-requests/<string:request_id>/approve", methods=["POST"])
@login_required
def approve_join_request(request_id):
    return _respond(
        _service().approve_join_request(request_id, session["user_id"])
    )


@bp.route("/join-requests/<string:request_id>/reject", methods=["POST"])
@login_required
def reject_join_request(request_id):
    return _respond(_service().reject_join_request(request_id, session["user_id"]))


@bp.route("/<string:group_id>/messages", methods=["POST"])
@login_required
def post_message(group_id):
    return _respond(
        _service().post_message(
            group_id, _current_identity(), _payload().get("text", "")
        ),
        success_status=201,
    )
