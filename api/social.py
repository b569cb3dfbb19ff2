"""REST endpoints for follows, follow requests and privacy."""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from api.jwt_authorize import token_required
from social import graph
from social.errors import ValidationError


social_api = Blueprint("social_api", __name__, url_prefix="/api/users")

MESSAGES = {
    graph.FollowState.REQUESTED: "Follow request sent.",
    graph.FollowState.FOLLOWING: "User followed successfully.",
}


@social_api.route("/<int:user_id>/follow", methods=["POST"])
@token_required()
def follow(user_id):
    state = graph.initiate(g.current_user.id, user_id)
    return jsonify({"message": MESSAGES[state], "state": state.value}), 200


@social_api.route("/accept-request/<int:requester_id>", methods=["POST"])
@token_required()
def accept_request(requester_id):
    state = graph.accept(g.current_user.id, requester_id)
    return jsonify({"message": "Follow request accepted", "state": state.value}), 200


@social_api.route("/reject-request/<int:requester_id>", methods=["POST"])
@token_required()
def reject_request(requester_id):
    state = graph.reject(g.current_user.id, requester_id)
    return jsonify({"message": "Follow request rejected", "state": state.value}), 200


@social_api.route("/<int:user_id>/unfollow", methods=["POST"])
@token_required()
def unfollow(user_id):
    state = graph.unfollow(g.current_user.id, user_id)
    return jsonify({"message": "User unfollowed successfully!", "state": state.value}), 200


@social_api.route("/<int:user_id>/followers", methods=["GET"])
@token_required()
def followers(user_id):
    return jsonify({"followers": graph.list_followers(g.current_user.id, user_id)}), 200


@social_api.route("/<int:user_id>/following", methods=["GET"])
@token_required()
def following(user_id):
    return jsonify({"following": graph.list_following(g.current_user.id, user_id)}), 200


@social_api.route("/<int:user_id>/relationship", methods=["GET"])
@token_required()
def relationship(user_id):
    state = graph.relationship(g.current_user.id, user_id)
    return jsonify({"user_id": user_id, "state": state.value}), 200


@social_api.route("/requests", methods=["GET"])
@token_required()
def pending_requests():
    return jsonify({"requests": graph.list_requests(g.current_user.id)}), 200


@social_api.route("/privacy", methods=["POST"])
@token_required()
def set_privacy():
    data = request.get_json(silent=True) or {}
    if not isinstance(data.get("isPrivate"), bool):
        raise ValidationError("isPrivate must be a boolean")
    user = graph.set_privacy(g.current_user.id, data["isPrivate"])
    return jsonify({"id": user.id, "is_private": bool(user.is_private)}), 200
