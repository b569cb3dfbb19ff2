"""REST endpoints for chats and message history."""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from api.jwt_authorize import token_required
from social import conversations, ledger
from social.summaries import serialize_chat


chats_api = Blueprint("chats_api", __name__, url_prefix="/api/chats")


@chats_api.route("", methods=["GET"])
@token_required()
def chat_list():
    return jsonify({"chats": conversations.list_for_user(g.current_user.id)}), 200


@chats_api.route("/<int:chat_id>/messages", methods=["GET"])
@token_required()
def chat_messages(chat_id):
    chat = conversations.get_chat(chat_id)
    conversations.require_participant(chat, g.current_user.id)
    result = ledger.page(
        chat.id,
        request.args.get("page", 1),
        request.args.get("limit"),
        max_size=current_app.config.get("MAX_CHAT_PAGE_SIZE", 60),
    )
    return jsonify(result.to_dict()), 200


@chats_api.route("/createChat", methods=["POST"])
@token_required()
def create_chat():
    data = request.get_json(silent=True) or {}
    chat = conversations.get_or_create_direct(g.current_user.id, data.get("receiverId"))
    return jsonify(serialize_chat(chat)), 201


@chats_api.route("/sendMessages", methods=["POST"])
@token_required()
def send_message():
    data = request.get_json(silent=True) or {}
    message = ledger.append(g.current_user.id, data.get("chatId"), data.get("content"))
    return jsonify({"newMessage": message}), 201


@chats_api.route("/createGroup", methods=["POST"])
@token_required()
def create_group():
    data = request.get_json(silent=True) or {}
    chat = conversations.create_group(g.current_user.id, data.get("participants"), data.get("groupName"))
    return jsonify(serialize_chat(chat)), 201
