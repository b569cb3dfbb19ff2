"""Chat lifecycle: direct-chat deduplication, groups, and per-user chat lists."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from model.social import Chat, ChatMember, normalize_user_pair
from model.user import User
from social import store
from social.errors import AccessDenied, Conflict, InvalidOperation, NotFound, ValidationError
from social.summaries import serialize_chat


logger = logging.getLogger(__name__)

GROUP_NAME_MAX_LENGTH = 120


def _to_int(value, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a user id")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a user id")


def find_direct_chat(user_a: int, user_b: int) -> Optional[Chat]:
    low, high = normalize_user_pair(user_a, user_b)
    return store.find_one(
        Chat,
        Chat.is_group.is_(False),
        Chat.dm_low_user_id == low,
        Chat.dm_high_user_id == high,
    )


def get_or_create_direct(user_id, peer_id) -> Chat:
    """Return the one direct chat for the pair, creating it on first use.

    Two concurrent creators race on the pair's unique key; the loser gets a
    Conflict from the store and answers with the winner's chat.
    """
    if peer_id is None or peer_id == "":
        raise ValidationError("Receiver required")
    user_id = _to_int(user_id, "user")
    peer_id = _to_int(peer_id, "receiverId")
    if user_id == peer_id:
        raise InvalidOperation("Cannot start a direct chat with yourself")

    store.find_by_id(User, user_id, "User")
    store.find_by_id(User, peer_id, "User")

    chat = find_direct_chat(user_id, peer_id)
    if chat:
        return chat

    chat = Chat(is_group=False, group_name=None, admins=[])
    chat.set_participants([user_id, peer_id])
    chat.sync_dm_pair(user_id, peer_id)
    try:
        store.save(chat)
    except Conflict:
        existing = find_direct_chat(user_id, peer_id)
        if existing is None:
            raise
        logger.warning("Direct chat race for users %s/%s resolved to chat %s", user_id, peer_id, existing.id)
        return existing

    logger.info("Created direct chat %s for users %s/%s", chat.id, user_id, peer_id)
    return chat


def create_group(creator_id, participant_ids, group_name: Optional[str] = None) -> Chat:
    if not participant_ids:
        raise InvalidOperation("Participants are required")
    if not isinstance(participant_ids, (list, tuple, set)):
        raise ValidationError("Participants must be a list of user ids")

    creator_id = _to_int(creator_id, "user")
    member_ids: List[int] = []
    for raw in list(participant_ids) + [creator_id]:
        value = _to_int(raw, "participant")
        if value not in member_ids:
            member_ids.append(value)
    if len(member_ids) < 2:
        raise InvalidOperation("A group needs at least one other participant")

    known = {row.id for row in store.find(User, User.id.in_(member_ids))}
    missing = [value for value in member_ids if value not in known]
    if missing:
        raise NotFound(f"Users not found: {missing}")

    name = (group_name or "").strip() or None
    if name and len(name) > GROUP_NAME_MAX_LENGTH:
        raise ValidationError(f"Group name exceeds {GROUP_NAME_MAX_LENGTH} characters")

    chat = Chat(is_group=True, group_name=name, admins=[creator_id])
    chat.set_participants(member_ids)
    store.save(chat)
    logger.info("Created group chat %s with %d participants", chat.id, len(member_ids))
    return chat


def get_chat(chat_id) -> Chat:
    return store.find_by_id(Chat, chat_id, "Chat")


def require_participant(chat: Chat, user_id) -> None:
    if _to_int(user_id, "user") not in chat.participants:
        raise AccessDenied("Access denied")


def list_for_user(user_id) -> List[Dict]:
    user_id = _to_int(user_id, "user")
    rows = store.find(
        Chat,
        Chat.members.any(ChatMember.user_id == user_id),
        order_by=[Chat.updated_at.desc(), Chat.id.desc()],
    )
    return [serialize_chat(row) for row in rows]
