"""Identity projections and payload builders shared by the social core."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from model.social import Chat, Message
from model.user import User
from social import store


def utcnow_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def user_summary(user: Optional[User], user_id: Optional[int] = None) -> Dict:
    if not user:
        return {"id": int(user_id) if user_id is not None else None, "username": "Unknown"}
    return {"id": int(user.id), "username": user.username}


def user_summaries(user_ids: Iterable[int]) -> List[Dict]:
    """Resolve ids to projections, keeping input order and skipping unknown ids."""
    ids = [int(value) for value in user_ids]
    if not ids:
        return []
    rows = {row.id: row for row in store.find(User, User.id.in_(ids))}
    return [user_summary(rows[user_id]) for user_id in ids if user_id in rows]


def serialize_message(row: Message, sender: Optional[User] = None) -> Dict:
    if sender is None:
        sender = store.find_one(User, User.id == row.sender_id)
    return {
        "id": row.id,
        "chat_id": row.chat_id,
        "sender": user_summary(sender, row.sender_id),
        "content": row.content,
        "created_at": utcnow_iso(row.created_at),
    }


def last_message_summary(chat: Chat) -> Optional[Dict]:
    if not chat.last_message_id:
        return None
    row = store.find_one(Message, Message.id == chat.last_message_id)
    if row is None:
        return None
    sender = store.find_one(User, User.id == row.sender_id)
    return {
        "id": row.id,
        "sender": {"id": row.sender_id, "username": sender.username if sender else "Unknown"},
        "content": row.content,
        "created_at": utcnow_iso(row.created_at),
    }


def serialize_chat(chat: Chat, with_details: bool = True) -> Dict:
    payload = {
        "id": chat.id,
        "is_group": bool(chat.is_group),
        "group_name": chat.group_name,
        "admins": list(chat.admins or []),
        "last_message_id": chat.last_message_id,
        "created_at": utcnow_iso(chat.created_at),
        "updated_at": utcnow_iso(chat.updated_at),
    }
    if with_details:
        payload["participants"] = user_summaries(chat.participants)
        payload["last_message"] = last_message_summary(chat)
    else:
        payload["participants"] = chat.participants
    return payload
