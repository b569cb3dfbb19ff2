"""Append-only message ledger with the chat's last-message pointer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List

from flask import current_app

from model.social import Chat, Message
from model.user import User
from social import store
from social.conversations import require_participant
from social.errors import Conflict, StorageError, ValidationError
from social.summaries import serialize_message


logger = logging.getLogger(__name__)


@dataclass
class Page:
    messages: List[Dict] = field(default_factory=list)
    has_more: bool = False
    page: int = 1
    limit: int = 10

    def to_dict(self) -> Dict:
        return {
            "messages": self.messages,
            "has_more": self.has_more,
            "page": self.page,
            "limit": self.limit,
        }


def _clean_content(content) -> str:
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("Message content is required")
    text = content.strip()
    max_length = int(current_app.config.get("MESSAGE_MAX_LENGTH", 1200))
    if len(text) > max_length:
        raise ValidationError(f"Message exceeds {max_length} characters")
    return text


def _advance_pointer(chat_id: int, message_id: int) -> bool:
    """Move chat.last_message_id forward to message_id unless a newer message holds it."""
    chat = store.find_by_id(Chat, chat_id, "Chat")
    message = store.find_by_id(Message, message_id, "Message")
    if chat.last_message_id == message.id:
        return False
    current = None
    if chat.last_message_id:
        current = store.find_one(Message, Message.id == chat.last_message_id)
    if current is not None and current.sort_key() >= message.sort_key():
        return False
    chat.last_message_id = message.id
    chat.updated_at = message.created_at
    store.save(chat)
    return True


def append(sender_id, chat_id, content) -> Dict:
    text = _clean_content(content)
    chat = store.find_by_id(Chat, chat_id, "Chat")
    require_participant(chat, sender_id)
    sender = store.find_by_id(User, sender_id, "User")

    message = Message(chat_id=chat.id, sender_id=sender.id, content=text, created_at=datetime.utcnow())
    store.save(message)

    # the message is durable; a failed pointer write leaves it stale, never dangling
    try:
        store.with_retries(_advance_pointer, chat.id, message.id)
    except (Conflict, StorageError):
        logger.exception("Message %s stored but last-message pointer of chat %s not updated", message.id, chat.id)

    return serialize_message(message, sender)


def _page_number(value, name: str, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a positive integer")
    if number < 1:
        raise ValidationError(f"{name} must be a positive integer")
    return number


def page(chat_id, page_number=1, page_size=None, max_size=None) -> Page:
    """Newest-first slice of a chat's history.

    Fetches one row past the page to decide ``has_more`` exactly.  Each page
    is a snapshot at query time; inserts between fetches shift later pages.
    ``max_size`` clamps the page size when given; otherwise any size is honored.
    """
    number = _page_number(page_number, "page", 1)
    size = _page_number(page_size, "limit", int(current_app.config.get("DEFAULT_CHAT_PAGE_SIZE", 10)))
    if max_size is not None:
        size = min(size, int(max_size))

    chat = store.find_by_id(Chat, chat_id, "Chat")
    rows = store.find(
        Message,
        Message.chat_id == chat.id,
        order_by=[Message.created_at.desc(), Message.id.desc()],
        offset=(number - 1) * size,
        limit=size + 1,
    )
    has_more = len(rows) > size
    rows = rows[:size]

    sender_ids = {row.sender_id for row in rows}
    senders = {row.id: row for row in store.find(User, User.id.in_(list(sender_ids)))} if sender_ids else {}
    return Page(
        messages=[serialize_message(row, senders.get(row.sender_id)) for row in rows],
        has_more=has_more,
        page=number,
        limit=size,
    )
