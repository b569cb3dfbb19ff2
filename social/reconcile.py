"""Scheduled repair pass for state left behind by interrupted dual writes.

Run from the CLI (``flask custom reconcile``); never on the request path.
``followers`` and ``follow_requests`` rows are authoritative, ``following``
is rebuilt from them, and chat pointers are moved to each chat's newest
message.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

from model.social import Chat, Message
from model.user import User
from social import store
from social.graph import remove_id, sync_mirror


logger = logging.getLogger(__name__)


@dataclass
class ReconcileReport:
    users_checked: int = 0
    mirrors_healed: int = 0
    dangling_removed: int = 0
    requests_cleared: int = 0
    chats_checked: int = 0
    pointers_refreshed: int = 0

    def to_dict(self):
        return dict(self.__dict__)


def _clean_user(user_id: int, known_ids) -> Tuple[int, int]:
    """Drop dangling ids and accepted requests; returns (dangling, requests) removed."""
    user = store.find_by_id(User, user_id, "User")
    dangling = cleared = 0
    for field_name in ("followers", "following", "follow_requests"):
        values = getattr(user, field_name)
        for value in {v for v in values if v not in known_ids or v == user.id}:
            if remove_id(values, value):
                dangling += 1
    for value in {v for v in user.follow_requests if v in user.followers}:
        if remove_id(user.follow_requests, value):
            cleared += 1
    if dangling or cleared:
        store.save(user)
        logger.warning("Removed stale relationship ids from user %s", user_id)
    return dangling, cleared


def _heal_user(user_id: int) -> int:
    user = store.find_by_id(User, user_id, "User")
    healed = 0
    for follower_id in list(user.followers):
        follower = store.find_by_id(User, follower_id, "User")
        if sync_mirror(follower, user):
            healed += 1
            logger.warning("Added missing following entry %s -> %s", follower_id, user_id)
    for followed_id in list(user.following):
        followed = store.find_by_id(User, followed_id, "User")
        if sync_mirror(user, followed):
            healed += 1
            logger.warning("Dropped unbacked following entry %s -> %s", user_id, followed_id)
    return healed


def reconcile_follow_graph(report: ReconcileReport) -> ReconcileReport:
    user_ids = [user.id for user in store.find(User, order_by=User.id)]
    known_ids = set(user_ids)
    for user_id in user_ids:
        report.users_checked += 1
        dangling, cleared = store.with_retries(_clean_user, user_id, known_ids)
        report.dangling_removed += dangling
        report.requests_cleared += cleared
    for user_id in user_ids:
        report.mirrors_healed += store.with_retries(_heal_user, user_id)
    return report


def _refresh_pointer(chat_id: int) -> bool:
    chat = store.find_by_id(Chat, chat_id, "Chat")
    rows = store.find(
        Message,
        Message.chat_id == chat.id,
        order_by=[Message.created_at.desc(), Message.id.desc()],
        limit=1,
    )
    newest = rows[0] if rows else None
    newest_id = newest.id if newest else None
    if chat.last_message_id == newest_id:
        return False
    chat.last_message_id = newest_id
    if newest:
        chat.updated_at = newest.created_at
    store.save(chat)
    logger.warning("Refreshed last message of chat %s to %s", chat_id, newest_id)
    return True


def refresh_chat_pointers(report: ReconcileReport) -> ReconcileReport:
    for chat_id in [chat.id for chat in store.find(Chat, order_by=Chat.id)]:
        report.chats_checked += 1
        if store.with_retries(_refresh_pointer, chat_id):
            report.pointers_refreshed += 1
    return report


def run() -> ReconcileReport:
    report = ReconcileReport()
    reconcile_follow_graph(report)
    refresh_chat_pointers(report)
    logger.info("Reconciliation finished: %s", report.to_dict())
    return report
