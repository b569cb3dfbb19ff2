"""Follow / follow-request state machine over pairs of user records.

State for an ordered pair (actor, target) is read from the target row:
``following`` when the actor is in ``target.followers``, ``requested`` when
the actor is in ``target.follow_requests``, ``none`` otherwise.  The target
row is authoritative; ``actor.following`` mirrors it.  Every operation writes
the target row first and the mirror second, and heals the mirror of the pair
before checking its precondition, so re-running an interrupted call converges
to the same end state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple

from model.user import User
from social import store
from social.errors import (
    AccessDenied,
    AlreadyFollowing,
    AlreadyRequested,
    Conflict,
    InvalidOperation,
    NoPendingRequest,
    NotFollowing,
)
from social.summaries import user_summaries


logger = logging.getLogger(__name__)


class FollowState(str, Enum):
    NONE = "none"
    REQUESTED = "requested"
    FOLLOWING = "following"


class FollowEvent(str, Enum):
    INITIATE = "initiate"
    ACCEPT = "accept"
    REJECT = "reject"
    UNFOLLOW = "unfollow"


class Effect(str, Enum):
    ADD_REQUEST = "add_request"
    REMOVE_REQUEST = "remove_request"
    ADD_FOLLOWER = "add_follower"
    REMOVE_FOLLOWER = "remove_follower"


@dataclass(frozen=True)
class Transition:
    state: FollowState
    effects: Tuple[Effect, ...]


def transition(state: FollowState, event: FollowEvent, target_private: bool = False) -> Transition:
    """Decide the next state and the effects on the target row.

    Raises the precondition failure when ``event`` is not allowed from
    ``state``.  Pure: no storage access.
    """
    if event is FollowEvent.INITIATE:
        if state is FollowState.FOLLOWING:
            raise AlreadyFollowing("Already following the user")
        if target_private:
            if state is FollowState.REQUESTED:
                raise AlreadyRequested("Follow request already sent")
            return Transition(FollowState.REQUESTED, (Effect.ADD_REQUEST,))
        if state is FollowState.REQUESTED:
            # target went public while the request was pending
            return Transition(FollowState.FOLLOWING, (Effect.REMOVE_REQUEST, Effect.ADD_FOLLOWER))
        return Transition(FollowState.FOLLOWING, (Effect.ADD_FOLLOWER,))

    if event in (FollowEvent.ACCEPT, FollowEvent.REJECT):
        if state is not FollowState.REQUESTED:
            raise NoPendingRequest("No follow request found")
        if event is FollowEvent.ACCEPT:
            return Transition(FollowState.FOLLOWING, (Effect.REMOVE_REQUEST, Effect.ADD_FOLLOWER))
        return Transition(FollowState.NONE, (Effect.REMOVE_REQUEST,))

    if event is FollowEvent.UNFOLLOW:
        if state is not FollowState.FOLLOWING:
            raise NotFollowing("User is not in the followers")
        return Transition(FollowState.NONE, (Effect.REMOVE_FOLLOWER,))

    raise InvalidOperation(f"Unknown follow event {event!r}")


def state_of(actor: User, target: User) -> FollowState:
    if actor.id in (target.followers or []):
        return FollowState.FOLLOWING
    if actor.id in (target.follow_requests or []):
        return FollowState.REQUESTED
    return FollowState.NONE


def add_id(values: List[int], value: int) -> bool:
    if value in values:
        return False
    values.append(value)
    return True


def remove_id(values: List[int], value: int) -> bool:
    if value not in values:
        return False
    while value in values:
        values.remove(value)
    return True


def apply_effects(actor: User, target: User, effects: Tuple[Effect, ...]) -> bool:
    """Apply effects to the target row in memory; returns True when it changed."""
    changed = False
    for effect in effects:
        if effect is Effect.ADD_REQUEST:
            changed |= add_id(target.follow_requests, actor.id)
        elif effect is Effect.REMOVE_REQUEST:
            changed |= remove_id(target.follow_requests, actor.id)
        elif effect is Effect.ADD_FOLLOWER:
            changed |= add_id(target.followers, actor.id)
        elif effect is Effect.REMOVE_FOLLOWER:
            changed |= remove_id(target.followers, actor.id)
    return changed


def sync_mirror(actor: User, target: User) -> bool:
    """Make ``actor.following`` agree with ``target.followers`` and persist it."""
    expected = actor.id in (target.followers or [])
    if expected:
        changed = add_id(actor.following, target.id)
    else:
        changed = remove_id(actor.following, target.id)
    if changed:
        store.save(actor)
    return changed


def _load_pair(actor_id, target_id) -> Tuple[User, User]:
    if actor_id is not None and target_id is not None and str(actor_id) == str(target_id):
        raise InvalidOperation("You can't follow yourself")
    target = store.find_by_id(User, target_id, "User")
    actor = store.find_by_id(User, actor_id, "User")
    return actor, target


def _heal_pair(actor_id: int, target_id: int) -> bool:
    actor = store.find_by_id(User, actor_id, "User")
    target = store.find_by_id(User, target_id, "User")
    return sync_mirror(actor, target)


def _run(actor: User, target: User, event: FollowEvent) -> FollowState:
    actor_id, target_id = actor.id, target.id
    if sync_mirror(actor, target):
        logger.warning("Healed following mirror of user %s for target %s", actor_id, target_id)

    step = transition(state_of(actor, target), event, bool(target.is_private))
    if apply_effects(actor, target, step.effects):
        store.save(target)
    # the target row is committed; only the mirror is retried from here on
    try:
        store.with_retries(_heal_pair, actor_id, target_id)
    except Conflict:
        logger.exception(
            "%s committed for user %s -> user %s but the following mirror was not written",
            event.value,
            actor_id,
            target_id,
        )
    logger.info("%s: user %s -> user %s is now %s", event.value, actor_id, target_id, step.state.value)
    return step.state


def _initiate(actor_id, target_id) -> FollowState:
    actor, target = _load_pair(actor_id, target_id)
    return _run(actor, target, FollowEvent.INITIATE)


def _respond(recipient_id, requester_id, event: FollowEvent) -> FollowState:
    requester, recipient = _load_pair(requester_id, recipient_id)
    return _run(requester, recipient, event)


def _unfollow(actor_id, target_id) -> FollowState:
    actor, target = _load_pair(actor_id, target_id)
    return _run(actor, target, FollowEvent.UNFOLLOW)


def initiate(actor_id, target_id) -> FollowState:
    """Follow a public account or send a follow request to a private one."""
    return store.with_retries(_initiate, actor_id, target_id)


def accept(recipient_id, requester_id) -> FollowState:
    return store.with_retries(_respond, recipient_id, requester_id, FollowEvent.ACCEPT)


def reject(recipient_id, requester_id) -> FollowState:
    return store.with_retries(_respond, recipient_id, requester_id, FollowEvent.REJECT)


def unfollow(actor_id, target_id) -> FollowState:
    return store.with_retries(_unfollow, actor_id, target_id)


def relationship(actor_id, target_id) -> FollowState:
    actor, target = _load_pair(actor_id, target_id)
    return state_of(actor, target)


def _visible_subject(viewer_id, subject_id) -> User:
    subject = store.find_by_id(User, subject_id, "User")
    viewer = store.find_by_id(User, viewer_id, "User")
    if not subject.is_private or viewer.id == subject.id or subject.id in (viewer.following or []):
        return subject
    raise AccessDenied("Account is private")


def list_followers(viewer_id, subject_id) -> List[Dict]:
    subject = _visible_subject(viewer_id, subject_id)
    return user_summaries(subject.followers or [])


def list_following(viewer_id, subject_id) -> List[Dict]:
    subject = _visible_subject(viewer_id, subject_id)
    return user_summaries(subject.following or [])


def list_requests(user_id) -> List[Dict]:
    user = store.find_by_id(User, user_id, "User")
    return user_summaries(user.follow_requests or [])


def _set_privacy(user_id, is_private: bool) -> User:
    user = store.find_by_id(User, user_id, "User")
    if bool(user.is_private) != bool(is_private):
        user.is_private = bool(is_private)
        store.save(user)
        logger.info("User %s privacy set to %s", user.id, "private" if is_private else "public")
    return user


def set_privacy(user_id, is_private: bool) -> User:
    return store.with_retries(_set_privacy, user_id, is_private)
