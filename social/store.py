"""Entity store over the SQLAlchemy session.

Saves are atomic per single record only.  Two records are never committed
as one unit by the social core; callers sequence their writes and rely on
idempotent retries instead.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Type, TypeVar

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from app import db
from social.errors import Conflict, NotFound, StorageError


logger = logging.getLogger(__name__)

T = TypeVar("T")


def find_by_id(model: Type[T], record_id, label: Optional[str] = None) -> T:
    try:
        key = int(record_id)
    except (TypeError, ValueError):
        raise NotFound(f"{label or model.__name__} not found")
    try:
        record = db.session.get(model, key)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Lookup of %s %s failed", model.__name__, key)
        raise StorageError(str(exc)) from exc
    if record is None:
        raise NotFound(f"{label or model.__name__} not found")
    return record


def find(model: Type[T], *criteria, order_by=None, limit: Optional[int] = None, offset: int = 0) -> List[T]:
    try:
        query = model.query.filter(*criteria)
        if order_by is not None:
            query = query.order_by(*order_by) if isinstance(order_by, (list, tuple)) else query.order_by(order_by)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return query.all()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Query on %s failed", model.__name__)
        raise StorageError(str(exc)) from exc


def find_one(model: Type[T], *criteria) -> Optional[T]:
    rows = find(model, *criteria, limit=1)
    return rows[0] if rows else None


def save(record: T) -> T:
    """Persist one record; a uniqueness or version violation raises Conflict."""
    try:
        db.session.add(record)
        db.session.commit()
    except (IntegrityError, StaleDataError) as exc:
        db.session.rollback()
        raise Conflict(f"{type(record).__name__} was modified concurrently") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Saving %s failed", type(record).__name__)
        raise StorageError(str(exc)) from exc
    return record


def with_retries(operation: Callable[..., T], *args, **kwargs) -> T:
    """Run an idempotent operation, re-reading state after each Conflict."""
    attempts = max(1, int(current_app.config.get("SOCIAL_WRITE_RETRIES", 3)))
    for attempt in range(1, attempts + 1):
        try:
            return operation(*args, **kwargs)
        except Conflict:
            if attempt == attempts:
                raise
            logger.warning(
                "Conflict in %s (attempt %d/%d), retrying",
                getattr(operation, "__name__", "operation"),
                attempt,
                attempts,
            )
            db.session.expire_all()
    raise Conflict("retries exhausted")
