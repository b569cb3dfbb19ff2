"""Registration, credential checks, session tokens and password reset."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Dict

import jwt
from flask import current_app
from sqlalchemy import or_

from model.user import User
from social import store
from social.errors import Conflict, NotFound, Unauthenticated, ValidationError
from social.notifier import get_notifier


logger = logging.getLogger(__name__)

RESET_SUBJECT = "Password Reset Request for your linkify account"


def _encode(payload: Dict, hours: int) -> str:
    claims = dict(payload)
    claims["exp"] = datetime.utcnow() + timedelta(hours=hours)
    return jwt.encode(claims, current_app.config["SECRET_KEY"], algorithm="HS256")


def _decode(token: str) -> Dict:
    try:
        return jwt.decode(token, current_app.config["SECRET_KEY"], algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Authentication token expired")
    except jwt.InvalidTokenError:
        raise Unauthenticated("Invalid authentication token")


def issue_token(user: User) -> str:
    return _encode(
        {"_id": user.id, "username": user.username, "purpose": "session"},
        int(current_app.config.get("JWT_EXPIRY_HOURS", 12)),
    )


def user_for_token(token: str) -> User:
    """Resolve a session token to its user or raise Unauthenticated."""
    if not token:
        raise Unauthenticated("Authentication Token is missing!")
    payload = _decode(token)
    if payload.get("purpose") != "session":
        raise Unauthenticated("Invalid authentication token")
    user = store.find_one(User, User.id == payload.get("_id"))
    if user is None:
        raise Unauthenticated("Invalid authentication token")
    return user


def register(username, email, password) -> User:
    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not username or not email or not password:
        raise ValidationError("Missing required form fields!")

    existing = store.find_one(User, or_(User._username == username, User._email == email))
    if existing:
        raise Conflict("Username is already taken!" if existing.username == username else "Email is already registered!")

    user = User(username=username, email=email, password=password)
    store.save(user)
    logger.info("Registered user %s (%s)", user.id, username)
    return user


def authenticate(username, password) -> User:
    if not username or not password:
        raise ValidationError("Please provide username and password!")
    user = store.find_one(User, User._username == username)
    if user is None or not user.is_password(password):
        raise Unauthenticated("Invalid credentials!")
    return user


def request_password_reset(email) -> str:
    email = (email or "").strip().lower()
    if not email:
        raise ValidationError("Email is required!")
    user = store.find_one(User, User._email == email)
    if user is None:
        raise NotFound("This email is not registered!")

    hours = int(current_app.config.get("RESET_TOKEN_HOURS", 1))
    token = _encode({"_id": user.id, "purpose": "reset"}, hours)
    user.reset_token = token
    user.reset_token_expires = datetime.utcnow() + timedelta(hours=hours)
    store.save(user)

    link = f"{current_app.config['PASSWORD_RESET_URL']}?resetToken={token}"
    get_notifier().send(user.email, RESET_SUBJECT, f"Click this link to reset your password: {link}")
    logger.info("Password reset requested for user %s", user.id)
    return token


def reset_password(token, new_password) -> User:
    if not token or not new_password:
        raise ValidationError("Reset token and new password are required!")
    try:
        payload = _decode(token)
    except Unauthenticated:
        raise ValidationError("Invalid or expired token!")
    user = store.find_one(User, User.id == payload.get("_id"))
    if (
        user is None
        or payload.get("purpose") != "reset"
        or user.reset_token != token
        or user.reset_token_expires is None
        or user.reset_token_expires <= datetime.utcnow()
    ):
        raise ValidationError("Invalid or expired token!")

    user.set_password(new_password)
    user.reset_token = None
    user.reset_token_expires = None
    store.save(user)
    logger.info("Password reset for user %s", user.id)
    return user
