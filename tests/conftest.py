"""Shared test fixtures and factories."""

import os

# Point the app at an in-memory database before it is imported.
os.environ["SOCIAL_DATABASE_URI"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest

from app import db
from main import app as flask_app
from model.user import User
from social import accounts, store

# =============================================================================
# Application Fixtures
# =============================================================================


@pytest.fixture
def app():
    """Application with a fresh schema; no app context is held open."""
    flask_app.config.update(TESTING=True, SMTP_HOST=None)
    flask_app.extensions.pop("social_notifier", None)
    with flask_app.app_context():
        db.create_all()
    yield flask_app
    with flask_app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """App context for calling the social core directly."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


# =============================================================================
# Factories
# =============================================================================


def make_user(username: str, is_private: bool = False, password: str = "secret") -> User:
    user = accounts.register(username, f"{username}@example.com", password)
    if is_private:
        user.is_private = True
        store.save(user)
    return user


def reload(user_id: int) -> User:
    db.session.expire_all()
    return store.find_by_id(User, user_id)


def auth_headers(app, user_id: int) -> dict:
    with app.app_context():
        token = accounts.issue_token(store.find_by_id(User, user_id))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def users(app):
    """Ids of alice (private), bob and carol (public)."""
    with app.app_context():
        alice = make_user("alice", is_private=True)
        bob = make_user("bob")
        carol = make_user("carol")
        return {"alice": alice.id, "bob": bob.id, "carol": carol.id}
