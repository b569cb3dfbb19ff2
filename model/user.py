from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String
from sqlalchemy.ext.mutable import MutableList
from werkzeug.security import check_password_hash, generate_password_hash

from app import db


def utcnow() -> datetime:
    return datetime.utcnow()


class User(db.Model):
    """
    Account record.

    Relationship sets (followers, following, follow_requests) live on the
    row itself as JSON id lists, so each follow operation writes one or two
    independent rows.  ``version`` is checked on every flush; a writer that
    saved a stale copy gets a StaleDataError instead of silently clobbering
    a concurrent change.
    """
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    _username = Column(String(64), unique=True, nullable=False)
    _email = Column(String(255), unique=True, nullable=False)
    _password = Column(String(255), nullable=False)
    is_private = Column(Boolean, nullable=False, default=False)
    followers = Column(MutableList.as_mutable(JSON), nullable=False, default=list)
    following = Column(MutableList.as_mutable(JSON), nullable=False, default=list)
    follow_requests = Column(MutableList.as_mutable(JSON), nullable=False, default=list)
    reset_token = Column(String(512), nullable=True)
    reset_token_expires = Column(DateTime, nullable=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version}

    def __init__(self, username, email, password, is_private=False):
        self._username = username
        self._email = email
        self.set_password(password)
        self.is_private = is_private
        self.followers = []
        self.following = []
        self.follow_requests = []

    @property
    def username(self):
        return self._username

    @property
    def email(self):
        return self._email

    def set_password(self, password):
        """Store a salted hash, never the password itself"""
        self._password = generate_password_hash(password)

    def is_password(self, password):
        return check_password_hash(self._password, password)

    # Flask-Login protocol
    @property
    def is_authenticated(self):
        return True

    @property
    def is_active(self):
        return True

    @property
    def is_anonymous(self):
        return False

    def get_id(self):
        return str(self.id)

    def read(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'is_private': bool(self.is_private),
            'followers': list(self.followers or []),
            'following': list(self.following or []),
            'follow_requests': list(self.follow_requests or []),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
