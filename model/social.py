"""Chat and message models for direct conversations, groups, and history."""

from datetime import datetime

from sqlalchemy import Index, UniqueConstraint
from sqlalchemy.ext.mutable import MutableList

from app import db


def utcnow() -> datetime:
    return datetime.utcnow()


def normalize_user_pair(user_a: int, user_b: int):
    low = int(min(user_a, user_b))
    high = int(max(user_a, user_b))
    return low, high


class Chat(db.Model):
    __tablename__ = "chats"

    id = db.Column(db.Integer, primary_key=True)
    is_group = db.Column(db.Boolean, nullable=False, default=False, index=True)
    group_name = db.Column(db.String(120), nullable=True)
    admins = db.Column(MutableList.as_mutable(db.JSON), nullable=False, default=list)
    dm_low_user_id = db.Column(db.Integer, nullable=True, index=True)
    dm_high_user_id = db.Column(db.Integer, nullable=True, index=True)
    last_message_id = db.Column(db.Integer, nullable=True)
    version = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    __table_args__ = (
        UniqueConstraint("dm_low_user_id", "dm_high_user_id", name="uq_chats_dm_pair"),
    )
    __mapper_args__ = {"version_id_col": version}

    members = db.relationship(
        "ChatMember",
        back_populates="chat",
        cascade="all, delete-orphan",
        order_by="ChatMember.position",
    )

    @property
    def participants(self):
        return [row.user_id for row in self.members]

    def set_participants(self, user_ids) -> None:
        self.members = [ChatMember(user_id=user_id, position=index) for index, user_id in enumerate(user_ids)]

    def sync_dm_pair(self, user_a: int, user_b: int) -> None:
        low, high = normalize_user_pair(user_a, user_b)
        self.dm_low_user_id = low
        self.dm_high_user_id = high


class ChatMember(db.Model):
    __tablename__ = "chat_members"

    chat_id = db.Column(db.Integer, db.ForeignKey("chats.id"), primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), primary_key=True, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    joined_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    chat = db.relationship("Chat", back_populates="members")


class Message(db.Model):
    __tablename__ = "messages"

    id = db.Column(db.Integer, primary_key=True)
    chat_id = db.Column(db.Integer, db.ForeignKey("chats.id"), nullable=False, index=True)
    sender_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_messages_chat_created", "chat_id", "created_at", "id"),
    )

    def sort_key(self):
        return (self.created_at, self.id)
