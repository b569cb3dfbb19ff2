"""Tests for message append, the last-message pointer and history pages."""

from datetime import datetime, timedelta

import pytest

from app import db
from model.social import Chat, Message
from social import conversations, ledger, store
from social.errors import AccessDenied, NotFound, ValidationError


@pytest.fixture
def chat_id(ctx, users):
    return conversations.get_or_create_direct(users["bob"], users["carol"]).id


def current_chat(chat_id):
    db.session.expire_all()
    return store.find_by_id(Chat, chat_id)


class TestAppend:
    def test_single_message_scenario(self, ctx, users, chat_id):
        message = ledger.append(users["bob"], chat_id, "hi")
        assert message["content"] == "hi"
        assert message["sender"] == {"id": users["bob"], "username": "bob"}
        assert message["chat_id"] == chat_id

        page = ledger.page(chat_id, 1, 10)
        assert [row["content"] for row in page.messages] == ["hi"]
        assert page.has_more is False
        assert current_chat(chat_id).last_message_id == message["id"]

    def test_content_is_trimmed(self, ctx, users, chat_id):
        assert ledger.append(users["bob"], chat_id, "  hello  ")["content"] == "hello"

    @pytest.mark.parametrize("content", ["", "   ", None, 42])
    def test_empty_content(self, ctx, users, chat_id, content):
        with pytest.raises(ValidationError):
            ledger.append(users["bob"], chat_id, content)

    def test_overlong_content(self, ctx, users, chat_id):
        limit = ctx.config["MESSAGE_MAX_LENGTH"]
        with pytest.raises(ValidationError):
            ledger.append(users["bob"], chat_id, "x" * (limit + 1))

    def test_unknown_chat(self, ctx, users):
        with pytest.raises(NotFound):
            ledger.append(users["bob"], 555, "hello")

    def test_non_participant_leaves_pointer_unchanged(self, ctx, users, chat_id):
        first = ledger.append(users["carol"], chat_id, "first")
        with pytest.raises(AccessDenied):
            ledger.append(users["alice"], chat_id, "intruder")
        assert current_chat(chat_id).last_message_id == first["id"]
        assert len(store.find(Message, Message.chat_id == chat_id)) == 1

    def test_pointer_tracks_newest_message(self, ctx, users, chat_id):
        sent = [ledger.append(users["bob"], chat_id, f"message {n}") for n in range(5)]
        assert current_chat(chat_id).last_message_id == sent[-1]["id"]

    def test_pointer_never_moves_backwards(self, ctx, users, chat_id):
        newest = ledger.append(users["bob"], chat_id, "newest")
        older = Message(
            chat_id=chat_id,
            sender_id=users["carol"],
            content="delayed",
            created_at=datetime.utcnow() - timedelta(minutes=5),
        )
        store.save(older)
        assert ledger._advance_pointer(chat_id, older.id) is False
        assert current_chat(chat_id).last_message_id == newest["id"]

    def test_group_message(self, ctx, users):
        group = conversations.create_group(users["alice"], [users["bob"], users["carol"]], "trio")
        message = ledger.append(users["carol"], group.id, "hey all")
        assert current_chat(group.id).last_message_id == message["id"]


class TestPage:
    def test_reverse_chronological(self, ctx, users, chat_id):
        sent = [ledger.append(users["bob"], chat_id, f"m{n}") for n in range(6)]
        page = ledger.page(chat_id, 1, 6)
        assert [row["id"] for row in page.messages] == [row["id"] for row in reversed(sent)]
        assert page.has_more is False
        assert current_chat(chat_id).last_message_id == sent[-1]["id"]

    def test_has_more_is_exact_on_page_boundary(self, ctx, users, chat_id):
        for n in range(10):
            ledger.append(users["bob"], chat_id, f"m{n}")
        first = ledger.page(chat_id, 1, 5)
        second = ledger.page(chat_id, 2, 5)
        third = ledger.page(chat_id, 3, 5)
        assert first.has_more is True
        assert second.has_more is False
        assert third.messages == []
        assert [row["content"] for row in first.messages] == ["m9", "m8", "m7", "m6", "m5"]
        assert [row["content"] for row in second.messages] == ["m4", "m3", "m2", "m1", "m0"]

    def test_timestamp_ties_broken_by_id(self, ctx, users, chat_id):
        stamp = datetime.utcnow()
        rows = []
        for n in range(3):
            row = Message(chat_id=chat_id, sender_id=users["bob"], content=f"tie{n}", created_at=stamp)
            store.save(row)
            rows.append(row.id)
        page = ledger.page(chat_id, 1, 3)
        assert [row["id"] for row in page.messages] == sorted(rows, reverse=True)

    def test_defaults_and_cap(self, ctx, users, chat_id):
        page = ledger.page(chat_id)
        assert page.page == 1
        assert page.limit == ctx.config["DEFAULT_CHAT_PAGE_SIZE"]
        capped = ledger.page(chat_id, 1, 10_000, max_size=ctx.config["MAX_CHAT_PAGE_SIZE"])
        assert capped.limit == ctx.config["MAX_CHAT_PAGE_SIZE"]

    def test_page_size_larger_than_http_cap(self, ctx, users, chat_id):
        total = ctx.config["MAX_CHAT_PAGE_SIZE"] + 1
        for n in range(total):
            ledger.append(users["bob"], chat_id, f"m{n}")
        page = ledger.page(chat_id, 1, total)
        assert len(page.messages) == total
        assert page.limit == total
        assert page.has_more is False

    @pytest.mark.parametrize("number,size", [(0, 10), (1, 0), ("x", 10), (1, -3)])
    def test_invalid_numbers(self, ctx, users, chat_id, number, size):
        with pytest.raises(ValidationError):
            ledger.page(chat_id, number, size)

    def test_unknown_chat(self, ctx, users):
        with pytest.raises(NotFound):
            ledger.page(999, 1, 10)

    def test_to_dict(self, ctx, users, chat_id):
        ledger.append(users["carol"], chat_id, "hi")
        payload = ledger.page(chat_id, 1, 10).to_dict()
        assert payload["has_more"] is False
        assert payload["page"] == 1
        assert payload["limit"] == 10
        assert payload["messages"][0]["sender"]["username"] == "carol"
