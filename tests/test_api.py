"""HTTP tests for the account, follow and chat blueprints."""

from unittest.mock import MagicMock

import pytest

from conftest import auth_headers
from social.notifier import Notifier


@pytest.fixture
def headers(app, users):
    return {name: auth_headers(app, user_id) for name, user_id in users.items()}


class TestAccountsApi:
    def test_register_and_me(self, client):
        response = client.post(
            "/api/users", json={"username": "zoe", "email": "zoe@example.com", "password": "pw"}
        )
        assert response.status_code == 201
        token = response.get_json()["token"]

        me = client.get("/api/users", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.get_json()["username"] == "zoe"

    def test_duplicate_username(self, client, users):
        response = client.post(
            "/api/users", json={"username": "bob", "email": "new@example.com", "password": "pw"}
        )
        assert response.status_code == 409
        assert response.get_json()["message"] == "Username is already taken!"

    def test_login(self, client, users):
        response = client.post("/api/users/login", json={"username": "bob", "password": "secret"})
        assert response.status_code == 200
        assert response.get_json()["user"]["id"] == users["bob"]

    def test_login_bad_credentials(self, client, users):
        response = client.post("/api/users/login", json={"username": "bob", "password": "nope"})
        assert response.status_code == 401
        assert response.get_json()["error"] == "Unauthenticated"

    def test_missing_token(self, client):
        response = client.get("/api/users")
        assert response.status_code == 401

    def test_invalid_token(self, client):
        response = client.get("/api/users", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401
        assert response.get_json()["message"] == "Invalid authentication token"

    def test_password_reset_request(self, client, users, monkeypatch):
        monkeypatch.setattr(Notifier, "send", MagicMock())
        response = client.post("/api/users/request-password-reset", json={"email": "bob@example.com"})
        assert response.status_code == 200
        assert "reset_token" not in response.get_json()

    def test_password_reset_bad_token(self, client):
        response = client.post("/api/users/reset-password", json={"resetToken": "bad", "newPassword": "x"})
        assert response.status_code == 400


class TestFollowApi:
    def test_follow_private_then_accept(self, client, users, headers):
        response = client.post(f"/api/users/{users['alice']}/follow", headers=headers["bob"])
        assert response.status_code == 200
        assert response.get_json()["state"] == "requested"

        pending = client.get("/api/users/requests", headers=headers["alice"]).get_json()["requests"]
        assert pending == [{"id": users["bob"], "username": "bob"}]

        response = client.post(f"/api/users/accept-request/{users['bob']}", headers=headers["alice"])
        assert response.get_json()["state"] == "following"

        followers = client.get(f"/api/users/{users['alice']}/followers", headers=headers["bob"])
        assert followers.status_code == 200
        assert followers.get_json()["followers"] == [{"id": users["bob"], "username": "bob"}]

    def test_follow_twice_conflicts(self, client, users, headers):
        client.post(f"/api/users/{users['carol']}/follow", headers=headers["bob"])
        response = client.post(f"/api/users/{users['carol']}/follow", headers=headers["bob"])
        assert response.status_code == 409
        assert response.get_json()["error"] == "AlreadyFollowing"

    def test_follow_self(self, client, users, headers):
        response = client.post(f"/api/users/{users['bob']}/follow", headers=headers["bob"])
        assert response.status_code == 400
        assert response.get_json()["error"] == "InvalidOperation"

    def test_follow_unknown(self, client, users, headers):
        response = client.post("/api/users/9999/follow", headers=headers["bob"])
        assert response.status_code == 404

    def test_reject_without_request(self, client, users, headers):
        response = client.post(f"/api/users/reject-request/{users['bob']}", headers=headers["alice"])
        assert response.status_code == 409
        assert response.get_json()["error"] == "NoPendingRequest"

    def test_unfollow(self, client, users, headers):
        client.post(f"/api/users/{users['carol']}/follow", headers=headers["bob"])
        response = client.post(f"/api/users/{users['carol']}/unfollow", headers=headers["bob"])
        assert response.status_code == 200
        assert response.get_json()["state"] == "none"

    def test_private_lists_denied(self, client, users, headers):
        response = client.get(f"/api/users/{users['alice']}/following", headers=headers["carol"])
        assert response.status_code == 403
        assert response.get_json()["error"] == "AccessDenied"

    def test_privacy_toggle(self, client, users, headers):
        response = client.post("/api/users/privacy", json={"isPrivate": True}, headers=headers["carol"])
        assert response.get_json()["is_private"] is True
        response = client.post(f"/api/users/{users['carol']}/follow", headers=headers["bob"])
        assert response.get_json()["state"] == "requested"
        relationship = client.get(f"/api/users/{users['carol']}/relationship", headers=headers["bob"])
        assert relationship.get_json()["state"] == "requested"

    def test_privacy_requires_boolean(self, client, users, headers):
        response = client.post("/api/users/privacy", json={"isPrivate": "yes"}, headers=headers["carol"])
        assert response.status_code == 400
        assert response.get_json() == {"error": "ValidationError", "message": "isPrivate must be a boolean"}


class TestChatsApi:
    def test_direct_chat_and_messages(self, client, users, headers):
        created = client.post("/api/chats/createChat", json={"receiverId": users["carol"]}, headers=headers["bob"])
        assert created.status_code == 201
        chat_id = created.get_json()["id"]

        again = client.post("/api/chats/createChat", json={"receiverId": users["bob"]}, headers=headers["carol"])
        assert again.get_json()["id"] == chat_id

        sent = client.post("/api/chats/sendMessages", json={"chatId": chat_id, "content": "hi"}, headers=headers["bob"])
        assert sent.status_code == 201
        assert sent.get_json()["newMessage"]["sender"]["username"] == "bob"

        history = client.get(f"/api/chats/{chat_id}/messages?page=1&limit=10", headers=headers["carol"])
        payload = history.get_json()
        assert [row["content"] for row in payload["messages"]] == ["hi"]
        assert payload["has_more"] is False

        chats = client.get("/api/chats", headers=headers["carol"]).get_json()["chats"]
        assert chats[0]["id"] == chat_id
        assert chats[0]["last_message"]["content"] == "hi"

    def test_create_chat_requires_receiver(self, client, users, headers):
        response = client.post("/api/chats/createChat", json={}, headers=headers["bob"])
        assert response.status_code == 400
        assert response.get_json()["error"] == "ValidationError"

    def test_outsider_cannot_send_or_read(self, client, users, headers):
        chat_id = client.post(
            "/api/chats/createChat", json={"receiverId": users["carol"]}, headers=headers["bob"]
        ).get_json()["id"]
        response = client.post(
            "/api/chats/sendMessages", json={"chatId": chat_id, "content": "hi"}, headers=headers["alice"]
        )
        assert response.status_code == 403
        response = client.get(f"/api/chats/{chat_id}/messages", headers=headers["alice"])
        assert response.status_code == 403

    def test_empty_message(self, client, users, headers):
        chat_id = client.post(
            "/api/chats/createChat", json={"receiverId": users["carol"]}, headers=headers["bob"]
        ).get_json()["id"]
        response = client.post(
            "/api/chats/sendMessages", json={"chatId": chat_id, "content": ""}, headers=headers["bob"]
        )
        assert response.status_code == 400

    def test_create_group(self, client, users, headers):
        response = client.post(
            "/api/chats/createGroup",
            json={"participants": [users["alice"], users["carol"]], "groupName": "crew"},
            headers=headers["bob"],
        )
        assert response.status_code == 201
        payload = response.get_json()
        assert payload["is_group"] is True
        assert payload["admins"] == [users["bob"]]
        assert len(payload["participants"]) == 3

    def test_create_group_without_participants(self, client, users, headers):
        response = client.post("/api/chats/createGroup", json={"groupName": "crew"}, headers=headers["bob"])
        assert response.status_code == 400

    def test_bad_page_number(self, client, users, headers):
        chat_id = client.post(
            "/api/chats/createChat", json={"receiverId": users["carol"]}, headers=headers["bob"]
        ).get_json()["id"]
        response = client.get(f"/api/chats/{chat_id}/messages?page=0", headers=headers["bob"])
        assert response.status_code == 400

    def test_boolean_receiver_rejected(self, client, users, headers):
        response = client.post("/api/chats/createChat", json={"receiverId": True}, headers=headers["bob"])
        assert response.status_code == 400
        assert response.get_json()["error"] == "ValidationError"

    def test_page_size_capped_over_http(self, app, client, users, headers):
        chat_id = client.post(
            "/api/chats/createChat", json={"receiverId": users["carol"]}, headers=headers["bob"]
        ).get_json()["id"]
        response = client.get(f"/api/chats/{chat_id}/messages?limit=10000", headers=headers["bob"])
        assert response.status_code == 200
        assert response.get_json()["limit"] == app.config["MAX_CHAT_PAGE_SIZE"]


def test_health(client):
    assert client.get("/api/health").get_json()["status"] == "ok"
