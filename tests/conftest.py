"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

TOKEN = "tok-123"


def make_user(**overrides: Any) -> dict[str, Any]:
    """User payload as the server serialises it."""
    user = {
        "id": "u-1",
        "username": "alice",
        "email": "alice@example.com",
        "role": "user",
        "mailbox_name": "alice-box",
        "active": True,
        "created_at": "2025-01-01T09:00:00Z",
        "updated_at": "2025-01-01T09:00:00Z",
    }
    user.update(overrides)
    return user


def make_message(message_id: str, **overrides: Any) -> dict[str, Any]:
    """Full message payload as the server stores it."""
    message = {
        "id": message_id,
        "user_id": "u-1",
        "from": "sender@example.com",
        "to": "alice@example.com",
        "cc": "",
        "bcc": "",
        "subject": f"Subject {message_id}",
        "text_body": f"Body of {message_id}",
        "html_body": f"<p>Body of {message_id}</p>",
        "raw_content": f"Subject: Subject {message_id}\r\n\r\nBody of {message_id}",
        "headers": f"Subject: Subject {message_id}\nFrom: sender@example.com",
        "status": "success",
        "received_at": "2025-01-02T10:00:00Z",
        "created_at": "2025-01-02T10:00:00Z",
        "updated_at": "2025-01-02T10:00:00Z",
    }
    message.update(overrides)
    return message


_FULL_ONLY = ("text_body", "html_body", "raw_content", "headers")


class FakeInMailServer:
    """In-memory stand-in for the In-Mail REST API.

    Serves the endpoints the client uses through an ``httpx.MockTransport``
    and records every request it receives.
    """

    def __init__(self) -> None:
        self.token: str | None = TOKEN
        self.password = "secret"
        self.users: list[dict[str, Any]] = [make_user()]
        self.config: dict[str, Any] = {
            "smtp_port": 2525,
            "api_port": 8080,
            "version": "1.0.0",
            "max_attachment_size": 10485760,
            "simulation_mode": "success",
            "database_type": "sqlite",
            "environment": "development",
        }
        self.messages: dict[str, dict[str, Any]] = {}
        self.attachments: dict[tuple[str, str], bytes] = {}
        self.failures: dict[tuple[str, str], int] = {}
        self.list_extra_fields: dict[str, Any] = {}
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self.handle)

    def add_messages(self, count: int) -> None:
        for i in range(1, count + 1):
            message_id = f"m{i}"
            self.messages[message_id] = make_message(message_id)

    def fail(self, method: str, path: str, status: int) -> None:
        self.failures[(method, path)] = status

    def requests_to(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        method, path = request.method, request.url.path

        status = self.failures.get((method, path))
        if status is not None:
            return _error(status, "Injected failure")

        if (method, path) == ("POST", "/api/auth/login"):
            return self._login(request)

        if self.token is None or request.headers.get("Authorization") != f"Bearer {self.token}":
            return _error(401, "Invalid or expired token")

        if (method, path) == ("GET", "/api/mailboxes"):
            return _ok(self.users)
        if path.startswith("/api/admin/") and self.users[0]["role"] != "root":
            return _error(403, "Root access required")
        if (method, path) == ("GET", "/api/admin/users"):
            return _ok(self.users)
        if (method, path) == ("GET", "/api/admin/config"):
            return _ok(self.config)
        if (method, path) == ("GET", "/api/messages"):
            return self._list(request)
        if (method, path) == ("DELETE", "/api/messages"):
            for message_id in json.loads(request.content)["ids"]:
                self.messages.pop(message_id, None)
            return _ok(None, message="Messages deleted")

        parts = path.strip("/").split("/")
        if parts[:2] == ["api", "messages"] and len(parts) == 3:
            message = self.messages.get(parts[2])
            if message is None:
                return _error(404, "Message not found")
            if method == "GET":
                return _ok(message)
            if method == "DELETE":
                del self.messages[parts[2]]
                return _ok(None, message="Message deleted")
        if parts[:2] == ["api", "messages"] and len(parts) == 5 and parts[3] == "attachments":
            payload = self.attachments.get((parts[2], parts[4]))
            if payload is None:
                return _error(404, "Attachment not found")
            return httpx.Response(200, content=payload, headers={"Content-Type": "application/pdf"})

        return _error(404, "Not found")

    def _login(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        user = self.users[0]
        if body.get("username") != user["username"] or body.get("password") != self.password:
            return _error(401, "Invalid credentials")
        return _ok(
            {"token": self.token, "user_id": user["id"], "username": user["username"], "role": user["role"]}
        )

    def _list(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        limit = int(params.get("limit", 50))
        offset = int(params.get("offset", 0))
        matching = [
            m
            for m in self.messages.values()
            if params.get("subject", "") in m["subject"] and params.get("to", "") in m["to"]
        ]
        page = [
            {**{k: v for k, v in m.items() if k not in _FULL_ONLY}, **self.list_extra_fields}
            for m in matching[offset : offset + limit]
        ]
        return _ok({"messages": page, "total": len(matching), "limit": limit, "offset": offset})


def _ok(data: Any, message: str | None = None) -> httpx.Response:
    body: dict[str, Any] = {"status": "success", "data": data}
    if message:
        body["message"] = message
    return httpx.Response(200, json=body)


def _error(status: int, message: str) -> httpx.Response:
    return httpx.Response(status, json={"status": "error", "message": message})


@pytest.fixture
def mock_settings(tmp_path):
    """Provide settings pointing at a fake server and a temp session file."""
    from inmail_client.config import Settings

    return Settings(
        api_url="http://inmail.test",
        session_path=tmp_path / "session.json",
        download_dir=tmp_path / "downloads",
        log_level="DEBUG",
        debug=True,
    )


@pytest.fixture
def server() -> FakeInMailServer:
    return FakeInMailServer()


@pytest.fixture
def sample_user():
    from inmail_client.models import User

    return User.model_validate(make_user())


@pytest.fixture
def session(mock_settings, sample_user):
    """A session that is already logged in."""
    from inmail_client.session import SessionManager

    manager = SessionManager(mock_settings)
    manager.set_session(TOKEN, sample_user)
    return manager


@pytest.fixture
def client(session, mock_settings, server):
    from inmail_client.api import InMailClient

    return InMailClient(session, mock_settings, transport=server.transport)


@pytest.fixture
def browser(client):
    from inmail_client.browser import MessageBrowser

    return MessageBrowser(client)
