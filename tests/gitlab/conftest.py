"""Shared fixtures for GitLab client tests.

Provides:
- Sample API payloads for users, issues and notes
- A factory creating an IssueAPIClient served by an httpx.MockTransport
"""

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from utterances.gitlab.client import IssueAPIClient
from utterances.gitlab.oauth import TokenStore

API_BASE = "https://gitlab.example.com/api/v4"
RELAY_URL = "https://relay.example.com"
PROJECT_ID = 42

Handler = Callable[[httpx.Request], httpx.Response]


def make_user(user_id: int = 1, username: str = "alice") -> dict[str, Any]:
    """Build a GitLab user payload."""
    return {
        "id": user_id,
        "username": username,
        "name": username.title(),
        "state": "active",
        "avatar_url": f"https://gitlab.example.com/uploads/{username}.png",
        "web_url": f"https://gitlab.example.com/{username}",
    }


def make_issue(iid: int = 7, title: str = "docs/getting-started", **extra: Any) -> dict[str, Any]:
    """Build a GitLab issue payload."""
    issue = {
        "id": 1000 + iid,
        "iid": iid,
        "project_id": PROJECT_ID,
        "title": title,
        "description": "# docs/getting-started",
        "state": "opened",
        "labels": [],
        "author": make_user(),
        "user_notes_count": 0,
        "confidential": False,
        "web_url": f"https://gitlab.example.com/group/project/-/issues/{iid}",
    }
    issue.update(extra)
    return issue


def make_note(note_id: int, body: str = "Nice post") -> dict[str, Any]:
    """Build a GitLab note payload."""
    return {
        "id": note_id,
        "body": body,
        "author": make_user(),
        "created_at": "2024-05-01T10:00:00.000Z",
        "updated_at": "2024-05-01T10:00:00.000Z",
        "system": False,
    }


@pytest.fixture
def requests_seen() -> list[httpx.Request]:
    """Collect requests sent by the client under test."""
    return []


@pytest.fixture
def make_api_client(
    requests_seen: list[httpx.Request],
) -> Callable[..., IssueAPIClient]:
    """Provide a factory creating an IssueAPIClient for a mock handler."""

    def factory(handler: Handler, token: str | None = None, **kwargs: Any) -> IssueAPIClient:
        def recording(request: httpx.Request) -> httpx.Response:
            requests_seen.append(request)
            return handler(request)

        kwargs.setdefault("project_id", PROJECT_ID)
        kwargs.setdefault("relay_url", RELAY_URL)
        return IssueAPIClient(
            API_BASE,
            TokenStore(token),
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(recording)),
            **kwargs,
        )

    return factory
