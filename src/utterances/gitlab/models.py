"""Pydantic models for GitLab issues, notes, users and award emoji.

Only the fields the widget uses are declared; unknown fields in API
responses are ignored.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ReactionKind(str, Enum):
    """Award emoji names a user can toggle on a comment."""

    THUMBSUP = "thumbsup"
    THUMBSDOWN = "thumbsdown"
    LAUGH = "laugh"
    HOORAY = "hooray"
    CONFUSED = "confused"
    HEART = "heart"
    ROCKET = "rocket"
    EYES = "eyes"


REACTION_KINDS: list[ReactionKind] = list(ReactionKind)


class _GitLabModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class User(_GitLabModel):
    """GitLab user as embedded in issues, notes and reactions."""

    id: int
    username: str
    name: str = ""
    state: str = "active"
    avatar_url: str | None = None
    web_url: str = ""


class Issue(_GitLabModel):
    """GitLab issue backing a comment thread."""

    id: int
    iid: int
    project_id: int
    title: str
    description: str | None = None
    state: str = "opened"
    created_at: str | None = None
    updated_at: str | None = None
    closed_at: str | None = None
    labels: list[str] = Field(default_factory=list)
    author: User | None = None
    user_notes_count: int = 0
    upvotes: int = 0
    downvotes: int = 0
    confidential: bool = False
    discussion_locked: bool | None = None


class IssueComment(_GitLabModel):
    """A note on an issue."""

    id: int
    body: str
    author: User
    created_at: str
    updated_at: str | None = None


class Reaction(_GitLabModel):
    """An award emoji owned by a user."""

    id: int
    name: ReactionKind
    user: User | None = None
    created_at: str | None = None


class RepoConfig(_GitLabModel):
    """Contents of the project's utterances.json file."""

    origins: list[str] = Field(default_factory=list)


def parse_comments(data: Any) -> list[IssueComment]:
    """Parse a notes page response into comments."""
    if not isinstance(data, list):
        return []
    return [IssueComment.model_validate(item) for item in data]
