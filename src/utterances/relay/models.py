"""Pydantic request/response models for the relay.

Request Models:
- TokenRequest: Exchange an encrypted session for the access token
- CreateIssueRequest: Create an issue through the service account

Response Models:
- ErrorResponse: Standard error response (OpenAPI documentation only; the
  relay answers errors with plain text bodies)
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class TokenRequest(BaseModel):
    """Request body for POST /token."""

    session: str | None = Field(default=None, description="Encrypted session state")


class CreateIssueRequest(BaseModel):
    """Request body for POST /projects/{project_id}/issues."""

    title: str | None = None
    description: str | None = None
    labels: list[str] | str | None = None

    def upstream_payload(self) -> dict[str, Any]:
        """Return the JSON body forwarded to GitLab."""
        return {
            "title": self.title,
            "description": self.description,
            "labels": self.labels,
        }


class ErrorResponse(BaseModel):
    """Plain text error description."""

    detail: str
