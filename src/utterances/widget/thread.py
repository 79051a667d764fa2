"""Comment thread orchestration for the widget.

CommentThread wires the API client, the paginator and the session exchange
together. Rendering is delegated to a Timeline supplied by the caller, so
this module never touches markup.

Flow:
1. Exchange the `session` page attribute for an access token (if present)
2. Load the issue and the logged-in user concurrently
3. Render the eager comment pages and a "load more" control
4. Post comments, creating the issue on first use
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Protocol

from utterances.gitlab.client import IssueAPIClient
from utterances.gitlab.exceptions import LoginRequiredError, TrackerError
from utterances.gitlab.models import Issue, IssueComment, User
from utterances.gitlab.oauth import load_token
from utterances.gitlab.pagination import CommentPaginator
from utterances.gitlab.signals import IntegrationRevoked
from utterances.widget.page_attributes import PageAttributes

logger = logging.getLogger(__name__)


class OriginNotPermittedError(TrackerError):
    """Raised when the embedding origin is not listed in utterances.json."""

    def __init__(self, origin: str, project_id: int):
        super().__init__(f"Origin not permitted: {origin} cannot post to project {project_id}")
        self.origin = origin
        self.project_id = project_id


class ConfidentialIssueError(TrackerError):
    """Raised when posting to a confidential issue."""

    def __init__(self, issue_iid: int):
        super().__init__(f"Issue {issue_iid} is confidential")
        self.issue_iid = issue_iid


class Timeline(Protocol):
    """Rendering surface for a comment thread."""

    def start(self, user: User | None, issue: Issue | None) -> None: ...

    def set_issue(self, issue: Issue) -> None: ...

    def insert_comment(self, comment: IssueComment, incremental: bool) -> None: ...

    def insert_page_loader(self, after: IssueComment, remaining: int) -> None: ...

    def remove_page_loader(self) -> None: ...

    def show_login_prompt(self) -> None: ...

    def show_not_installed(self, project_id: int) -> None: ...

    def show_origin_not_permitted(self, origin: str, project_id: int) -> None: ...


class CommentThread:
    """One embedded comment thread."""

    def __init__(self, client: IssueAPIClient, attrs: PageAttributes, timeline: Timeline) -> None:
        self.client = client
        self.attrs = attrs
        self.timeline = timeline
        self.issue: Issue | None = None
        self.user: User | None = None
        self.paginator: CommentPaginator[IssueComment] | None = None
        self.client.set_project(attrs.project_id)

    async def _load_issue(self) -> Issue | None:
        if self.attrs.issue_number is not None:
            return await self.client.load_issue_by_number(self.attrs.issue_number)
        return await self.client.load_issue_by_term(self.attrs.issue_term or "")

    def _on_integration_revoked(self, signal: IntegrationRevoked) -> None:
        self.timeline.show_not_installed(self.attrs.project_id)

    async def bootstrap(self) -> Issue | None:
        """Load the thread and render its initial comments.

        Returns:
            The issue, or None when no issue exists for the page yet.
        """
        self.client.signals.subscribe(self._on_integration_revoked, once=True)

        if self.attrs.session and self.client.relay_url:
            await load_token(
                self.client.relay_url,
                self.attrs.session,
                self.client.token_store,
                self.client.http_client,
            )

        self.issue, self.user = await asyncio.gather(self._load_issue(), self.client.load_user())
        self.timeline.start(self.user, self.issue)

        if self.issue is not None and self.issue.user_notes_count > 0:
            await self.render_comments(self.issue)
        return self.issue

    async def render_comments(self, issue: Issue) -> None:
        """Render the eager pages and offer the hidden ones."""
        self.paginator = CommentPaginator(
            issue.user_notes_count,
            lambda page: self.client.load_comments_page(issue.iid, page),
        )
        try:
            pages = await self.paginator.load_initial()
        except LoginRequiredError:
            self.timeline.show_login_prompt()
            return

        for page in pages:
            self._render_page(page)
        if pages:
            self._render_loader(pages[0])

    def _render_page(self, page: Sequence[IssueComment]) -> None:
        for comment in page:
            self.timeline.insert_comment(comment, False)

    def _render_loader(self, after_page: Sequence[IssueComment]) -> None:
        if self.paginator is None or not self.paginator.has_more or not after_page:
            return
        self.timeline.insert_page_loader(after_page[-1], self.paginator.remaining_estimate)

    async def load_more(self) -> list[IssueComment]:
        """Load the next hidden page in response to the "load more" control.

        Returns:
            The loaded comments, or an empty list when login is required.
        """
        if self.paginator is None:
            return []
        try:
            page = list(await self.paginator.load_more())
        except LoginRequiredError:
            self.timeline.show_login_prompt()
            return []

        self.timeline.remove_page_loader()
        self._render_page(page)
        self._render_loader(page)
        return page

    async def assert_origin(self) -> None:
        """Check that the embedding origin may post to the project.

        Raises:
            OriginNotPermittedError: If utterances.json does not list the origin.
        """
        repo_config = await self.client.load_repo_config()
        if self.attrs.origin in repo_config.origins:
            return
        self.timeline.show_origin_not_permitted(self.attrs.origin, self.attrs.project_id)
        raise OriginNotPermittedError(self.attrs.origin, self.attrs.project_id)

    async def submit(self, markdown: str) -> IssueComment:
        """Post a comment, creating the issue first if needed.

        Raises:
            ConfidentialIssueError: If the issue is confidential.
            OriginNotPermittedError: If the origin may not post.
        """
        if self.issue is not None and self.issue.confidential:
            raise ConfidentialIssueError(self.issue.iid)

        await self.assert_origin()

        if self.issue is None:
            self.issue = await self.client.create_issue(
                self.attrs.issue_term or "",
                self.attrs.url or "",
                self.attrs.title or "",
                self.attrs.description or "",
                self.attrs.label,
            )
            self.timeline.set_issue(self.issue)

        comment = await self.client.post_comment(self.issue.iid, markdown)
        self.timeline.insert_comment(comment, True)
        return comment
