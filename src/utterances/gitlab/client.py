"""GitLab API client for the comment widget.

This module provides the IssueAPIClient class that handles every request the
widget makes to the GitLab REST API with:
- Bearer token injection from a shared TokenStore
- Token invalidation on 401 responses
- An IntegrationRevoked signal on "not accessible by integration" 403s
- Rate limit tracking from response headers
- A single anonymous retry for GET requests rejected with 401/403

Example:
    >>> store = TokenStore("access-token")
    >>> async with IssueAPIClient("https://gitlab.com/api/v4", store, project_id=42) as client:
    ...     issue = await client.load_issue_by_number(7)
    ...     comments = await client.load_comments_page(issue.iid, 1)
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any
from urllib.parse import quote

import httpx

from utterances.gitlab.exceptions import (
    TrackerError,
    TrackerHTTPError,
    TrackerRequestError,
    UnauthorizedError,
)
from utterances.gitlab.models import (
    Issue,
    IssueComment,
    RepoConfig,
    User,
    parse_comments,
)
from utterances.gitlab.oauth import TokenStore
from utterances.gitlab.rate_limit import RateLimitTracker
from utterances.gitlab.signals import NOT_ACCESSIBLE_MESSAGE, IntegrationRevoked, SignalBus

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_TIMEOUT = 30.0  # 30 seconds
PAGE_SIZE = 25
DEFAULT_REF = "master"
REPO_CONFIG_FILE = "utterances.json"

AUTH_FALLBACK_STATUSES = (401, 403)


class AuthMode(Enum):
    """States of the auth fallback loop. WITHOUT_AUTH is terminal."""

    WITH_AUTH = "with_auth"
    WITHOUT_AUTH = "without_auth"


# =============================================================================
# Link Header Parsing
# =============================================================================


def read_rel_next(response: httpx.Response) -> int:
    """Return the page number of the rel="next" link, or 0.

    Args:
        response: A paginated API response.

    Returns:
        The next page number when it is at least 2, otherwise 0.

    Example:
        >>> r = httpx.Response(200, headers={"link": '<https://x/notes?page=3&per_page=25>; rel="next"'})
        >>> read_rel_next(r)
        3
    """
    link = response.headers.get("link")
    if not link:
        return 0

    for part in link.split(","):
        segments = [segment.strip() for segment in part.split(";")]
        if not segments or not segments[0].startswith("<") or not segments[0].endswith(">"):
            continue
        if 'rel="next"' not in segments[1:]:
            continue
        try:
            page = int(httpx.URL(segments[0][1:-1]).params.get("page", ""))
        except (ValueError, httpx.InvalidURL):
            return 0
        return page if page >= 2 else 0
    return 0


# =============================================================================
# IssueAPIClient
# =============================================================================


class IssueAPIClient:
    """Authenticated request layer over the GitLab issues API.

    Attributes:
        api_base: GitLab REST API base URL, e.g. https://gitlab.com/api/v4.
        token_store: Shared holder of the user's access token.
        project_id: Project whose issues back the comment threads.
        relay_url: Base URL of the OAuth relay (used for issue creation).
        rate_limits: Per-client rate limit state.
        signals: Bus on which IntegrationRevoked is emitted.
    """

    def __init__(
        self,
        api_base: str,
        token_store: TokenStore | None = None,
        project_id: int | None = None,
        relay_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        signals: SignalBus | None = None,
        rate_limits: RateLimitTracker | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the client.

        Args:
            api_base: GitLab REST API base URL.
            token_store: Token holder. A new empty store is created if omitted.
            project_id: Project id for the typed issue operations.
            relay_url: Relay base URL for issue creation.
            http_client: Client to send requests with. If omitted, one is
                created and closed by aclose().
            signals: Signal bus. A new bus is created if omitted.
            rate_limits: Rate limit tracker. A new tracker is created if omitted.
            timeout: Request timeout for an owned HTTP client.

        Raises:
            ValueError: If api_base is empty or not an http(s) URL.
        """
        if not api_base:
            raise ValueError("API base URL cannot be empty")
        if not api_base.startswith(("http://", "https://")):
            raise ValueError(f"Invalid API base URL scheme: {api_base}")

        self.api_base = api_base.rstrip("/")
        self.token_store = token_store if token_store is not None else TokenStore()
        self.project_id = project_id
        self.relay_url = relay_url.rstrip("/") if relay_url else None
        self.signals = signals if signals is not None else SignalBus()
        self.rate_limits = rate_limits if rate_limits is not None else RateLimitTracker()
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> IssueAPIClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._http.aclose()

    @property
    def http_client(self) -> httpx.AsyncClient:
        """The underlying HTTP client, shared with the session exchange."""
        return self._http

    def set_project(self, project_id: int) -> None:
        """Set the project the typed operations act on."""
        self.project_id = project_id

    # -------------------------------------------------------------------------
    # Request building and sending
    # -------------------------------------------------------------------------

    def url_for(self, path: str) -> str:
        """Resolve an API-relative path (absolute URLs pass through)."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.api_base}/{path.lstrip('/')}"

    def relative_path(self, url: str) -> str:
        """Strip the API base from a URL, leaving a relative path."""
        if url.startswith(self.api_base):
            return url[len(self.api_base) :].lstrip("/")
        return url

    def build_request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
    ) -> httpx.Request:
        """Build a request, adding the bearer token when one is held."""
        headers = {"Cache-Control": "no-cache"}
        if self.token_store.value:
            headers["Authorization"] = f"Bearer {self.token_store.value}"
        return self._http.build_request(
            method.upper(),
            self.url_for(path),
            params=params,
            json=json_body,
            headers=headers,
        )

    async def _send_once(self, request: httpx.Request) -> httpx.Response:
        try:
            return await self._http.send(request)
        except httpx.TimeoutException as e:
            raise TrackerRequestError(f"Request timed out: {request.url}", str(request.url)) from e
        except httpx.RequestError as e:
            raise TrackerRequestError(f"Request failed: {e}", str(request.url)) from e

    def _observe(self, request: httpx.Request, response: httpx.Response) -> None:
        """Apply token, signal and rate limit side effects of a response."""
        if response.status_code == 401:
            self.token_store.clear()

        if response.status_code == 403:
            try:
                message = response.json().get("message")
            except (ValueError, AttributeError):
                message = None
            if message == NOT_ACCESSIBLE_MESSAGE:
                self.signals.emit(IntegrationRevoked(url=str(request.url)))

        self.rate_limits.record(request.url.path, response.status_code, response.headers)

    async def send(self, request: httpx.Request) -> httpx.Response:
        """Send a request with the auth fallback.

        A GET rejected with 401 or 403 while carrying an Authorization header
        is sent once more without it. The retry carries no Authorization
        header, so it is never retried again.

        Args:
            request: The request to send.

        Returns:
            The final response, whatever its status.

        Raises:
            TrackerRequestError: On network errors and timeouts.
        """
        mode = AuthMode.WITH_AUTH
        while True:
            response = await self._send_once(request)
            self._observe(request, response)

            if (
                mode is AuthMode.WITH_AUTH
                and request.method == "GET"
                and response.status_code in AUTH_FALLBACK_STATUSES
                and "Authorization" in request.headers
            ):
                logger.debug(
                    f"Retrying {request.url} without Authorization after {response.status_code}"
                )
                headers = httpx.Headers(request.headers)
                del headers["Authorization"]
                request = httpx.Request(request.method, request.url, headers=headers)
                mode = AuthMode.WITHOUT_AUTH
                continue

            return response

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
    ) -> httpx.Response:
        """Build and send a request against the API."""
        return await self.send(self.build_request(method, path, params=params, json_body=json_body))

    # -------------------------------------------------------------------------
    # Typed operations
    # -------------------------------------------------------------------------

    def _project_path(self) -> str:
        if self.project_id is None:
            raise TrackerError("Project id is not set")
        return f"projects/{self.project_id}"

    @staticmethod
    def _raise_for_status(response: httpx.Response, message: str) -> None:
        if response.is_success:
            return
        raise TrackerHTTPError(
            message,
            status_code=response.status_code,
            url=str(response.request.url),
            response_body=response.text[:500],
        )

    async def load_json_file(self, path: str, ref: str = DEFAULT_REF) -> Any:
        """Load and parse a JSON file from the project's repository.

        Args:
            path: File path inside the repository.
            ref: Branch or tag to read from.

        Returns:
            The parsed JSON content.

        Raises:
            TrackerHTTPError: If the file is missing or cannot be fetched.
            TrackerError: If the file is not valid JSON.
        """
        response = await self.request(
            "GET",
            f"{self._project_path()}/repository/files/{quote(path, safe='')}/raw",
            params={"ref": ref},
        )
        if response.status_code == 404:
            raise TrackerHTTPError(
                f'Project "{self.project_id}" does not have a file named "{path}" '
                f'in the "{ref}" branch.',
                status_code=404,
                url=str(response.request.url),
            )
        self._raise_for_status(response, f"Error fetching {path}.")
        try:
            return json.loads(response.text)
        except ValueError as e:
            raise TrackerError(f"{path} is not valid JSON") from e

    async def load_repo_config(self) -> RepoConfig:
        """Load the project's utterances.json configuration."""
        return RepoConfig.model_validate(await self.load_json_file(REPO_CONFIG_FILE))

    async def load_issue_by_term(self, term: str) -> Issue | None:
        """Find the issue for a search term.

        Prefers the first result whose title contains the term; falls back
        to the oldest matching issue.

        Returns:
            The issue, or None when the search finds nothing.
        """
        response = await self.request(
            "GET",
            f"{self._project_path()}/issues",
            params={"search": term, "order_by": "created_at", "sort": "asc"},
        )
        self._raise_for_status(response, "Error fetching issue via search.")

        results = [Issue.model_validate(item) for item in response.json()]
        if not results:
            return None
        if len(results) > 1:
            logger.warning(f'Multiple issues match "{term}".')

        lowered = term.lower()
        for issue in results:
            if lowered in issue.title.lower():
                return issue

        logger.warning(
            f'Issue search results do not contain an issue with title matching "{lowered}". '
            "Using first result."
        )
        return results[0]

    async def load_issue_by_number(self, issue_number: int) -> Issue:
        """Load an issue by its project-scoped number (iid)."""
        response = await self.request("GET", f"{self._project_path()}/issues/{issue_number}")
        self._raise_for_status(response, "Error fetching issue via issue number.")
        return Issue.model_validate(response.json())

    async def load_comments_page(self, issue_iid: int, page: int) -> list[IssueComment]:
        """Load one page of notes on an issue.

        Raises:
            UnauthorizedError: If the notes can only be read when logged in.
            TrackerHTTPError: On any other error status.
        """
        response = await self.request(
            "GET",
            f"{self._project_path()}/issues/{issue_iid}/notes",
            params={"page": page, "per_page": PAGE_SIZE},
        )
        if response.status_code == 401:
            raise UnauthorizedError(str(response.request.url), response.text[:500])
        self._raise_for_status(response, "Error fetching comments.")
        return parse_comments(response.json())

    async def load_user(self) -> User | None:
        """Load the logged-in user, or None without a valid token."""
        if not self.token_store.value:
            return None
        response = await self.request("GET", "user")
        if not response.is_success:
            return None
        return User.model_validate(response.json())

    async def post_comment(self, issue_iid: int, markdown: str) -> IssueComment:
        """Post a note on an issue."""
        response = await self.request(
            "POST",
            f"{self._project_path()}/issues/{issue_iid}/notes",
            json_body={"body": markdown},
        )
        self._raise_for_status(response, "Error posting comment.")
        return IssueComment.model_validate(response.json())

    async def create_issue(
        self,
        issue_term: str,
        document_url: str,
        title: str,
        description: str,
        label: str | None = None,
    ) -> Issue:
        """Create the issue backing a page through the relay.

        Issues are created with the relay's service account so readers do
        not need write access to the project.
        """
        if not self.relay_url:
            raise TrackerError("Relay URL is not configured")

        logger.debug(f'Creating issue for term "{issue_term}"')
        headers = {"Content-Type": "application/json"}
        if self.token_store.value:
            headers["Authorization"] = f"Bearer {self.token_store.value}"
        request = self._http.build_request(
            "POST",
            f"{self.relay_url}/{self._project_path()}/issues",
            json={
                "title": title,
                "description": f"# {title}\n\n{description}\n\n[{document_url}]({document_url})",
                "labels": [label] if label else [],
            },
            headers=headers,
        )
        response = await self._send_once(request)
        self._raise_for_status(response, "Error creating issue.")
        return Issue.model_validate(response.json())

    def __repr__(self) -> str:
        return (
            f"IssueAPIClient(api_base={self.api_base!r}, "
            f"project_id={self.project_id!r}, "
            f"has_token={self.token_store.value is not None})"
        )
