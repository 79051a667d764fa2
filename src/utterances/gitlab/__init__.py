"""GitLab integration module.

This module provides the client-side synchronization layer between the
comment widget and the GitLab issues API.

Module structure:
- client.py: IssueAPIClient with auth fallback, rate limits and typed operations
- pagination.py: Page load planning and on-demand loading of hidden pages
- reactions.py: Award emoji toggle protocol
- rate_limit.py: Rate limit tracking from response headers
- signals.py: IntegrationRevoked signal bus
- oauth.py: Token store and session exchange with the relay
- models.py: Pydantic models for issues, notes, users and reactions
- exceptions.py: All tracker-related exception classes
"""

from .client import PAGE_SIZE, AuthMode, IssueAPIClient, read_rel_next
from .exceptions import (
    LoginRequiredError,
    NoMorePagesError,
    TrackerError,
    TrackerHTTPError,
    TrackerRequestError,
    UnauthorizedError,
    UnexpectedResponseError,
)
from .models import REACTION_KINDS, Issue, IssueComment, Reaction, ReactionKind, RepoConfig, User
from .oauth import TokenStore, load_token
from .pagination import CommentPaginator, PageLoadPlan, plan_pages
from .rate_limit import EndpointClass, RateLimit, RateLimitTracker
from .reactions import ReactionToggleResult, toggle_reaction
from .signals import IntegrationRevoked, SignalBus

__all__ = [
    "PAGE_SIZE",
    "REACTION_KINDS",
    "AuthMode",
    "CommentPaginator",
    "EndpointClass",
    "IntegrationRevoked",
    "Issue",
    "IssueAPIClient",
    "IssueComment",
    "LoginRequiredError",
    "NoMorePagesError",
    "PageLoadPlan",
    "RateLimit",
    "RateLimitTracker",
    "Reaction",
    "ReactionKind",
    "ReactionToggleResult",
    "RepoConfig",
    "SignalBus",
    "TokenStore",
    "TrackerError",
    "TrackerHTTPError",
    "TrackerRequestError",
    "UnauthorizedError",
    "UnexpectedResponseError",
    "User",
    "load_token",
    "plan_pages",
    "read_rel_next",
    "toggle_reaction",
]
