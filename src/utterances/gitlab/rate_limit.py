"""Rate limit tracking from GitLab response headers.

GitLab reports its quota in the RateLimit-Limit, RateLimit-Remaining and
RateLimit-Reset headers. The tracker keeps the last observed values for the
search API and for all other APIs. It is advisory only: requests are never
held back based on it.
"""

from __future__ import annotations

import logging
import re
import sys
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

HEADER_LIMIT = "RateLimit-Limit"
HEADER_REMAINING = "RateLimit-Remaining"
HEADER_RESET = "RateLimit-Reset"

SEARCH_PATTERN = re.compile(r"/search/")


class EndpointClass(str, Enum):
    """Rate limit buckets."""

    STANDARD = "standard"
    SEARCH = "search"


@dataclass
class RateLimit:
    """Last observed quota for one endpoint class.

    Attributes:
        limit: Requests allowed per window.
        remaining: Requests left in the current window.
        reset: Epoch seconds when the window resets.
    """

    limit: int = sys.maxsize
    remaining: int = sys.maxsize
    reset: int = 0


def classify(url: str) -> EndpointClass:
    """Return the endpoint class for a request URL or path."""
    return EndpointClass.SEARCH if SEARCH_PATTERN.search(url) else EndpointClass.STANDARD


def _header_int(headers: Mapping[str, str], name: str) -> int | None:
    value = headers.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


class RateLimitTracker:
    """Per-client record of GitLab rate limits.

    One tracker belongs to one IssueAPIClient and lives as long as it does.
    Concurrent responses may overwrite each other; the last write wins.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._limits: dict[EndpointClass, RateLimit] = {}
        self.reset()

    def reset(self) -> None:
        """Forget all observed limits."""
        self._limits = {endpoint: RateLimit() for endpoint in EndpointClass}

    def get(self, endpoint: EndpointClass | str) -> RateLimit:
        """Return the current limits for an endpoint class."""
        return self._limits[EndpointClass(endpoint)]

    @property
    def standard(self) -> RateLimit:
        return self._limits[EndpointClass.STANDARD]

    @property
    def search(self) -> RateLimit:
        return self._limits[EndpointClass.SEARCH]

    def minutes_until_reset(self, endpoint: EndpointClass | str) -> int:
        """Minutes until the window of an endpoint class resets, rounded."""
        reset = self.get(endpoint).reset
        return round((reset - self._clock()) / 60)

    def record(self, url: str, status_code: int, headers: Mapping[str, str]) -> str | None:
        """Record the rate limit headers of a response.

        Args:
            url: The request URL, used to pick the endpoint class.
            status_code: Response status code.
            headers: Response headers (case-insensitive mapping).

        Returns:
            A warning message if the quota is exhausted on a 403, else None.
        """
        endpoint = classify(url)
        rate = self._limits[endpoint]

        limit = _header_int(headers, HEADER_LIMIT)
        remaining = _header_int(headers, HEADER_REMAINING)
        reset = _header_int(headers, HEADER_RESET)
        if limit is not None:
            rate.limit = limit
        if remaining is not None:
            rate.remaining = remaining
        if reset is not None:
            rate.reset = reset

        if status_code == 403 and rate.remaining == 0:
            mins = self.minutes_until_reset(endpoint)
            api_type = "search API" if endpoint is EndpointClass.SEARCH else "non-search APIs"
            warning = (
                f"Rate limit exceeded for {api_type}. "
                f"Resets in {mins} minute{'' if mins == 1 else 's'}."
            )
            logger.warning(warning)
            return warning
        return None
