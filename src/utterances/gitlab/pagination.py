"""Comment page loading strategy.

A thread shows its first and last comment pages straight away and hides the
pages in between behind a "load more" control. When hiding the second to
last page would leave fewer than three comments behind the control, that
page is loaded eagerly as well.

Example:
    >>> plan = plan_pages(76)
    >>> plan.eager_pages, plan.lazy_pages
    ((1, 3, 4), (2,))
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from utterances.gitlab.client import PAGE_SIZE
from utterances.gitlab.exceptions import LoginRequiredError, NoMorePagesError, UnauthorizedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Remainders below this are loaded with the intermediate page
SMALL_REMAINDER = 3


@dataclass(frozen=True)
class PageLoadPlan:
    """Which comment pages to fetch now and which on demand.

    Attributes:
        total_comments: Number of comments on the issue.
        page_count: Number of pages at PAGE_SIZE comments per page.
        eager_pages: Pages fetched immediately, in render order.
        lazy_pages: Pages fetched on demand, in load order.
    """

    total_comments: int
    page_count: int
    eager_pages: tuple[int, ...]
    lazy_pages: tuple[int, ...]

    @property
    def hidden_page_count(self) -> int:
        return len(self.lazy_pages)


def plan_pages(total_comments: int, page_size: int = PAGE_SIZE) -> PageLoadPlan:
    """Decide which pages to load eagerly for a comment count.

    Args:
        total_comments: Number of comments on the issue.
        page_size: Comments per page.

    Returns:
        The page load plan. Zero comments give an empty plan.

    Raises:
        ValueError: If total_comments is negative or page_size not positive.
    """
    if total_comments < 0:
        raise ValueError("total_comments must be >= 0")
    if page_size <= 0:
        raise ValueError("page_size must be > 0")

    page_count = math.ceil(total_comments / page_size)
    if page_count == 0:
        return PageLoadPlan(total_comments, 0, (), ())

    eager = [1]
    remainder = total_comments % page_size
    if page_count > 2 and 0 < remainder < SMALL_REMAINDER:
        eager.append(page_count - 1)
    if page_count > 1:
        eager.append(page_count)

    lazy = tuple(page for page in range(2, page_count + 1) if page not in eager)
    return PageLoadPlan(total_comments, page_count, tuple(eager), lazy)


class CommentPaginator(Generic[T]):
    """Loads the eager pages of a thread and the hidden ones on demand.

    Hidden pages are loaded one at a time, in order, starting at page 2.

    Attributes:
        plan: The page load plan for the thread.
    """

    def __init__(
        self,
        total_comments: int,
        load_page: Callable[[int], Awaitable[Sequence[T]]],
        page_size: int = PAGE_SIZE,
    ) -> None:
        """Initialize the paginator.

        Args:
            total_comments: Number of comments on the issue.
            load_page: Coroutine function loading one page by number.
            page_size: Comments per page.
        """
        self.plan = plan_pages(total_comments, page_size)
        self.page_size = page_size
        self._load_page = load_page
        self._hidden_page_count = self.plan.hidden_page_count
        self._next_hidden_page = 2
        self._lock = asyncio.Lock()

    @property
    def hidden_page_count(self) -> int:
        return self._hidden_page_count

    @property
    def next_hidden_page(self) -> int:
        return self._next_hidden_page

    @property
    def has_more(self) -> bool:
        return self._hidden_page_count > 0

    @property
    def remaining_estimate(self) -> int:
        """Comment count shown on the "load more" control."""
        return self._hidden_page_count * self.page_size

    async def load_initial(self) -> list[Sequence[T]]:
        """Load all eager pages concurrently.

        Returns:
            The pages in render order (first, intermediate, last),
            regardless of completion order.

        Raises:
            LoginRequiredError: If a page requires logging in.
        """
        if not self.plan.eager_pages:
            return []
        try:
            pages = await asyncio.gather(*(self._load_page(page) for page in self.plan.eager_pages))
        except UnauthorizedError as e:
            raise LoginRequiredError() from e
        return list(pages)

    async def load_more(self) -> Sequence[T]:
        """Load the next hidden page.

        Concurrent calls are serialized; each loads the page after the one
        loaded before it.

        Returns:
            The comments of the loaded page.

        Raises:
            NoMorePagesError: If no hidden pages remain.
            LoginRequiredError: If the page requires logging in. The cursor
                is not advanced, so the page can be retried after login.
        """
        async with self._lock:
            if not self.has_more:
                raise NoMorePagesError()
            page_number = self._next_hidden_page
            try:
                page = await self._load_page(page_number)
            except UnauthorizedError as e:
                logger.info(f"Comment page {page_number} requires login")
                raise LoginRequiredError() from e
            self._hidden_page_count -= 1
            self._next_hidden_page += 1
            return page
