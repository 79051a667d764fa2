"""Tests for comment page planning and on-demand loading.

Tests cover:
- plan_pages() for representative comment counts
- Concurrent eager loading and render order
- Sequential loading of hidden pages
- Login required handling without advancing the cursor
"""

import asyncio
from collections.abc import Sequence

import pytest

from utterances.gitlab.exceptions import LoginRequiredError, NoMorePagesError, UnauthorizedError
from utterances.gitlab.pagination import CommentPaginator, PageLoadPlan, plan_pages


class PageSource:
    """Fake page loader recording the pages requested."""

    def __init__(self, delays: dict[int, float] | None = None) -> None:
        self.calls: list[int] = []
        self.delays = delays or {}
        self.unauthorized: set[int] = set()

    async def __call__(self, page: int) -> Sequence[str]:
        self.calls.append(page)
        await asyncio.sleep(self.delays.get(page, 0))
        if page in self.unauthorized:
            raise UnauthorizedError()
        return [f"p{page}-c1", f"p{page}-c2"]


# =============================================================================
# Test: plan_pages
# =============================================================================


class TestPlanPages:
    """Tests for plan_pages()."""

    @pytest.mark.parametrize(
        "total,page_count,eager,lazy",
        [
            (0, 0, (), ()),
            (1, 1, (1,), ()),
            (25, 1, (1,), ()),
            (26, 2, (1, 2), ()),
            (47, 2, (1, 2), ()),
            (51, 3, (1, 2, 3), ()),
            (53, 3, (1, 3), (2,)),
            (75, 3, (1, 3), (2,)),
            (76, 4, (1, 3, 4), (2,)),
            (100, 4, (1, 4), (2, 3)),
            (252, 11, (1, 10, 11), (2, 3, 4, 5, 6, 7, 8, 9)),
        ],
    )
    def test_plans(
        self, total: int, page_count: int, eager: tuple[int, ...], lazy: tuple[int, ...]
    ) -> None:
        plan = plan_pages(total)
        assert plan == PageLoadPlan(total, page_count, eager, lazy)

    def test_hidden_page_count(self) -> None:
        assert plan_pages(100).hidden_page_count == 2
        assert plan_pages(47).hidden_page_count == 0

    def test_every_page_planned_once(self) -> None:
        for total in range(0, 300):
            plan = plan_pages(total)
            pages = sorted(plan.eager_pages + plan.lazy_pages)
            assert pages == list(range(1, plan.page_count + 1))

    def test_custom_page_size(self) -> None:
        assert plan_pages(21, page_size=10).eager_pages == (1, 2, 3)

    def test_negative_total(self) -> None:
        with pytest.raises(ValueError):
            plan_pages(-1)

    def test_invalid_page_size(self) -> None:
        with pytest.raises(ValueError):
            plan_pages(10, page_size=0)


# =============================================================================
# Test: CommentPaginator
# =============================================================================


class TestCommentPaginator:
    """Tests for CommentPaginator."""

    @pytest.mark.asyncio
    async def test_initial_pages_in_render_order(self) -> None:
        # Page 1 finishes last; the result order must not depend on that.
        source = PageSource(delays={1: 0.02, 3: 0.01})
        paginator = CommentPaginator(76, source)

        pages = await paginator.load_initial()

        assert [page[0] for page in pages] == ["p1-c1", "p3-c1", "p4-c1"]
        assert sorted(source.calls) == [1, 3, 4]

    @pytest.mark.asyncio
    async def test_no_comments(self) -> None:
        source = PageSource()
        paginator = CommentPaginator(0, source)

        assert await paginator.load_initial() == []
        assert source.calls == []
        assert not paginator.has_more

    @pytest.mark.asyncio
    async def test_load_more_walks_hidden_pages(self) -> None:
        source = PageSource()
        paginator = CommentPaginator(100, source)
        await paginator.load_initial()

        assert paginator.has_more
        assert paginator.remaining_estimate == 50

        first = await paginator.load_more()
        assert first[0] == "p2-c1"
        assert paginator.hidden_page_count == 1
        assert paginator.remaining_estimate == 25

        second = await paginator.load_more()
        assert second[0] == "p3-c1"
        assert not paginator.has_more

        with pytest.raises(NoMorePagesError):
            await paginator.load_more()

    @pytest.mark.asyncio
    async def test_concurrent_load_more_is_serialized(self) -> None:
        source = PageSource(delays={2: 0.02})
        paginator = CommentPaginator(100, source)

        results = await asyncio.gather(paginator.load_more(), paginator.load_more())

        assert [page[0] for page in results] == ["p2-c1", "p3-c1"]
        assert source.calls == [2, 3]

    @pytest.mark.asyncio
    async def test_initial_login_required(self) -> None:
        source = PageSource()
        source.unauthorized.add(1)
        paginator = CommentPaginator(30, source)

        with pytest.raises(LoginRequiredError):
            await paginator.load_initial()

    @pytest.mark.asyncio
    async def test_load_more_login_required_keeps_cursor(self) -> None:
        source = PageSource()
        source.unauthorized.add(2)
        paginator = CommentPaginator(100, source)

        with pytest.raises(LoginRequiredError):
            await paginator.load_more()

        assert paginator.next_hidden_page == 2
        assert paginator.hidden_page_count == 2

        source.unauthorized.clear()
        page = await paginator.load_more()
        assert page[0] == "p2-c1"
        assert paginator.next_hidden_page == 3
