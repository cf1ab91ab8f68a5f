from __future__ import annotations

import pytest

from penpals.scraper.config import RetrySettings
from penpals.scraper.errors import ResumeAborted
from penpals.scraper.fetcher import PageFetcher
from penpals.scraper.parser import PageParser
from penpals.scraper.resume import ResumeCoordinator
from tests.site_fixtures import LISTING_URL, NEXT_URL, FakeSite, listing_html, saved_record


def _coordinator(site: FakeSite) -> ResumeCoordinator:
    fetcher = PageFetcher(
        RetrySettings(max_attempts=2, backoff_base_seconds=0.0, timeout_seconds=5),
        transport=site,
        sleep=lambda _: None,
    )
    return ResumeCoordinator(fetcher, PageParser(), listing_url=LISTING_URL, page_size=5)


def _site(page_count: int = 4) -> FakeSite:
    return FakeSite(
        [listing_html(i, 5, has_next=i < page_count - 1) for i in range(page_count)]
    )


@pytest.mark.parametrize("count, page", [(1, 1), (4, 1), (5, 2), (9, 2), (10, 3), (12, 3)])
def test_start_page_for(count: int, page: int) -> None:
    assert _coordinator(_site()).start_page_for(count) == page


def test_nothing_persisted_starts_fresh_without_fetching() -> None:
    site = _site()

    point = _coordinator(site).resume([])

    assert point.start_page == 1
    assert point.content is None
    assert site.calls == []


def test_fast_forward_fetches_up_to_start_page() -> None:
    site = _site()
    persisted = [saved_record(i) for i in range(10)]

    point = _coordinator(site).resume(persisted)

    assert point.start_page == 3
    assert point.skip == 0
    assert point.carry_forward == persisted
    assert point.content == site.pages[2]
    assert point.page_url == NEXT_URL
    assert [dict(call[2]).get("start") for call in site.page_calls] == [None, "5", "10"]


def test_partial_page_is_reentered_with_skip() -> None:
    site = _site()

    point = _coordinator(site).resume([saved_record(i) for i in range(7)])

    assert point.start_page == 2
    assert point.skip == 2
    assert len(point.carry_forward) == 7
    assert point.content == site.pages[1]


def test_chain_ending_early_is_exhausted() -> None:
    site = _site(page_count=2)

    point = _coordinator(site).resume([saved_record(i) for i in range(15)])

    assert point.exhausted is True
    assert point.content is None
    assert point.start_page == 4
    assert len(site.page_calls) == 2


def test_fetch_failure_during_fast_forward_aborts() -> None:
    site = _site()
    site.failing_pages = {1}

    with pytest.raises(ResumeAborted) as excinfo:
        _coordinator(site).resume([saved_record(i) for i in range(10)])

    assert excinfo.value.reached_page == 1
    assert excinfo.value.cause is not None


def test_listing_failure_aborts_at_page_zero() -> None:
    site = _site()
    site.failing_pages = {0}

    with pytest.raises(ResumeAborted) as excinfo:
        _coordinator(site).resume([saved_record(0)])

    assert excinfo.value.reached_page == 0
