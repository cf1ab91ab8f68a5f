"""Resume a crawl from a previously saved workbook.

The site has no page-number addressing, only a chained "Next 5 pen pal ads"
form, so resuming means replaying that chain from the first page until the
first page not fully captured is reached. The replay assumes the remote
ordering is stable between runs; if ads are inserted or removed in between,
the resumed crawl can skip or repeat some of them.
"""
from __future__ import annotations

from typing import Sequence

from . import config
from .errors import FetchError, ResumeAborted
from .fetcher import PageFetcher
from .logging_utils import _crawl_event
from .models import Record, ResumePoint, request_url
from .parser import PageParser
from .utils import log_line


class ResumeCoordinator:
    def __init__(
        self,
        fetcher: PageFetcher,
        parser: PageParser,
        *,
        listing_url: str,
        page_size: int = config.ADS_PER_PAGE,
    ) -> None:
        self.fetcher = fetcher
        self.parser = parser
        self.listing_url = listing_url
        self.page_size = max(1, page_size)

    def start_page_for(self, persisted_count: int) -> int:
        return persisted_count // self.page_size + 1

    def resume(self, persisted: Sequence[Record]) -> ResumePoint:
        """Fast-forward to the page after the last fully captured one.

        Returns the HTML of that page in ``ResumePoint.content`` together with
        every persisted record as ``carry_forward``. Raises ``ResumeAborted``
        if any page along the chain cannot be fetched.
        """

        carry_forward = list(persisted)
        count = len(carry_forward)
        if count == 0:
            return ResumePoint(start_page=1, carry_forward=[])

        start_page = self.start_page_for(count)
        skip = count % self.page_size
        log_line(
            f"[RESUME] {count} records already saved; fast-forwarding to page {start_page}"
            + (f" (skipping first {skip} ads there)" if skip else "")
        )

        try:
            content = self.fetcher.fetch(self.listing_url)
        except FetchError as exc:
            raise ResumeAborted(
                f"Could not fetch listing start page: {exc}", reached_page=0, cause=exc
            ) from exc

        page = 1
        page_url = self.listing_url
        while page < start_page:
            token = self.parser.parse_token(content, page_url=page_url)
            if token is None:
                log_line(
                    f"[RESUME] Listing ends at page {page}, before page {start_page}; nothing new to fetch"
                )
                return ResumePoint(
                    start_page=start_page,
                    carry_forward=carry_forward,
                    skip=skip,
                    exhausted=True,
                )
            try:
                content = self.fetcher.fetch(token)
            except FetchError as exc:
                raise ResumeAborted(
                    f"Fast-forward stopped after page {page}: {exc}", reached_page=page, cause=exc
                ) from exc
            page += 1
            page_url = request_url(token)
            _crawl_event("state", phase="fast_forward", page=page, target_page=start_page)

        return ResumePoint(
            start_page=start_page,
            carry_forward=carry_forward,
            content=content,
            skip=skip,
            page_url=page_url,
        )


__all__ = ["ResumeCoordinator"]
