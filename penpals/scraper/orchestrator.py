"""Page loop for the listing crawl.

One page at a time: fetch, parse, reveal each ad's address, append, save the
whole result set, follow the "next" form. Pages are strictly sequential
because each continuation token comes out of the previous page's HTML.

Stop conditions, checked in this order on every iteration:

- the page ceiling (``CrawlSettings.max_pages``) is reached;
- the page fetch fails for good (retries exhausted or a terminal error);
- the page has no ads, even if it still shows a "next" form;
- the page has no "next" form (after its ads are saved).

Network failures end the run with whatever was collected; they are logged
and never raised to the caller.
"""
from __future__ import annotations

import time
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence

from .config import CrawlSettings
from .error_codes import ErrorCode
from .errors import FetchError, ResumeAborted
from .fetcher import PageFetcher
from .logging_utils import _crawl_event
from .models import CrawlState, CrawlSummary, Record, request_url
from .parser import PageParser
from .resume import ResumeCoordinator
from .reveal import RevealFetcher, address_from_free_text
from .utils import log_line, redact_email


class ResultStore(Protocol):
    def load(self, path: Path) -> List[Record]: ...

    def save(self, path: Path, records: Sequence[Record]) -> Path: ...


class CrawlOrchestrator:
    def __init__(
        self,
        *,
        listing_url: str,
        output_path: Path,
        fetcher: PageFetcher,
        parser: PageParser,
        revealer: RevealFetcher,
        store: ResultStore,
        settings: Optional[CrawlSettings] = None,
        resume: bool = True,
        resumer: Optional[ResumeCoordinator] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings or CrawlSettings()
        self.listing_url = listing_url
        self.output_path = Path(output_path)
        self.fetcher = fetcher
        self.parser = parser
        self.revealer = revealer
        self.store = store
        self.resume_enabled = resume
        self.resumer = resumer or ResumeCoordinator(
            fetcher,
            parser,
            listing_url=listing_url,
            page_size=self.settings.page_size,
        )
        self.sleep = sleep

    def run(self) -> CrawlSummary:
        state = CrawlState.start(self.listing_url)
        summary = CrawlSummary(stop_reason="running", output_path=str(self.output_path))
        pending_content: Optional[str] = None
        pending_url: Optional[str] = None
        skip = 0

        if self.resume_enabled:
            persisted = self.store.load(self.output_path)
            if persisted:
                try:
                    point = self.resumer.resume(persisted)
                except ResumeAborted as exc:
                    log_line(
                        f"[RESUME][WARN] {exc}; keeping the {len(persisted)} saved records and stopping"
                    )
                    state.records = list(persisted)
                    return self._finish(state, summary, "resume_aborted")

                state.records = point.carry_forward
                state.page_number = point.start_page
                summary.resumed_from = point.start_page
                if point.exhausted:
                    return self._finish(state, summary, "resume_exhausted")
                pending_content = point.content
                pending_url = point.page_url
                skip = point.skip

        while True:
            if state.page_number > self.settings.max_pages:
                log_line(f"[CRAWL] Page ceiling {self.settings.max_pages} reached")
                return self._finish(state, summary, "max_pages")

            if pending_content is not None:
                content, pending_content = pending_content, None
                page_url = pending_url or self.listing_url
            else:
                page_url = request_url(state.token)
                try:
                    content = self.fetcher.fetch(state.token)
                except FetchError as exc:
                    log_line(
                        f"[CRAWL][WARN] Page {state.page_number} could not be fetched "
                        f"({exc.error_code}): {exc}; keeping {len(state.records)} records"
                    )
                    return self._finish(state, summary, "fetch_failed")
                self.sleep(self.settings.page_settle_seconds)

            page = self.parser.parse(content, page_url=page_url)
            if not page.records:
                log_line(f"[CRAWL] Page {state.page_number}: no ads; stopping")
                return self._finish(state, summary, "empty_page")
            if not any(value for record in page.records for value in record.fields.values()):
                # Markers found but no labelled fields: the ad layout has probably changed.
                log_line(
                    f"[CRAWL][WARN] Page {state.page_number}: {len(page.records)} ads without any "
                    "readable fields; keeping reveal results only"
                )
                _crawl_event(
                    "error",
                    phase="parse",
                    error_code=ErrorCode.SITE_STRUCTURE,
                    page=state.page_number,
                    records=len(page.records),
                )

            fresh = page.records[skip:]
            skip = 0
            self._reveal_all(fresh, summary)
            state.records.extend(fresh)
            summary.pages_processed += 1
            summary.records_new += len(fresh)

            self.store.save(self.output_path, state.records)
            log_line(
                f"[CRAWL] Page {state.page_number}: {len(fresh)} ads (total: {len(state.records)})"
            )
            _crawl_event(
                "checkpoint",
                page=state.page_number,
                records=len(state.records),
                path=str(self.output_path),
            )

            if page.token is None:
                return self._finish(state, summary, "last_page")
            state.token = page.token
            state.page_number += 1

    def _reveal_all(self, records: Sequence[Record], summary: CrawlSummary) -> None:
        for record in records:
            value: Optional[str] = None
            if record.reveal_key:
                try:
                    value = self.revealer.reveal(record.reveal_key)
                except FetchError as exc:
                    summary.reveal_failures += 1
                    log_line(
                        f"[REVEAL][WARN] Lookup for key={record.reveal_key} failed "
                        f"({exc.error_code}): {exc}"
                    )

            if value is None and self.settings.text_fallback:
                value = address_from_free_text(record)
                if value:
                    _crawl_event("reveal", source="free_text", key=record.reveal_key)

            if record.set_revealed(value):
                summary.revealed += 1
                _crawl_event("reveal", key=record.reveal_key, email=redact_email(value))
            elif record.revealed_value is None:
                log_line(f"[REVEAL] No address for key={record.reveal_key}")

            self.sleep(self.settings.reveal_delay_seconds)

    def _finish(self, state: CrawlState, summary: CrawlSummary, reason: str) -> CrawlSummary:
        if state.records or not self.output_path.exists():
            self.store.save(self.output_path, state.records)
        else:
            # Never replace an existing workbook with an empty result set.
            log_line(f"[CRAWL][WARN] Nothing collected; leaving {self.output_path} untouched")
        summary.stop_reason = reason
        summary.records_total = len(state.records)
        _crawl_event("summary", **summary.as_dict())
        return summary


__all__ = ["CrawlOrchestrator", "ResultStore"]
