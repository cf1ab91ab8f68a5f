"""Crawl one penpalsnow listing into an Excel workbook.

Workflow:

- Build the listing URL from a region code and a category, e.g.
  ``https://www.penpalsnow.com/ads/sexcountry/AUmale.html``.
- If ``output/AUmale.xlsx`` already holds results, replay the "next" chain up
  to the first page not yet captured.
- For each page, read the five ads, look up each ad's e-mail address through
  ``/_api/showemail.php?e=<id>``, and save the workbook.
- Follow the ``Next 5 pen pal ads`` form until it disappears or a page comes
  back empty.

Usage: ``python main.py [region] [category]``.
"""

from __future__ import annotations

import argparse
import dataclasses
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from . import config, listings
from .config import CrawlSettings
from .config_validation import Entrypoint, validate_crawl_settings
from .fetcher import PageFetcher, Transport
from .logging_utils import _crawl_event
from .orchestrator import CrawlOrchestrator, ResultStore
from .parser import PageParser
from .reveal import RevealFetcher
from .store import ExcelStore
from .utils import ensure_dirs, log_line, setup_run_logger


def build_orchestrator(
    region: Optional[str],
    category: Optional[str],
    *,
    settings: Optional[CrawlSettings] = None,
    output_dir: Optional[Path] = None,
    resume: Optional[bool] = None,
    transport: Optional[Transport] = None,
    store: Optional[ResultStore] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> CrawlOrchestrator:
    """Wire the crawl components for one listing."""

    settings = settings or CrawlSettings()
    listing_url = listings.build_listing_url(region, category, base_url=settings.base_url)
    output_path = listings.output_path_for(region, category, output_dir)

    fetcher = PageFetcher(
        settings.page_retry, transport=transport, headers=settings.headers, sleep=sleep
    )
    revealer = RevealFetcher(
        settings.reveal_retry,
        api_url=settings.reveal_url,
        transport=fetcher.transport,
        headers=settings.headers,
        sleep=sleep,
    )
    parser = PageParser(
        base_url=settings.base_url,
        max_entries=settings.page_size,
        marker_selector=settings.entry_marker_selector,
        next_button_label=settings.next_button_label,
    )

    return CrawlOrchestrator(
        listing_url=listing_url,
        output_path=output_path,
        fetcher=fetcher,
        parser=parser,
        revealer=revealer,
        store=store or ExcelStore(),
        settings=settings,
        resume=config.is_resume_enabled(resume),
        sleep=sleep,
    )


def run_crawl(
    region: Optional[str] = None,
    category: Optional[str] = None,
    *,
    max_pages: Optional[int] = None,
    output_dir: Optional[Path] = None,
    resume: Optional[bool] = None,
    text_fallback: Optional[bool] = None,
    settings: Optional[CrawlSettings] = None,
    entrypoint: Entrypoint = "cli",
    **wiring: Any,
) -> Dict[str, Any]:
    """Public entrypoint: crawl one listing and return the run summary."""

    ensure_dirs()
    setup_run_logger()

    overrides: Dict[str, Any] = {}
    if max_pages is not None:
        overrides["max_pages"] = max_pages
    if text_fallback is not None:
        overrides["text_fallback"] = bool(text_fallback)
    settings = dataclasses.replace(settings or CrawlSettings(), **overrides)
    validate_crawl_settings(settings, entrypoint)

    orchestrator = build_orchestrator(
        region,
        category,
        settings=settings,
        output_dir=output_dir,
        resume=resume,
        **wiring,
    )

    log_line(f"[RUN] Crawling {orchestrator.listing_url} -> {orchestrator.output_path}")
    _crawl_event("plan", listing_url=orchestrator.listing_url, max_pages=settings.max_pages)

    summary = orchestrator.run()

    log_line(f"[RUN] Total: {summary.records_total} ads ({summary.records_new} new)")
    log_line(f"[RUN] Saved: {summary.output_path} (stopped: {summary.stop_reason})")
    return summary.as_dict()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Crawl a penpalsnow listing into an Excel workbook")
    parser.add_argument("region", nargs="?", default=config.DEFAULT_REGION, help="Two-letter region code, e.g. AU")
    parser.add_argument("category", nargs="?", default=config.DEFAULT_CATEGORY, help="Listing category, e.g. male")
    parser.add_argument("--max-pages", type=int, default=None)
    parser.add_argument("--output-dir", type=Path, default=None)
    parser.add_argument(
        "--no-resume",
        dest="resume",
        action="store_false",
        default=None,
        help="Ignore any saved workbook and crawl from the first page",
    )
    parser.add_argument(
        "--text-fallback",
        action="store_true",
        default=None,
        help="Scan ad text for an address when the reveal lookup returns nothing",
    )
    return parser


def _cli_entrypoint(argv: Optional[List[str]] = None) -> int:  # pragma: no cover
    args = _build_parser().parse_args(argv)
    try:
        region = listings.normalize_region(args.region)
        category = listings.normalize_category(args.category)
    except ValueError as exc:
        _build_parser().error(str(exc))

    run_crawl(
        region,
        category,
        max_pages=args.max_pages,
        output_dir=args.output_dir,
        resume=args.resume,
        text_fallback=args.text_fallback,
    )
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(_cli_entrypoint())

__all__ = ["build_orchestrator", "run_crawl", "_cli_entrypoint"]
