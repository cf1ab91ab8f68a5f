from __future__ import annotations

from pathlib import Path

import pytest

from penpals.scraper import run
from penpals.scraper.store import ExcelStore
from tests.site_fixtures import FakeSite, fast_settings, listing_html


def _site() -> FakeSite:
    return FakeSite([listing_html(0, 5), listing_html(1, 2, has_next=False)])


def test_run_crawl_writes_workbook_and_summary(tmp_path: Path) -> None:
    output_dir = tmp_path / "results"

    summary = run.run_crawl(
        "au",
        "male",
        output_dir=output_dir,
        settings=fast_settings(),
        entrypoint="tests",
        transport=_site(),
        sleep=lambda _: None,
    )

    path = output_dir / "AUmale.xlsx"
    assert summary["stop_reason"] == "last_page"
    assert summary["records_total"] == 7
    assert summary["output_path"] == str(path)
    records = ExcelStore().load(path)
    assert len(records) == 7
    assert records[6].revealed_value == "k1-1@mail.example"


def test_second_run_resumes_from_saved_workbook(tmp_path: Path) -> None:
    output_dir = tmp_path / "results"
    first = run.run_crawl(
        output_dir=output_dir,
        max_pages=1,
        settings=fast_settings(),
        entrypoint="tests",
        transport=_site(),
        sleep=lambda _: None,
    )
    assert first["stop_reason"] == "max_pages"
    assert first["records_total"] == 5

    site = _site()
    second = run.run_crawl(
        output_dir=output_dir,
        settings=fast_settings(),
        entrypoint="tests",
        transport=site,
        sleep=lambda _: None,
    )

    assert second["resumed_from"] == 2
    assert second["records_total"] == 7
    assert second["records_new"] == 2
    assert len(site.page_calls) == 2


def test_invalid_override_fails_before_any_request() -> None:
    site = _site()

    with pytest.raises(ValueError):
        run.run_crawl(max_pages=0, entrypoint="tests", transport=site, sleep=lambda _: None)

    assert site.calls == []


def test_cli_parser_defaults() -> None:
    args = run._build_parser().parse_args([])

    assert (args.region, args.category) == ("AU", "male")
    assert args.resume is None
    assert args.text_fallback is None

    args = run._build_parser().parse_args(["ca", "female", "--no-resume", "--max-pages", "3"])
    assert args.resume is False
    assert args.max_pages == 3
