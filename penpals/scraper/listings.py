"""Listing addressing: which region/category page to crawl and where to save it.

The site files ads under ``/ads/sexcountry/<REGION><category>.html``, e.g.
``AUmale.html`` or ``CAfemale.html``. The same stem names the output workbook
so that repeated runs for one listing resume from the same file.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path

from . import config

LOGGER = logging.getLogger("penpals")

KNOWN_CATEGORIES = ("male", "female")

_REGION_RE = re.compile(r"^[A-Z]{2}$")
_CATEGORY_ALIASES = {
    "m": "male",
    "men": "male",
    "man": "male",
    "f": "female",
    "women": "female",
    "woman": "female",
}


def normalize_region(value: str | None) -> str:
    """Return an upper-case two-letter region code, defaulting to ``DEFAULT_REGION``."""

    if not value or not value.strip():
        return config.DEFAULT_REGION
    region = value.strip().upper()
    if not _REGION_RE.match(region):
        raise ValueError(f"Region must be a two-letter country code, got {value!r}")
    return region


def normalize_category(value: str | None) -> str:
    """Return a lower-case category; short aliases map onto ``male``/``female``.

    Unknown categories pass through with a warning, since the site may add
    listings this module does not know about.
    """

    if not value or not value.strip():
        return config.DEFAULT_CATEGORY
    raw = value.strip().lower()
    category = _CATEGORY_ALIASES.get(raw, raw)
    if not re.fullmatch(r"[a-z]+", category):
        raise ValueError(f"Category must be alphabetic, got {value!r}")
    if category not in KNOWN_CATEGORIES:
        LOGGER.warning("[LISTINGS][WARN] Unknown category %r; using it as-is.", value)
    return category


def listing_stem(region: str | None, category: str | None) -> str:
    return f"{normalize_region(region)}{normalize_category(category)}"


def build_listing_url(region: str | None, category: str | None, *, base_url: str = config.BASE_URL) -> str:
    return f"{base_url}{config.LISTING_PATH}/{listing_stem(region, category)}.html"


def output_path_for(region: str | None, category: str | None, output_dir: Path | None = None) -> Path:
    directory = Path(output_dir) if output_dir is not None else config.OUTPUT_DIR
    return directory / f"{listing_stem(region, category)}.xlsx"


__all__ = [
    "KNOWN_CATEGORIES",
    "build_listing_url",
    "listing_stem",
    "normalize_category",
    "normalize_region",
    "output_path_for",
]
