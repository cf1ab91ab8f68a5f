"""Configuration constants for the penpals listing crawler."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

OUTPUT_DIR: Path = Path(os.getenv("PENPALS_OUTPUT_DIR", "output"))
LOG_DIR: Path = OUTPUT_DIR / "logs"
LOG_FILE: Path = LOG_DIR / "latest.log"

BASE_URL: str = "https://www.penpalsnow.com"
LISTING_PATH: str = "/ads/sexcountry"
REVEAL_API_URL: str = f"{BASE_URL}/_api/showemail.php"

DEFAULT_REGION: str = "AU"
DEFAULT_CATEGORY: str = "male"

# The site renders five ads per listing page and the "next" form advances by five.
ADS_PER_PAGE: int = 5
NEXT_BUTTON_LABEL: str = "Next 5 pen pal ads"
ENTRY_MARKER_SELECTOR: str = "a.showemail.ppadvaluebold"

EMAIL_PATTERN: str = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"

MAX_PAGES: int = int(os.getenv("PENPALS_MAX_PAGES", "999"))
RESUME_DEFAULT: bool = os.getenv("PENPALS_RESUME", "true").strip().lower() != "false"
TEXT_FALLBACK_DEFAULT: bool = os.getenv("PENPALS_TEXT_FALLBACK", "0").strip().lower() not in {
    "0",
    "false",
    "",
}


def _parse_timeout_seconds(env_var: str, default: float, *, minimum: float = 1.0) -> float:
    """Parse a timeout value in seconds from the environment with bounds."""

    try:
        value = float(os.getenv(env_var, str(default)))
    except ValueError:
        return default
    return max(minimum, value)


# Per-attempt network timeouts (seconds).
PAGE_TIMEOUT_SECONDS: float = _parse_timeout_seconds("PENPALS_PAGE_TIMEOUT_S", 30)
REVEAL_TIMEOUT_SECONDS: float = _parse_timeout_seconds("PENPALS_REVEAL_TIMEOUT_S", 15)

PAGE_MAX_ATTEMPTS: int = int(os.getenv("PENPALS_PAGE_MAX_ATTEMPTS", "4"))
PAGE_BACKOFF_BASE_SECONDS: float = float(os.getenv("PENPALS_PAGE_BACKOFF_BASE_S", "2.0"))
REVEAL_MAX_ATTEMPTS: int = int(os.getenv("PENPALS_REVEAL_MAX_ATTEMPTS", "4"))
REVEAL_BACKOFF_BASE_SECONDS: float = float(os.getenv("PENPALS_REVEAL_BACKOFF_BASE_S", "1.0"))

# Pacing between requests (seconds).
REVEAL_DELAY_SECONDS: float = float(os.getenv("PENPALS_REVEAL_DELAY_S", "0.3"))
PAGE_SETTLE_SECONDS: float = float(os.getenv("PENPALS_PAGE_SETTLE_S", "0.4"))

# Downstream dispatcher.
DISPATCH_MAX_PER_RUN: int = int(os.getenv("PENPALS_DISPATCH_MAX", "100"))
DISPATCH_DELAY_SECONDS: float = float(os.getenv("PENPALS_DISPATCH_DELAY_S", "1.5"))
DISPATCH_SUBJECT: str = os.getenv("PENPALS_DISPATCH_SUBJECT", "Hello from a fellow pen pal")
DISPATCH_BODY_FILE: str | None = os.getenv("PENPALS_DISPATCH_BODY_FILE") or None

COMMON_HEADERS: dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


@dataclass(frozen=True)
class RetrySettings:
    """Retry ceiling, backoff base and per-attempt timeout for one request path."""

    max_attempts: int
    backoff_base_seconds: float
    timeout_seconds: float


@dataclass(frozen=True)
class CrawlSettings:
    """Everything the crawl components need, resolved once per run.

    Components receive these values at construction instead of reading the
    module globals, so tests can inject zero delays and small ceilings.
    """

    base_url: str = BASE_URL
    reveal_url: str = REVEAL_API_URL
    page_size: int = ADS_PER_PAGE
    entry_marker_selector: str = ENTRY_MARKER_SELECTOR
    next_button_label: str = NEXT_BUTTON_LABEL
    max_pages: int = MAX_PAGES
    reveal_delay_seconds: float = REVEAL_DELAY_SECONDS
    page_settle_seconds: float = PAGE_SETTLE_SECONDS
    text_fallback: bool = TEXT_FALLBACK_DEFAULT
    headers: dict[str, str] = field(default_factory=lambda: dict(COMMON_HEADERS))
    page_retry: RetrySettings = field(
        default_factory=lambda: RetrySettings(
            PAGE_MAX_ATTEMPTS, PAGE_BACKOFF_BASE_SECONDS, PAGE_TIMEOUT_SECONDS
        )
    )
    reveal_retry: RetrySettings = field(
        default_factory=lambda: RetrySettings(
            REVEAL_MAX_ATTEMPTS, REVEAL_BACKOFF_BASE_SECONDS, REVEAL_TIMEOUT_SECONDS
        )
    )


def is_resume_enabled(flag: bool | None = None) -> bool:
    """Return the effective resume switch, falling back to ``PENPALS_RESUME``."""

    return RESUME_DEFAULT if flag is None else bool(flag)
