from __future__ import annotations

from typing import Literal

from .config import CrawlSettings, RetrySettings
from .logging_utils import _crawl_event
from .utils import log_line

Entrypoint = Literal["cli", "tests"]


def _raise_config_error(message: str, *, entrypoint: Entrypoint, error: str) -> None:
    _crawl_event(
        "error",
        phase="config",
        context="runtime_validation",
        error=error,
        entrypoint=entrypoint,
    )
    log_line(f"[CONFIG] {message} (entrypoint={entrypoint})")
    raise ValueError(message)


def _validate_retry(name: str, retry: RetrySettings, *, entrypoint: Entrypoint) -> None:
    if retry.max_attempts < 1:
        _raise_config_error(
            f"{name}.max_attempts must be at least 1.",
            entrypoint=entrypoint,
            error="invalid_max_attempts",
        )
    if retry.backoff_base_seconds < 0:
        _raise_config_error(
            f"{name}.backoff_base_seconds must be non-negative.",
            entrypoint=entrypoint,
            error="invalid_backoff",
        )
    if retry.timeout_seconds <= 0:
        _raise_config_error(
            f"{name}.timeout_seconds must be greater than zero.",
            entrypoint=entrypoint,
            error="invalid_timeout",
        )


def validate_crawl_settings(settings: CrawlSettings, entrypoint: Entrypoint = "cli") -> None:
    """Validate crawl settings before any network traffic.

    Raises ``ValueError`` for blocking misconfiguration.
    """

    if settings.page_size < 1:
        _raise_config_error(
            "page_size must be at least 1.", entrypoint=entrypoint, error="invalid_page_size"
        )
    if settings.max_pages < 1:
        _raise_config_error(
            "max_pages must be at least 1.", entrypoint=entrypoint, error="invalid_max_pages"
        )

    for field_name in ("reveal_delay_seconds", "page_settle_seconds"):
        if getattr(settings, field_name) < 0:
            _raise_config_error(
                f"{field_name} must be non-negative.",
                entrypoint=entrypoint,
                error="invalid_delay",
            )

    _validate_retry("page_retry", settings.page_retry, entrypoint=entrypoint)
    _validate_retry("reveal_retry", settings.reveal_retry, entrypoint=entrypoint)


__all__ = ["validate_crawl_settings", "Entrypoint"]
