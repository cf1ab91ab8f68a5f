from __future__ import annotations

from typing import Optional

from .error_codes import TERMINAL_ERROR_CODES, TRANSIENT_ERROR_CODES
from .logging_utils import _crawl_event

MAX_BACKOFF_SECONDS = 120.0


def compute_backoff_seconds(attempt_index: int, base_seconds: float = 2.0) -> float:
    """Return the delay before the attempt following ``attempt_index`` (1-based).

    ``base * 2 ** (attempt - 1)``, capped at ``MAX_BACKOFF_SECONDS``.
    """

    return float(min(base_seconds * (2 ** max(0, attempt_index - 1)), MAX_BACKOFF_SECONDS))


def decide_retry(
    attempt_index: int,
    max_attempts: int,
    error: BaseException | None = None,
    *,
    error_code: Optional[str] = None,
    http_status: Optional[int] = None,
    path: str | None = None,
) -> bool:
    """Decide whether a failed attempt should be retried.

    Only codes in ``TRANSIENT_ERROR_CODES`` are retried, and only while
    attempts remain. Terminal and unknown codes fail on the first attempt.
    """

    code = (error_code or "").strip()

    if attempt_index >= max_attempts:
        kind, will_retry = "capped", False
    elif code in TERMINAL_ERROR_CODES:
        kind, will_retry = "non_retryable", False
    elif code in TRANSIENT_ERROR_CODES:
        kind, will_retry = "retryable", True
    else:
        kind, will_retry = ("unknown" if code else "missing_error_code"), False

    _crawl_event(
        "state",
        phase="retry_decision",
        kind=kind,
        path=path,
        error_code=code or None,
        attempt=attempt_index,
        max_attempts=max_attempts,
        http_status=http_status,
        will_retry=will_retry,
        error_repr=repr(error) if error is not None and kind == "unknown" else None,
    )
    return will_retry


__all__ = ["decide_retry", "compute_backoff_seconds", "MAX_BACKOFF_SECONDS"]
