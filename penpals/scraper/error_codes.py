"""Error code taxonomy for crawler failures.

Codes appear in structured log lines and on raised ``FetchError`` instances so
a failed page or reveal lookup can be explained after the fact. Keep the
values stable; log searches depend on them.
"""
from __future__ import annotations


class ErrorCode:
    # Transient: retried by the fetchers.
    NETWORK = "network_error"
    TIMEOUT = "timeout"
    CONNECTION_RESET = "connection_reset"
    CONNECTION_ABORTED = "connection_aborted"
    HTTP_5XX = "http_5xx"
    RATE_LIMITED = "rate_limited"

    # Terminal: fail on first occurrence.
    MALFORMED_REQUEST = "malformed_request"
    HTTP_4XX = "http_4xx"
    SITE_STRUCTURE = "site_structure_changed"
    INTERNAL = "internal_error"


TRANSIENT_ERROR_CODES = frozenset(
    {
        ErrorCode.NETWORK,
        ErrorCode.TIMEOUT,
        ErrorCode.CONNECTION_RESET,
        ErrorCode.CONNECTION_ABORTED,
        ErrorCode.HTTP_5XX,
        ErrorCode.RATE_LIMITED,
    }
)

TERMINAL_ERROR_CODES = frozenset(
    {
        ErrorCode.MALFORMED_REQUEST,
        ErrorCode.HTTP_4XX,
        ErrorCode.SITE_STRUCTURE,
        ErrorCode.INTERNAL,
    }
)


def classify_http_status(status: int | None) -> str:
    """Map an HTTP status code onto the taxonomy."""

    if status is None:
        return ErrorCode.INTERNAL
    if status == 429:
        return ErrorCode.RATE_LIMITED
    if status >= 500:
        return ErrorCode.HTTP_5XX
    if 400 <= status < 500:
        return ErrorCode.HTTP_4XX
    return ErrorCode.INTERNAL


__all__ = [
    "ErrorCode",
    "TERMINAL_ERROR_CODES",
    "TRANSIENT_ERROR_CODES",
    "classify_http_status",
]
