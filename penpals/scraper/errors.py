"""Exception types raised by the fetchers and the resume coordinator."""
from __future__ import annotations

from .error_codes import ErrorCode


class FetchError(Exception):
    """Base class for network failures, tagged with an ``ErrorCode`` value."""

    def __init__(self, error_code: str, message: str, *, http_status: int | None = None) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.http_status = http_status

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class TransientNetworkError(FetchError):
    """Reset, timeout, aborted connection or other retryable transport failure."""


class TerminalError(FetchError):
    """Failure that retrying cannot fix (malformed request, 4xx, ...)."""


class FetchExhausted(FetchError):
    """Every attempt failed; ``cause`` is the last underlying error."""

    def __init__(self, cause: BaseException, *, attempts: int, url: str | None = None) -> None:
        error_code = getattr(cause, "error_code", None) or ErrorCode.NETWORK
        http_status = getattr(cause, "http_status", None)
        super().__init__(
            error_code,
            f"gave up after {attempts} attempts: {cause}",
            http_status=http_status,
        )
        self.cause = cause
        self.attempts = attempts
        self.url = url


class ResumeAborted(Exception):
    """Fast-forwarding to the resume page failed part way through the chain."""

    def __init__(self, message: str, *, reached_page: int, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.reached_page = reached_page
        self.cause = cause


__all__ = [
    "FetchError",
    "FetchExhausted",
    "ResumeAborted",
    "TerminalError",
    "TransientNetworkError",
]
