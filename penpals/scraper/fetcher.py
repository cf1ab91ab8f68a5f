"""Listing page retrieval with per-attempt timeouts and exponential backoff."""
from __future__ import annotations

import time
from typing import Callable, Mapping, Optional, Sequence, Tuple

import requests

from .config import COMMON_HEADERS, RetrySettings
from .error_codes import TRANSIENT_ERROR_CODES, ErrorCode, classify_http_status
from .errors import FetchError, FetchExhausted, TerminalError, TransientNetworkError
from .logging_utils import _crawl_event
from .models import PageRequest, PaginationToken
from .retry_policy import compute_backoff_seconds, decide_retry

Params = Sequence[Tuple[str, str]]
# http_request(method, url, params, headers, timeout_seconds) -> body
Transport = Callable[[str, str, Params, Mapping[str, str], float], str]

_MALFORMED_REQUEST_ERRORS = (
    requests.exceptions.InvalidURL,
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.URLRequired,
)


def _error_for_code(error_code: str, message: str, *, http_status: int | None = None) -> FetchError:
    cls = TransientNetworkError if error_code in TRANSIENT_ERROR_CODES else TerminalError
    return cls(error_code, message, http_status=http_status)


def classify_exception(exc: BaseException) -> FetchError:
    """Map a transport exception onto ``TransientNetworkError`` or ``TerminalError``."""

    if isinstance(exc, FetchError):
        return exc

    message = str(exc) or exc.__class__.__name__

    if isinstance(exc, requests.Timeout):
        return TransientNetworkError(ErrorCode.TIMEOUT, message)
    if isinstance(exc, requests.exceptions.ChunkedEncodingError):
        return TransientNetworkError(ErrorCode.CONNECTION_ABORTED, message)
    if isinstance(exc, requests.ConnectionError):
        lowered = message.lower()
        if "reset" in lowered:
            return TransientNetworkError(ErrorCode.CONNECTION_RESET, message)
        if "aborted" in lowered:
            return TransientNetworkError(ErrorCode.CONNECTION_ABORTED, message)
        return TransientNetworkError(ErrorCode.NETWORK, message)
    if isinstance(exc, _MALFORMED_REQUEST_ERRORS):
        return TerminalError(ErrorCode.MALFORMED_REQUEST, message)
    if isinstance(exc, requests.HTTPError):
        status = getattr(exc.response, "status_code", None)
        return _error_for_code(classify_http_status(status), message, http_status=status)
    if isinstance(exc, requests.RequestException):
        return TransientNetworkError(ErrorCode.NETWORK, message)

    if isinstance(exc, TimeoutError):
        return TransientNetworkError(ErrorCode.TIMEOUT, message)
    if isinstance(exc, ConnectionResetError):
        return TransientNetworkError(ErrorCode.CONNECTION_RESET, message)
    if isinstance(exc, ConnectionAbortedError):
        return TransientNetworkError(ErrorCode.CONNECTION_ABORTED, message)
    if isinstance(exc, OSError):
        return TransientNetworkError(ErrorCode.NETWORK, message)
    if isinstance(exc, ValueError):
        return TerminalError(ErrorCode.MALFORMED_REQUEST, message)
    return TerminalError(ErrorCode.INTERNAL, message)


class RequestsTransport:
    """Default transport backed by a shared ``requests.Session``.

    GET requests append ``params`` to the query string; POST requests send them
    form-encoded. Any HTTP status >= 400 is raised as a classified ``FetchError``.
    """

    def __init__(self, session: Optional[requests.Session] = None) -> None:
        self.session = session or requests.Session()

    def __call__(
        self,
        method: str,
        url: str,
        params: Params,
        headers: Mapping[str, str],
        timeout: float,
    ) -> str:
        pairs = list(params)
        if method.upper() == "POST":
            response = self.session.post(
                url,
                data=pairs,
                headers={**headers, "Content-Type": "application/x-www-form-urlencoded"},
                timeout=timeout,
            )
        else:
            response = self.session.get(url, params=pairs or None, headers=dict(headers), timeout=timeout)

        status = response.status_code
        if status >= 400:
            raise _error_for_code(classify_http_status(status), f"HTTP {status}", http_status=status)
        return response.text


class RetryingFetcher:
    """Shared attempt loop for the page and reveal request paths."""

    path = "request"

    def __init__(
        self,
        retry: RetrySettings,
        *,
        transport: Optional[Transport] = None,
        headers: Optional[Mapping[str, str]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.retry = retry
        self.transport: Transport = transport or RequestsTransport()
        self.headers = dict(headers if headers is not None else COMMON_HEADERS)
        self.sleep = sleep

    def _request(self, method: str, url: str, params: Params = ()) -> str:
        max_attempts = max(1, self.retry.max_attempts)
        last_error: FetchError | None = None

        for attempt in range(1, max_attempts + 1):
            try:
                body = self.transport(method, url, params, self.headers, self.retry.timeout_seconds)
            except Exception as exc:  # noqa: BLE001
                error = classify_exception(exc)
                should_retry = decide_retry(
                    attempt_index=attempt,
                    max_attempts=max_attempts,
                    error=exc,
                    error_code=error.error_code,
                    http_status=error.http_status,
                    path=self.path,
                )
                backoff = compute_backoff_seconds(attempt, self.retry.backoff_base_seconds)
                _crawl_event(
                    "state",
                    phase=f"{self.path}_retry",
                    url=url,
                    attempt=attempt,
                    max_attempts=max_attempts,
                    error_code=error.error_code,
                    http_status=error.http_status,
                    will_retry=should_retry,
                    backoff_seconds=backoff if should_retry else None,
                    error_message=str(error),
                )
                if not should_retry:
                    if isinstance(error, TransientNetworkError):
                        raise FetchExhausted(error, attempts=attempt, url=url) from exc
                    if error is exc:
                        raise
                    raise error from exc
                last_error = error
                self.sleep(backoff)
                continue

            return body or ""

        # Only reachable if the loop exits without returning or raising.
        raise FetchExhausted(
            last_error or TransientNetworkError(ErrorCode.NETWORK, "no attempts made"),
            attempts=max_attempts,
            url=url,
        )


class PageFetcher(RetryingFetcher):
    """Fetch a listing page from a plain URL or a ``PaginationToken``."""

    path = "page"

    def fetch(self, request: PageRequest) -> str:
        if isinstance(request, PaginationToken):
            return self._request(request.method, request.url, request.params)
        return self._request("GET", request)


__all__ = [
    "PageFetcher",
    "RequestsTransport",
    "RetryingFetcher",
    "Transport",
    "classify_exception",
]
