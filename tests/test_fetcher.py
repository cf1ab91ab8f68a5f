from __future__ import annotations

import pytest
import requests

from penpals.scraper.config import RetrySettings
from penpals.scraper.error_codes import ErrorCode
from penpals.scraper.errors import FetchExhausted, TerminalError, TransientNetworkError
from penpals.scraper.fetcher import PageFetcher, RequestsTransport, classify_exception
from penpals.scraper.models import PaginationToken


class _ScriptedTransport:
    """Raise or return the scripted outcomes in order."""

    def __init__(self, *outcomes: object) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[tuple] = []

    def __call__(self, method, url, params, headers, timeout):  # noqa: ANN001
        self.calls.append((method, url, tuple(params), dict(headers), timeout))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def _fetcher(transport: _ScriptedTransport, sleeps: list[float]) -> PageFetcher:
    return PageFetcher(
        RetrySettings(max_attempts=4, backoff_base_seconds=2.0, timeout_seconds=30),
        transport=transport,
        sleep=sleeps.append,
    )


def test_transient_failures_are_retried_until_success() -> None:
    sleeps: list[float] = []
    transport = _ScriptedTransport(
        ConnectionResetError("Connection reset by peer"),
        requests.Timeout("read timed out"),
        "<html>ok</html>",
    )

    body = _fetcher(transport, sleeps).fetch("https://www.penpalsnow.com/ads/sexcountry/AUmale.html")

    assert body == "<html>ok</html>"
    assert len(transport.calls) == 3
    assert sleeps == [2.0, 4.0]
    assert transport.calls[0][4] == 30


def test_exhausted_attempts_raise_with_last_cause() -> None:
    sleeps: list[float] = []
    transport = _ScriptedTransport(*[ConnectionResetError("Connection reset by peer")] * 4)

    with pytest.raises(FetchExhausted) as excinfo:
        _fetcher(transport, sleeps).fetch("https://www.penpalsnow.com/x.html")

    error = excinfo.value
    assert error.attempts == 4
    assert error.error_code == ErrorCode.CONNECTION_RESET
    assert isinstance(error.cause, TransientNetworkError)
    assert error.url == "https://www.penpalsnow.com/x.html"
    assert len(transport.calls) == 4
    assert sleeps == [2.0, 4.0, 8.0]


@pytest.mark.parametrize(
    "failure, code",
    [
        (ValueError("bad url"), ErrorCode.MALFORMED_REQUEST),
        (TerminalError(ErrorCode.HTTP_4XX, "HTTP 404", http_status=404), ErrorCode.HTTP_4XX),
    ],
)
def test_terminal_failures_are_not_retried(failure: Exception, code: str) -> None:
    sleeps: list[float] = []
    transport = _ScriptedTransport(failure, "never reached")

    with pytest.raises(TerminalError) as excinfo:
        _fetcher(transport, sleeps).fetch("https://www.penpalsnow.com/x.html")

    assert excinfo.value.error_code == code
    assert len(transport.calls) == 1
    assert sleeps == []


def test_server_errors_are_retried() -> None:
    sleeps: list[float] = []
    transport = _ScriptedTransport(
        TransientNetworkError(ErrorCode.HTTP_5XX, "HTTP 503", http_status=503),
        "<html>ok</html>",
    )

    assert _fetcher(transport, sleeps).fetch("https://www.penpalsnow.com/x.html") == "<html>ok</html>"
    assert sleeps == [2.0]


def test_token_request_passes_method_and_params() -> None:
    transport = _ScriptedTransport("<html>page 2</html>")
    token = PaginationToken(
        url="https://www.penpalsnow.com/ads/sexcountry/nextpage.php",
        method="post",
        params=(("start", "5"), ("sexcountry", "AUmale")),
    )

    _fetcher(transport, []).fetch(token)

    method, url, params, headers, _ = transport.calls[0]
    assert method == "POST"
    assert url == token.url
    assert params == (("start", "5"), ("sexcountry", "AUmale"))
    assert "User-Agent" in headers


def test_token_rejects_unknown_method() -> None:
    with pytest.raises(ValueError):
        PaginationToken(url="https://example.com", method="PUT")


@pytest.mark.parametrize(
    "exc, expected_type, code",
    [
        (requests.Timeout("slow"), TransientNetworkError, ErrorCode.TIMEOUT),
        (requests.ConnectionError("Connection reset by peer"), TransientNetworkError, ErrorCode.CONNECTION_RESET),
        (requests.ConnectionError("Connection aborted."), TransientNetworkError, ErrorCode.CONNECTION_ABORTED),
        (requests.ConnectionError("Name or service not known"), TransientNetworkError, ErrorCode.NETWORK),
        (requests.exceptions.MissingSchema("no schema"), TerminalError, ErrorCode.MALFORMED_REQUEST),
        (ConnectionAbortedError("aborted"), TransientNetworkError, ErrorCode.CONNECTION_ABORTED),
        (TimeoutError("timed out"), TransientNetworkError, ErrorCode.TIMEOUT),
        (KeyError("boom"), TerminalError, ErrorCode.INTERNAL),
    ],
)
def test_classify_exception(exc: BaseException, expected_type: type, code: str) -> None:
    error = classify_exception(exc)

    assert isinstance(error, expected_type)
    assert error.error_code == code


class _FakeResponse:
    def __init__(self, status_code: int, text: str = "") -> None:
        self.status_code = status_code
        self.text = text


class _FakeSession:
    def __init__(self, response: _FakeResponse) -> None:
        self.response = response
        self.calls: list[tuple[str, str, dict]] = []

    def get(self, url, **kwargs):  # noqa: ANN001
        self.calls.append(("GET", url, kwargs))
        return self.response

    def post(self, url, **kwargs):  # noqa: ANN001
        self.calls.append(("POST", url, kwargs))
        return self.response


def test_requests_transport_posts_form_data() -> None:
    session = _FakeSession(_FakeResponse(200, "<html/>"))
    transport = RequestsTransport(session=session)

    body = transport("POST", "https://example.com/next", [("start", "5")], {"User-Agent": "t"}, 12)

    assert body == "<html/>"
    method, url, kwargs = session.calls[0]
    assert method == "POST"
    assert kwargs["data"] == [("start", "5")]
    assert kwargs["headers"]["Content-Type"] == "application/x-www-form-urlencoded"
    assert kwargs["timeout"] == 12


def test_requests_transport_get_without_params() -> None:
    session = _FakeSession(_FakeResponse(200, "ok"))

    RequestsTransport(session=session)("GET", "https://example.com/a.html", (), {}, 5)

    assert session.calls[0][2]["params"] is None


@pytest.mark.parametrize(
    "status, expected_type, code",
    [
        (404, TerminalError, ErrorCode.HTTP_4XX),
        (429, TransientNetworkError, ErrorCode.RATE_LIMITED),
        (502, TransientNetworkError, ErrorCode.HTTP_5XX),
    ],
)
def test_requests_transport_raises_on_http_errors(status: int, expected_type: type, code: str) -> None:
    transport = RequestsTransport(session=_FakeSession(_FakeResponse(status)))

    with pytest.raises(expected_type) as excinfo:
        transport("GET", "https://example.com/a.html", (), {}, 5)

    assert excinfo.value.error_code == code
    assert excinfo.value.http_status == status
