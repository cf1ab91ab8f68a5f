"""Resolve an ad's hidden e-mail address through the site's show-e-mail API."""
from __future__ import annotations

import json
import re
from typing import Any, Iterable, Optional

from . import config
from .fetcher import RetryingFetcher
from .models import FREE_TEXT_FIELDS, Record
from .utils import is_valid_email

# Unanchored variant of ``config.EMAIL_PATTERN`` for scanning free text.
_EMBEDDED_EMAIL_RE = re.compile(r"[^\s@<>()\[\],;:\"']+@[^\s@<>()\[\],;:\"']+\.[A-Za-z]{2,}")


def parse_reveal_body(body: Any) -> Optional[str]:
    """Extract an address from a reveal API response, or ``None``.

    Accepted shapes: a bare address, a JSON string holding an address, or a
    JSON object whose ``email`` field holds one. Anything else is ``None``.
    """

    if not isinstance(body, str):
        return None
    trimmed = body.strip()
    if not trimmed:
        return None
    try:
        payload: Any = json.loads(trimmed)
    except ValueError:
        payload = trimmed

    if isinstance(payload, str):
        candidate = payload.strip()
    elif isinstance(payload, dict):
        value = payload.get("email")
        candidate = value.strip() if isinstance(value, str) else ""
    else:
        return None
    return candidate if is_valid_email(candidate) else None


def find_address_in_text(texts: Iterable[Optional[str]]) -> Optional[str]:
    """Last-resort heuristic: the first address-shaped substring in *texts*.

    Some advertisers type their address into the message body. This is a
    pattern match over free text, not a parser, and is only consulted when the
    reveal API gave nothing usable and the text fallback is switched on.
    """

    for text in texts:
        if not text:
            continue
        for match in _EMBEDDED_EMAIL_RE.finditer(text):
            candidate = match.group(0).strip(".")
            if is_valid_email(candidate):
                return candidate
    return None


def address_from_free_text(record: Record) -> Optional[str]:
    return find_address_in_text(record.fields.get(name) for name in FREE_TEXT_FIELDS)


class RevealFetcher(RetryingFetcher):
    """Look up one record's address by its reveal key.

    Network failures surface as ``FetchExhausted`` / ``TerminalError``; the
    caller decides that a failed lookup leaves the record's value empty.
    """

    path = "reveal"

    def __init__(self, retry: config.RetrySettings, *, api_url: str = config.REVEAL_API_URL, **kwargs: Any) -> None:
        super().__init__(retry, **kwargs)
        self.api_url = api_url

    def reveal(self, reveal_key: str) -> Optional[str]:
        body = self._request("GET", self.api_url, (("e", reveal_key),))
        return parse_reveal_body(body)


__all__ = [
    "RevealFetcher",
    "address_from_free_text",
    "find_address_in_text",
    "parse_reveal_body",
]
