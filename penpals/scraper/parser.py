"""HTML parsing for penpalsnow listing pages.

A listing page carries up to five ads. Each ad has a "show e-mail" anchor:

    <a class="showemail ppadvaluebold" id="a1b2c3">show e-mail</a>

whose ``id`` is the key for the reveal API. The ad's details sit in the
nearest enclosing ``<table>`` as ``Label: value`` text. Pagination is a form
with a ``Next 5 pen pal ads`` submit button.

Parsed output is plain data; no BeautifulSoup elements escape this module, so
nothing downstream can hold a stale reference into a previous document.
"""
from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from bs4.element import Comment, NavigableString, Tag

from . import config
from .models import FIELD_NAMES, PaginationToken, ParsedPage, Record

# (field name, label variants tried in order)
FIELD_LABELS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("name", ("Name",)),
    ("gender", ("Gender",)),
    ("age_group", ("Age Group",)),
    ("city_country", ("City & Country",)),
    ("hobbies", ("Hobbies",)),
    ("message", ("Penpal message", "Penpal message / wishes")),
    ("last_modified", ("Last modified",)),
)

_LABEL_PATTERNS: Dict[str, re.Pattern[str]] = {
    label: re.compile(rf"{re.escape(label)}:[ \t]*([^\n]+)", re.IGNORECASE)
    for _, labels in FIELD_LABELS
    for label in labels
}


def _match_label(text: str, label: str) -> Optional[str]:
    match = _LABEL_PATTERNS[label].search(text)
    if not match:
        return None
    value = match.group(1).strip()
    return value or None


def extract_fields(text: str) -> Dict[str, Optional[str]]:
    """Pull the labelled ad fields out of a block of text."""

    fields: Dict[str, Optional[str]] = {name: None for name in FIELD_NAMES}
    for name, labels in FIELD_LABELS:
        for label in labels:
            value = _match_label(text, label)
            if value:
                fields[name] = value
                break
    return fields


_LINE_TAGS = frozenset({"br", "div", "p", "li", "tr", "table", "tbody", "h1", "h2", "h3", "h4"})
_CELL_TAGS = frozenset({"td", "th"})
_WHITESPACE_RE = re.compile(r"\s+")


def _block_text(block: Tag) -> str:
    """Render *block* roughly the way a browser lays it out as text.

    Rows and block elements start a new line, table cells are separated by a
    tab, and runs of whitespace inside text nodes collapse to one space. A
    label and its value therefore share a line, and an empty value cell
    leaves nothing after the label.
    """

    parts: List[str] = []
    for node in block.descendants:
        if isinstance(node, Comment):
            continue
        if isinstance(node, NavigableString):
            parts.append(_WHITESPACE_RE.sub(" ", str(node)))
        elif node.name in _LINE_TAGS:
            parts.append("\n")
        elif node.name in _CELL_TAGS:
            parts.append("\t")
    return "".join(parts)


def _enclosing_block(marker: Tag) -> Optional[Tag]:
    table = marker.find_parent("table")
    if table is not None:
        return table
    parent = marker.parent
    return parent.parent if parent is not None else None


def _is_next_button(element: Tag, label: str) -> bool:
    classes = element.get("class") or []
    return (
        "button" in classes
        and (element.get("type") or "").lower() == "submit"
        and (element.get("value") or "") == label
    )


class PageParser:
    """Extract ad records and the continuation token from listing HTML."""

    def __init__(
        self,
        *,
        base_url: str = config.BASE_URL,
        max_entries: int = config.ADS_PER_PAGE,
        marker_selector: str = config.ENTRY_MARKER_SELECTOR,
        next_button_label: str = config.NEXT_BUTTON_LABEL,
        features: str = "html.parser",
    ) -> None:
        self.base_url = base_url
        self.max_entries = max_entries
        self.marker_selector = marker_selector
        self.next_button_label = next_button_label
        self.features = features

    def parse(self, content: str, *, page_url: Optional[str] = None) -> ParsedPage:
        soup = BeautifulSoup(content or "", self.features)
        return ParsedPage(
            records=self._records(soup),
            token=self._next_token(soup, page_url or self.base_url),
        )

    def parse_token(self, content: str, *, page_url: Optional[str] = None) -> Optional[PaginationToken]:
        """Return only the continuation token; used when fast-forwarding."""

        soup = BeautifulSoup(content or "", self.features)
        return self._next_token(soup, page_url or self.base_url)

    def _records(self, soup: BeautifulSoup) -> List[Record]:
        records: List[Record] = []
        for index, marker in enumerate(soup.select(self.marker_selector)):
            if index >= self.max_entries:
                break
            reveal_key = (marker.get("id") or "").strip()
            if not reveal_key:
                # Empty ad slots render the anchor without an id.
                continue
            block = _enclosing_block(marker)
            text = _block_text(block) if block is not None else ""
            records.append(Record(fields=extract_fields(text), reveal_key=reveal_key))
        return records

    def _next_token(self, soup: BeautifulSoup, page_url: str) -> Optional[PaginationToken]:
        button = None
        for candidate in soup.find_all("input"):
            if _is_next_button(candidate, self.next_button_label):
                button = candidate
                break
        if button is None:
            return None

        form = button.find_parent("form")
        if form is None:
            return None

        action = (form.get("action") or "").strip()
        method = "POST" if (form.get("method") or "get").strip().lower() == "post" else "GET"

        params: Dict[str, str] = {}
        for field in form.find_all("input"):
            name = field.get("name")
            if not name:
                continue
            params[name] = field.get("value") or ""

        return PaginationToken(
            url=urljoin(page_url, action),
            method=method,
            params=tuple(params.items()),
        )


__all__ = ["FIELD_LABELS", "PageParser", "extract_fields"]
