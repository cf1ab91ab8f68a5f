"""Data types shared by the crawl components."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

# Column order for the persisted workbook. ``email`` holds the revealed value
# and ``sent`` is the dispatcher's marker.
FIELD_NAMES: Tuple[str, ...] = (
    "name",
    "gender",
    "age_group",
    "city_country",
    "hobbies",
    "message",
    "last_modified",
)
REVEALED_COLUMN = "email"
DISPATCHED_COLUMN = "sent"
COLUMNS: Tuple[str, ...] = FIELD_NAMES + (REVEALED_COLUMN, DISPATCHED_COLUMN)

# Free-text fields searched by the last-resort address heuristic.
FREE_TEXT_FIELDS: Tuple[str, ...] = ("hobbies", "message")

_DISPATCHED_VALUES = {"yes", "y", "true", "1"}


def _clean_cell(value: Any) -> Optional[str]:
    """Normalise a workbook cell to ``str`` or ``None`` (NaN and blanks become ``None``)."""

    if value is None:
        return None
    if isinstance(value, float) and value != value:
        return None
    text = str(value).strip()
    return text or None


@dataclass
class Record:
    """One listing ad.

    ``reveal_key`` is the opaque lookup id from the listing page and is never
    persisted. ``revealed_value`` stays ``None`` until a lookup succeeds and is
    not overwritten afterwards.
    """

    fields: Dict[str, Optional[str]] = field(default_factory=dict)
    revealed_value: Optional[str] = None
    reveal_key: Optional[str] = None
    dispatched: bool = False

    def set_revealed(self, value: Optional[str]) -> bool:
        """Store *value* unless a value is already set. Returns ``True`` if stored."""

        if self.revealed_value is not None or value is None:
            return False
        self.revealed_value = value
        return True

    def to_row(self) -> Dict[str, Optional[str]]:
        row: Dict[str, Optional[str]] = {name: self.fields.get(name) for name in FIELD_NAMES}
        row[REVEALED_COLUMN] = self.revealed_value
        row[DISPATCHED_COLUMN] = "yes" if self.dispatched else None
        return row

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Record":
        fields = {name: _clean_cell(row.get(name)) for name in FIELD_NAMES}
        sent = _clean_cell(row.get(DISPATCHED_COLUMN))
        return cls(
            fields=fields,
            revealed_value=_clean_cell(row.get(REVEALED_COLUMN)),
            dispatched=bool(sent and sent.lower() in _DISPATCHED_VALUES),
        )


@dataclass(frozen=True)
class PaginationToken:
    """Request for the next listing page, derived from the current page's form.

    Only meaningful for the page it was parsed from; it is used immediately
    and never persisted.
    """

    url: str
    method: str = "GET"
    params: Tuple[Tuple[str, str], ...] = ()

    def __post_init__(self) -> None:
        method = self.method.upper()
        if method not in {"GET", "POST"}:
            raise ValueError(f"Unsupported pagination method: {self.method!r}")
        object.__setattr__(self, "method", method)


PageRequest = Union[str, PaginationToken]


def request_url(request: PageRequest) -> str:
    """Return the URL a page request targets."""

    return request.url if isinstance(request, PaginationToken) else request


@dataclass
class ParsedPage:
    records: List[Record]
    token: Optional[PaginationToken]


@dataclass
class CrawlState:
    page_number: int
    records: List[Record]
    token: Optional[PageRequest]

    @classmethod
    def start(cls, listing_url: str) -> "CrawlState":
        return cls(page_number=1, records=[], token=listing_url)


@dataclass
class ResumePoint:
    """Where a resumed crawl picks up.

    ``content`` is the HTML of ``start_page`` (``None`` for a fresh run, or when
    the listing ended before ``start_page``). ``skip`` is the number of leading
    records on that page that are already in ``carry_forward``, and
    ``page_url`` is the address ``content`` was fetched from.
    """

    start_page: int
    carry_forward: List[Record]
    content: Optional[str] = None
    skip: int = 0
    exhausted: bool = False
    page_url: Optional[str] = None


@dataclass
class CrawlSummary:
    stop_reason: str
    pages_processed: int = 0
    records_total: int = 0
    records_new: int = 0
    revealed: int = 0
    reveal_failures: int = 0
    resumed_from: Optional[int] = None
    output_path: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "stop_reason": self.stop_reason,
            "pages_processed": self.pages_processed,
            "records_total": self.records_total,
            "records_new": self.records_new,
            "revealed": self.revealed,
            "reveal_failures": self.reveal_failures,
            "resumed_from": self.resumed_from,
            "output_path": self.output_path,
        }


__all__ = [
    "COLUMNS",
    "CrawlState",
    "CrawlSummary",
    "DISPATCHED_COLUMN",
    "FIELD_NAMES",
    "FREE_TEXT_FIELDS",
    "PageRequest",
    "PaginationToken",
    "ParsedPage",
    "Record",
    "REVEALED_COLUMN",
    "ResumePoint",
    "request_url",
]
