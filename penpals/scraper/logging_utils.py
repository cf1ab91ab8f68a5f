from __future__ import annotations

from typing import Any

from .utils import log_line


def _format_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:g}"
    return repr(value)


def _crawl_event(label: str = "", *, phase: str | None = None, **fields: Any) -> None:
    """Emit a structured crawler log line: ``[CRAWL][LABEL] key=value, ...``.

    ``phase`` doubles as the label when no label is given; when both are set it
    is written into the payload. Fields whose value is ``None`` are dropped to
    keep lines short.
    """

    try:
        event_label = label or (phase or "")
        if phase and label:
            fields.setdefault("phase", phase)
        payload = ", ".join(
            f"{key}={_format_value(value)}"
            for key, value in sorted(fields.items())
            if value is not None
        )
        log_line(f"[CRAWL][{event_label.upper()}] {payload}")
    except Exception:
        # Logging must never break the crawl.
        return


__all__ = ["_crawl_event"]
