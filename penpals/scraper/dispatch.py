"""Mail every captured address once.

Reads the crawl workbooks in the output directory, picks rows with a valid
``email`` and no ``sent`` marker, sends a fixed message through the Gmail
sender, and marks each row ``sent=yes`` right after its message goes out
(saving that workbook immediately). A per-run cap bounds the number of sends.

Usage: ``penpals-dispatch [--max 100] [--files AUmale,CAmale]``
"""

from __future__ import annotations

import argparse
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol, Sequence

from . import config
from .models import Record
from .store import ExcelStore
from .utils import ensure_dirs, is_valid_email, log_line, setup_run_logger

DEFAULT_BODY = """Hi,

I found your ad on penpalsnow and would love to exchange letters.
Write back if you are interested!
"""


class Sender(Protocol):
    def send(self, to: str, subject: str, text: str) -> str: ...


@dataclass
class PendingRow:
    path: Path
    records: List[Record]
    index: int

    @property
    def record(self) -> Record:
        return self.records[self.index]


def list_result_files(output_dir: Path, only: Optional[Sequence[str]] = None) -> List[Path]:
    """Return the ``.xlsx`` workbooks in *output_dir*, optionally limited to the given stems."""

    if not output_dir.is_dir():
        return []
    files = sorted(path for path in output_dir.glob("*.xlsx") if not path.name.startswith("."))
    if only:
        wanted = {name.strip() for name in only if name.strip()}
        files = [path for path in files if path.stem in wanted]
    return files


def collect_pending(files: Sequence[Path], store: ExcelStore, limit: int) -> List[PendingRow]:
    pending: List[PendingRow] = []
    for path in files:
        if len(pending) >= limit:
            break
        records = store.load(path)
        for index, record in enumerate(records):
            if len(pending) >= limit:
                break
            if record.dispatched or not is_valid_email(record.revealed_value):
                continue
            pending.append(PendingRow(path=path, records=records, index=index))
    return pending


def dispatch_pending(
    pending: Sequence[PendingRow],
    sender: Sender,
    store: ExcelStore,
    *,
    subject: str,
    body: str,
    delay_seconds: float = config.DISPATCH_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Send to each pending row; returns the number of messages sent."""

    sent = 0
    for position, row in enumerate(pending):
        address = (row.record.revealed_value or "").strip()
        try:
            sender.send(address, subject, body)
        except Exception as exc:  # noqa: BLE001
            log_line(f"[DISPATCH][WARN] Failed to send to {address}: {exc}")
        else:
            row.record.dispatched = True
            store.save(row.path, row.records)
            sent += 1
            log_line(f"[DISPATCH] [{sent}/{len(pending)}] Sent to {address} ({row.path.name})")

        if position < len(pending) - 1:
            sleep(delay_seconds)
    return sent


def _load_body(body_file: Optional[str]) -> str:
    if not body_file:
        return DEFAULT_BODY
    return Path(body_file).read_text(encoding="utf-8")


def run_dispatch(
    *,
    max_emails: Optional[int] = None,
    files: Optional[Sequence[str]] = None,
    output_dir: Optional[Path] = None,
    sender: Optional[Sender] = None,
    store: Optional[ExcelStore] = None,
    subject: Optional[str] = None,
    body: Optional[str] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Dict[str, int]:
    limit = max_emails if max_emails is not None else config.DISPATCH_MAX_PER_RUN
    if limit < 1:
        raise ValueError("max_emails must be at least 1")

    directory = Path(output_dir) if output_dir is not None else config.OUTPUT_DIR
    store = store or ExcelStore()

    workbooks = list_result_files(directory, files)
    if not workbooks:
        log_line(f"[DISPATCH] No Excel files found in {directory}")
        return {"files": 0, "pending": 0, "sent": 0}

    log_line(f"[DISPATCH] Found {len(workbooks)} Excel file(s). Max {limit} emails per run.")
    pending = collect_pending(workbooks, store, limit)
    if not pending:
        log_line("[DISPATCH] No unsent emails found.")
        return {"files": len(workbooks), "pending": 0, "sent": 0}

    if sender is None:
        from .mailer import GmailSender

        sender = GmailSender.from_env()

    sent = dispatch_pending(
        pending,
        sender,
        store,
        subject=subject or config.DISPATCH_SUBJECT,
        body=body if body is not None else _load_body(config.DISPATCH_BODY_FILE),
        sleep=sleep,
    )
    log_line(f"[DISPATCH] Done. Sent {sent} email(s).")
    return {"files": len(workbooks), "pending": len(pending), "sent": sent}


def _cli_entrypoint(argv: Optional[List[str]] = None) -> int:  # pragma: no cover
    parser = argparse.ArgumentParser(description="Mail the addresses captured by the crawler")
    parser.add_argument("--max", dest="max_emails", type=int, default=config.DISPATCH_MAX_PER_RUN)
    parser.add_argument("--files", default=None, help="Comma-separated workbook stems, e.g. AUmale,CAmale")
    parser.add_argument("--output-dir", type=Path, default=None)
    args = parser.parse_args(argv)

    ensure_dirs()
    setup_run_logger("dispatch")
    files = [part.strip() for part in args.files.split(",")] if args.files else None
    run_dispatch(max_emails=args.max_emails, files=files, output_dir=args.output_dir)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(_cli_entrypoint())

__all__ = [
    "PendingRow",
    "collect_pending",
    "dispatch_pending",
    "list_result_files",
    "run_dispatch",
]
