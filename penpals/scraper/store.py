"""Excel workbook persistence for crawl results."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import pandas as pd
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE

from .models import COLUMNS, Record
from .utils import log_line

SHEET_NAME = "Penpals"

PathLike = Union[str, "os.PathLike[str]"]


def _cell_value(value: Optional[str]) -> Optional[str]:
    # openpyxl refuses control characters such as \x0b or \x1b in cell text.
    if value is None:
        return None
    return ILLEGAL_CHARACTERS_RE.sub("", value)


def _keep_text_literal(sheet) -> None:  # noqa: ANN001
    """Store every body cell as text, so ad text starting with ``=`` is not a formula."""

    for row in sheet.iter_rows(min_row=2):
        for cell in row:
            if cell.data_type == "f":
                cell.data_type = "s"


def _temp_path_for(path: Path) -> Path:
    # Keep the real suffix so the Excel engine accepts the file name.
    return path.with_name(f".{path.stem}.tmp{path.suffix}")


class ExcelStore:
    """Read and write the result workbook (one sheet, one row per ad).

    ``load`` never raises: a missing or unreadable workbook is an empty result
    set. ``save`` always writes the complete set and swaps it into place with
    ``os.replace`` so readers never see a half-written file.
    """

    def __init__(self, sheet_name: str = SHEET_NAME) -> None:
        self.sheet_name = sheet_name

    def load(self, path: PathLike) -> List[Record]:
        path = Path(path)
        if not path.exists():
            return []
        try:
            frame = pd.read_excel(path, sheet_name=0, dtype=str, engine="openpyxl")
        except Exception as exc:  # noqa: BLE001
            log_line(f"[STORE][WARN] Unable to read {path}: {exc}; treating as empty")
            return []
        return [Record.from_row(row) for row in frame.to_dict(orient="records")]

    def save(self, path: PathLike, records: Sequence[Record]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        rows: List[Dict[str, Optional[str]]] = [
            {column: _cell_value(value) for column, value in record.to_row().items()}
            for record in records
        ]
        frame = pd.DataFrame(rows, columns=list(COLUMNS))

        tmp_path = _temp_path_for(path)
        try:
            with pd.ExcelWriter(tmp_path, engine="openpyxl") as writer:
                frame.to_excel(writer, index=False, sheet_name=self.sheet_name)
                _keep_text_literal(writer.sheets[self.sheet_name])
            os.replace(tmp_path, path)
        finally:
            tmp_path.unlink(missing_ok=True)
        return path


__all__ = ["ExcelStore", "SHEET_NAME"]
