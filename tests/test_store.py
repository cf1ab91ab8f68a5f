from __future__ import annotations

from pathlib import Path

import pandas as pd

from penpals.scraper.models import COLUMNS, Record
from penpals.scraper.store import ExcelStore, SHEET_NAME


def _records() -> list[Record]:
    return [
        Record(
            fields={"name": "Alice", "gender": "Female", "message": "Hi there"},
            revealed_value="alice@mail.example",
            reveal_key="k1",
        ),
        Record(fields={"name": "Bob", "gender": "Male"}, dispatched=True),
    ]


def test_save_writes_one_row_per_record(tmp_path: Path) -> None:
    path = ExcelStore().save(tmp_path / "AUmale.xlsx", _records())

    frame = pd.read_excel(path, sheet_name=SHEET_NAME, dtype=str, engine="openpyxl")
    assert list(frame.columns) == list(COLUMNS)
    assert list(frame["name"]) == ["Alice", "Bob"]
    assert frame.loc[0, "email"] == "alice@mail.example"
    assert frame.loc[1, "sent"] == "yes"


def test_load_restores_saved_records(tmp_path: Path) -> None:
    path = tmp_path / "AUmale.xlsx"
    store = ExcelStore()
    store.save(path, _records())

    loaded = store.load(path)

    assert len(loaded) == 2
    assert loaded[0].fields["name"] == "Alice"
    assert loaded[0].fields["hobbies"] is None
    assert loaded[0].revealed_value == "alice@mail.example"
    assert loaded[0].reveal_key is None
    assert loaded[0].dispatched is False
    assert loaded[1].revealed_value is None
    assert loaded[1].dispatched is True


def test_save_replaces_whole_file_and_leaves_no_temp(tmp_path: Path) -> None:
    path = tmp_path / "out" / "AUmale.xlsx"
    store = ExcelStore()
    store.save(path, _records())
    store.save(path, _records()[:1])

    assert [record.fields["name"] for record in store.load(path)] == ["Alice"]
    assert sorted(p.name for p in path.parent.iterdir()) == ["AUmale.xlsx"]


def test_missing_workbook_loads_empty(tmp_path: Path) -> None:
    assert ExcelStore().load(tmp_path / "nope.xlsx") == []


def test_corrupt_workbook_loads_empty(tmp_path: Path) -> None:
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"this is not a zip archive")

    assert ExcelStore().load(path) == []


def test_sent_marker_variants_are_recognised() -> None:
    assert Record.from_row({"name": "A", "sent": "Yes"}).dispatched is True
    assert Record.from_row({"name": "A", "sent": "1"}).dispatched is True
    assert Record.from_row({"name": "A", "sent": float("nan")}).dispatched is False
    assert Record.from_row({"name": " ", "email": float("nan")}).fields["name"] is None


def test_set_revealed_never_overwrites() -> None:
    record = Record()

    assert record.set_revealed(None) is False
    assert record.set_revealed("a@mail.example") is True
    assert record.set_revealed("b@mail.example") is False
    assert record.revealed_value == "a@mail.example"


def test_control_characters_are_dropped_on_save(tmp_path: Path) -> None:
    path = tmp_path / "AUmale.xlsx"
    store = ExcelStore()
    record = Record(fields={"name": "Ann\x1b", "message": "hello\x0bworld"}, revealed_value="ann@mail.example")

    store.save(path, [record])

    loaded = store.load(path)[0]
    assert loaded.fields["name"] == "Ann"
    assert loaded.fields["message"] == "helloworld"
    assert record.fields["message"] == "hello\x0bworld"


def test_text_starting_with_equals_sign_survives_reload(tmp_path: Path) -> None:
    path = tmp_path / "AUmale.xlsx"
    store = ExcelStore()
    store.save(path, [Record(fields={"name": "=Bob", "message": "=)) hi there"})])

    loaded = store.load(path)[0]

    assert loaded.fields["name"] == "=Bob"
    assert loaded.fields["message"] == "=)) hi there"
