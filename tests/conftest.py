from __future__ import annotations

from pathlib import Path

import pytest

from tests.site_fixtures import _configure_temp_paths


@pytest.fixture(autouse=True)
def _isolated_output(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _configure_temp_paths(tmp_path, monkeypatch)
