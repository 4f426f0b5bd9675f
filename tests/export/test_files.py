# tests/export/test_files.py
import json
from pathlib import Path

import pytest

from alchemist.errors import ExportError
from alchemist.export.files import atomic_write_json, atomic_write_text


def test_atomic_write_creates_parents_and_replaces(tmp_path: Path):
    # --- Arrange ---
    target = tmp_path / "nested" / "dir" / "out.txt"

    # --- Act ---
    atomic_write_text(target, "first")
    atomic_write_text(target, "second")

    # --- Assert ---
    assert target.read_text(encoding="utf-8") == "second"
    assert [p.name for p in target.parent.iterdir()] == ["out.txt"]


def test_atomic_write_json_is_indented_utf8(tmp_path: Path):
    path = atomic_write_json(tmp_path / "r.json", {"name": "Zoë", "n": [1, 2]})
    text = path.read_text(encoding="utf-8")
    assert "Zoë" in text
    assert text.endswith("\n")
    assert json.loads(text) == {"name": "Zoë", "n": [1, 2]}


def test_unwritable_location_raises_export_error(tmp_path: Path):
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")

    with pytest.raises(ExportError) as e:
        atomic_write_text(blocker / "child.txt", "data", source="test")

    assert e.value.source == "test"
