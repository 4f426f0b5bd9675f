# tests/dataloader/test_entities_loader.py
from pathlib import Path

import pytest

from alchemist.dataloader import EntitiesLoader
from alchemist.errors import DataError

ROOT = Path(__file__).resolve().parents[2]


def _write(tmp_path: Path, text: str, name: str = "rows.csv") -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_load_keeps_cells_as_trimmed_text(tmp_path: Path):
    # --- Arrange ---
    path = _write(
        tmp_path,
        "ClientID,ClientName,PriorityLevel,RequestedTaskIDs,Notes\n"
        ' C1 ,Acme,3,"T1,T2",\n'
        "C2,Globex,NA,,vip\n",
    )

    # --- Act ---
    result = EntitiesLoader().load(path, "clients")

    # --- Assert ---
    assert result.success
    assert result.kind == "client"
    assert result.total_rows == result.kept_rows == 2
    assert result.rows[0] == {
        "ClientID": "C1",
        "ClientName": "Acme",
        "PriorityLevel": "3",
        "RequestedTaskIDs": "T1,T2",
        "Notes": "",
    }
    # "NA" is data, not a missing-value marker
    assert result.rows[1]["PriorityLevel"] == "NA"


def test_blank_lines_are_reported_and_dropped(tmp_path: Path):
    path = _write(tmp_path, "TaskID,TaskName,Duration\nT1,ETL,3\n,,\nT2,UI,1\n")

    result = EntitiesLoader().load(path, "task")

    assert not result.success
    assert [r["TaskID"] for r in result.rows] == ["T1", "T2"]
    assert result.errors == [{"kind": "blank_row", "line_no": 3, "message": "Blank line"}]


def test_bom_is_tolerated(tmp_path: Path):
    path = tmp_path / "bom.csv"
    path.write_bytes("\ufeffTaskID,TaskName,Duration\nT1,ETL,3\n".encode("utf-8"))

    result = EntitiesLoader().load(path, "task")

    assert result.rows[0]["TaskID"] == "T1"


def test_missing_required_column_raises(tmp_path: Path):
    path = _write(tmp_path, "WorkerID,WorkerName\nW1,Alice\n")
    with pytest.raises(DataError) as e:
        EntitiesLoader().load(path, "worker")
    assert "AvailableSlots" in str(e.value)


def test_missing_and_empty_files_raise(tmp_path: Path):
    with pytest.raises(DataError):
        EntitiesLoader().load(tmp_path / "nope.csv", "task")
    with pytest.raises(DataError):
        EntitiesLoader().load(_write(tmp_path, ""), "task")


def test_unknown_kind_raises(tmp_path: Path):
    path = _write(tmp_path, "X\n1\n")
    with pytest.raises(DataError):
        EntitiesLoader().load(path, "gadgets")


@pytest.mark.parametrize("kind", ["clients", "workers", "tasks"])
def test_sample_data_loads(kind: str):
    result = EntitiesLoader().load(ROOT / "data" / "sample" / f"{kind}.csv", kind)
    assert result.kept_rows == 4
