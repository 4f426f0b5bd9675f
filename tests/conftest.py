import csv
import sys
from pathlib import Path

import pytest

# (1) Add repository root to sys.path to enable absolute imports
#     The root directory contains scripts/, src/ and config/.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


# (2) A small dataset that passes every check without warnings
@pytest.fixture()
def client_rows() -> list[dict]:
    return [
        {
            "ClientID": "C1",
            "ClientName": "Acme",
            "PriorityLevel": "3",
            "RequestedTaskIDs": "T1,T2",
            "GroupTag": "GroupA",
            "AttributesJSON": '{"budget": 1000}',
        },
        {
            "ClientID": "C2",
            "ClientName": "Globex",
            "PriorityLevel": "2",
            "RequestedTaskIDs": "T2",
            "GroupTag": "GroupB",
            "AttributesJSON": "",
        },
    ]


@pytest.fixture()
def worker_rows() -> list[dict]:
    return [
        {
            "WorkerID": "W1",
            "WorkerName": "Alice",
            "Skills": "python,sql",
            "AvailableSlots": "[1,2,3]",
            "MaxLoadPerPhase": "2",
            "WorkerGroup": "GroupA",
            "QualificationLevel": "Senior",
        },
        {
            "WorkerID": "W2",
            "WorkerName": "Bob",
            "Skills": "javascript",
            "AvailableSlots": "[2,3]",
            "MaxLoadPerPhase": "1",
            "WorkerGroup": "GroupB",
            "QualificationLevel": "Mid",
        },
    ]


@pytest.fixture()
def task_rows() -> list[dict]:
    return [
        {
            "TaskID": "T1",
            "TaskName": "ETL",
            "Category": "Data",
            "Duration": "4",
            "RequiredSkills": "python",
            "PreferredPhases": "[1,2]",
            "MaxConcurrent": "2",
        },
        {
            "TaskID": "T2",
            "TaskName": "Landing page",
            "Category": "Frontend",
            "Duration": "2",
            "RequiredSkills": "javascript",
            "PreferredPhases": "2 - 3",
            "MaxConcurrent": "1",
        },
    ]


def write_csv(path: Path, rows: list[dict]) -> Path:
    """Write dict rows to `path` with the first row's keys as header."""
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(rows[0].keys()))
        writer.writeheader()
        writer.writerows(rows)
    return path


@pytest.fixture()
def dataset_csvs(tmp_path: Path, client_rows, worker_rows, task_rows) -> dict[str, Path]:
    """The clean dataset written as clients.csv / workers.csv / tasks.csv."""
    in_dir = tmp_path / "input"
    in_dir.mkdir()
    return {
        "clients": write_csv(in_dir / "clients.csv", client_rows),
        "workers": write_csv(in_dir / "workers.csv", worker_rows),
        "tasks": write_csv(in_dir / "tasks.csv", task_rows),
    }
