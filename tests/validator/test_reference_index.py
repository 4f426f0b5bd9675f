# tests/validator/test_reference_index.py
import pytest

from alchemist.normalizer.normalizer import normalize_clients, normalize_tasks, normalize_workers
from alchemist.validator.reference_index import ReferenceIndex


@pytest.fixture()
def index(client_rows, worker_rows, task_rows) -> ReferenceIndex:
    worker_rows.append(
        {
            "WorkerID": "W3",
            "WorkerName": "Carol",
            "Skills": "Python",
            "AvailableSlots": "2,3,4",
            "MaxLoadPerPhase": "1",
            "WorkerGroup": "GroupA",
            "QualificationLevel": "Mid",
        }
    )
    worker_rows.append({"WorkerID": "", "WorkerName": "Nobody", "WorkerGroup": ""})
    return ReferenceIndex.build(
        normalize_clients(client_rows), normalize_workers(worker_rows), normalize_tasks(task_rows)
    )


def test_id_sets_skip_blank_ids(index: ReferenceIndex):
    assert index.task_ids == {"T1", "T2"}
    assert index.client_ids == {"C1", "C2"}
    assert index.worker_ids == {"W1", "W2", "W3"}


def test_group_maps_skip_blank_groups(index: ReferenceIndex):
    assert set(index.workers_by_group) == {"GroupA", "GroupB"}
    assert [w.worker_id for w in index.workers_by_group["GroupA"]] == ["W1", "W3"]
    assert set(index.clients_by_group) == {"GroupA", "GroupB"}


def test_common_slots_is_group_intersection(index: ReferenceIndex):
    assert index.common_slots("GroupA") == {2, 3}
    assert index.common_slots("GroupB") == {2, 3}
    assert index.common_slots("Nope") == frozenset()


def test_skill_unions(index: ReferenceIndex):
    assert index.required_skills == {"python", "javascript"}
    assert index.uncovered_skills() == []


def test_index_is_read_only(index: ReferenceIndex):
    with pytest.raises(TypeError):
        index.workers_by_group["GroupC"] = ()  # type: ignore[index]
