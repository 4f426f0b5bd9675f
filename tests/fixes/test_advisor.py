# tests/fixes/test_advisor.py
import itertools
import random

import pytest

from alchemist.fixes import EntityCollections, FixAdvisor, apply_bulk_fix, get_fix_suggestions
from alchemist.fixes.advisor import _PROVIDERS
from alchemist.schemas.models import RuleType, ValidationIssue
from alchemist.validator import validate_all, validate_clients, validate_workers


def _counter_ids():
    counter = itertools.count(1)
    return lambda entity_type: f"{entity_type.upper()}-{next(counter):03d}"


@pytest.fixture()
def advisor() -> FixAdvisor:
    return FixAdvisor(id_factory=_counter_ids(), rng=random.Random(7))


def _issue(rule_type: RuleType, **kw) -> ValidationIssue:
    base = {
        "id": "x",
        "level": "error",
        "message": "m",
        "entity_type": "client",
        "rule_type": rule_type,
    }
    return ValidationIssue(**{**base, **kw})


def test_registry_covers_every_rule_type():
    assert set(_PROVIDERS) == {rt.value for rt in RuleType}


@pytest.mark.parametrize("rule_type", list(RuleType))
def test_every_rule_type_yields_ranked_suggestions(rule_type):
    # --- Arrange ---
    data = EntityCollections.of([{"ClientID": "C1"}], [], [])
    issue = _issue(rule_type, row_index=0, field="ClientID")

    # --- Act ---
    suggestions = get_fix_suggestions(issue, data)

    # --- Assert ---
    assert suggestions
    ranks = [{"high": 3, "medium": 2, "low": 1}[s.confidence] for s in suggestions]
    assert ranks == sorted(ranks, reverse=True)


def test_bulk_fix_resolves_duplicate_worker(worker_rows):
    """
    @brief
    Two workers sharing W1: one duplicate error, one fix, no duplicates left.
    """
    # --- Arrange ---
    workers = [worker_rows[0], dict(worker_rows[0], WorkerName="Carol")]
    errors = validate_workers(workers).errors
    assert len(errors) == 1

    # --- Act ---
    result = apply_bulk_fix(errors, EntityCollections.of([], workers, []))

    # --- Assert ---
    assert result.success
    assert result.fixed_count == 1
    assert result.skipped_count == 0
    ids = [w["WorkerID"] for w in result.data.workers]
    assert len(set(ids)) == 2
    assert ids[0] == "W1"
    assert validate_workers(result.data.workers).errors == []
    assert workers[1]["WorkerID"] == "W1"  # input untouched
    assert result.details[0]["status"] == "fixed"
    assert result.details[0]["fixId"] == "generate-new-id"


def test_bulk_fix_handles_three_copies_without_collision(advisor, worker_rows):
    workers = [dict(worker_rows[0]) for _ in range(3)]
    errors = validate_workers(workers).errors

    result = advisor.apply_bulk_fix(errors, EntityCollections.of([], workers, []))

    assert result.fixed_count == 2
    assert [w["WorkerID"] for w in result.data.workers] == ["W1", "WORKER-001", "WORKER-002"]


def test_generated_id_collision_is_retried(worker_rows):
    factory = iter(["W2", "W2", "W9"])
    advisor = FixAdvisor(id_factory=lambda _t: next(factory))
    workers = [worker_rows[0], worker_rows[1], dict(worker_rows[0])]
    errors = validate_workers(workers).errors

    outcome = advisor.apply_fix(errors[0], "generate-new-id", EntityCollections.of([], workers, []))

    assert outcome.success
    assert outcome.data.workers[2]["WorkerID"] == "W9"


def test_add_suffix_fix(advisor, client_rows):
    clients = [client_rows[0], dict(client_rows[0])]
    error = validate_clients(clients).errors[0]

    outcome = advisor.apply_fix(error, "add-suffix", EntityCollections.of(clients, [], []))

    assert outcome.success
    new_id = outcome.data.clients[1]["ClientID"]
    assert new_id.startswith("C1-") and new_id != "C1"


def test_stale_duplicate_fix_is_refused(advisor, worker_rows):
    workers = [worker_rows[0], dict(worker_rows[0])]
    error = validate_workers(workers).errors[0]
    workers[1]["WorkerID"] = "W7"  # edited after validation

    outcome = advisor.apply_fix(error, "generate-new-id", EntityCollections.of([], workers, []))

    assert not outcome.success
    assert "no longer" in outcome.message


def test_remove_invalid_reference(client_rows, worker_rows, task_rows):
    # --- Arrange ---
    client_rows[0]["RequestedTaskIDs"] = "T1,T99,T2"
    summary = validate_all(client_rows, worker_rows, task_rows)
    error = summary.cross_entity.errors[0]
    data = EntityCollections.of(client_rows, worker_rows, task_rows)

    # --- Act ---
    suggestions = get_fix_suggestions(error, data)
    outcome = FixAdvisor().apply_fix(error, "remove-invalid-ref", data)

    # --- Assert ---
    assert [s.id for s in suggestions] == ["remove-invalid-ref", "create-missing-task"]
    assert outcome.success
    assert outcome.data.clients[0]["RequestedTaskIDs"] == "T1,T2"
    assert data.clients[0]["RequestedTaskIDs"] == "T1,T99,T2"
    assert validate_all(outcome.data.clients, worker_rows, task_rows).is_valid


def test_fix_json_and_priority(advisor):
    data = EntityCollections.of(
        [{"ClientID": "C1", "ClientName": "A", "PriorityLevel": "9", "AttributesJSON": "oops"}],
        [],
        [],
    )
    json_issue = _issue(RuleType.INVALID_FORMAT, level="warning", row_index=0, field="AttributesJSON")
    priority_issue = _issue(RuleType.SCHEMA, row_index=0, field="PriorityLevel")

    step1 = advisor.apply_fix(json_issue, "fix-json", data)
    step2 = advisor.apply_fix(priority_issue, "fix-priority", step1.data)

    assert step1.success and step2.success
    assert step2.data.clients[0]["AttributesJSON"] == "{}"
    assert step2.data.clients[0]["PriorityLevel"] == 3
    assert validate_clients(step2.data.clients).is_valid


def test_manual_fixes_are_not_applied(advisor):
    data = EntityCollections.of([], [{"WorkerID": "W1"}], [])
    issue = _issue(RuleType.SKILL_COVERAGE, level="warning", entity_type="worker")

    outcome = advisor.apply_fix(issue, "add-skills-to-workers", data)
    unknown = advisor.apply_fix(issue, "no-such-fix", data)

    assert not outcome.success and "manual" in outcome.message
    assert not unknown.success and "not available" in unknown.message
    assert outcome.data is data


def test_bulk_fix_reports_manual_issues(advisor, client_rows, worker_rows, task_rows):
    # --- Arrange ---
    worker_rows[0]["Skills"] = ""
    summary = validate_all(client_rows, worker_rows, task_rows)
    warnings = summary.all_warnings()

    # --- Act ---
    result = advisor.apply_bulk_fix(warnings, EntityCollections.of(client_rows, worker_rows, task_rows))

    # --- Assert ---
    assert result.fixed_count == 0
    assert result.skipped_count == len(warnings)
    assert not result.success
    assert all(d["status"] == "manual" for d in result.details)
    assert result.message == f"Fixed 0 errors, {len(warnings)} require manual attention"


def test_bulk_min_confidence_controls_medium_fixes():
    from alchemist.schemas.models import FixConfig

    data = EntityCollections.of([], [], [{"TaskID": "T1", "TaskName": "x", "Duration": "-4"}])
    issue = _issue(RuleType.SCHEMA, entity_type="task", row_index=0, field="Duration")

    strict = FixAdvisor().apply_bulk_fix([issue], data)
    lenient = FixAdvisor(cfg=FixConfig(bulk_min_confidence="medium")).apply_bulk_fix([issue], data)

    assert strict.fixed_count == 0
    assert lenient.fixed_count == 1
    assert lenient.data.tasks[0]["Duration"] == 1
