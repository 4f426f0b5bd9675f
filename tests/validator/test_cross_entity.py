# tests/validator/test_cross_entity.py
from alchemist.validator import validate_cross_entity


def test_clean_dataset_has_no_cross_entity_findings(client_rows, worker_rows, task_rows):
    result = validate_cross_entity(client_rows, worker_rows, task_rows)
    assert result.is_valid
    assert result.errors == []
    assert result.warnings == []


def test_unknown_task_reference_is_one_error_naming_it(client_rows, worker_rows, task_rows):
    # --- Arrange ---
    client_rows[0]["RequestedTaskIDs"] = "T1,T99,T2,T99"

    # --- Act ---
    result = validate_cross_entity(client_rows, worker_rows, task_rows)

    # --- Assert ---
    assert len(result.errors) == 1
    err = result.errors[0]
    assert err.rule_type == "reference-integrity"
    assert "T99" in err.message
    assert "T1" not in err.message.replace("T99", "")
    assert err.row_index == 0
    assert err.field == "RequestedTaskIDs"
    assert err.entities == {"clientId": "C1", "taskId": "T99"}


def test_uncovered_skill_is_a_single_warning(client_rows, worker_rows, task_rows):
    task_rows.append(
        {"TaskID": "T3", "TaskName": "Compiler", "Duration": "1", "RequiredSkills": "rust,Go"}
    )
    worker_rows[1]["Skills"] = "javascript,GO"

    result = validate_cross_entity(client_rows, worker_rows, task_rows)

    coverage = [w for w in result.warnings if w.rule_type == "skill-coverage"]
    assert len(coverage) == 1
    assert "rust" in coverage[0].message
    assert coverage[0].entities == {"missingSkills": ["rust"]}


def test_capacity_demand_exceeding_supply_warns(client_rows, worker_rows, task_rows):
    # 5 slots * 8 hours = 40 hours of supply
    task_rows[0]["Duration"] = "39"

    result = validate_cross_entity(client_rows, worker_rows, task_rows)

    planning = [w for w in result.warnings if w.rule_type == "capacity-planning"]
    assert len(planning) == 1
    assert planning[0].entities["demandHours"] == 41
    assert planning[0].entities["totalSlots"] == 5


def test_hours_per_slot_is_configurable(client_rows, worker_rows, task_rows):
    from alchemist.schemas.models import ValidationConfig

    result = validate_cross_entity(
        client_rows, worker_rows, task_rows, ValidationConfig(hours_per_slot=1)
    )

    assert [w.rule_type for w in result.warnings] == ["capacity-planning"]


def test_high_priority_clients_outnumber_senior_workers(client_rows, worker_rows, task_rows):
    for row in client_rows:
        row["PriorityLevel"] = "5"
    worker_rows[0]["QualificationLevel"] = "2"

    result = validate_cross_entity(client_rows, worker_rows, task_rows)

    match = [w for w in result.warnings if w.rule_type == "priority-capacity-match"]
    assert len(match) == 1
    assert match[0].entity_type == "client"
    assert match[0].entities == {"highPriorityClients": 2, "seniorWorkers": 0}
