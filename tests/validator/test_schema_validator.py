# tests/validator/test_schema_validator.py
from alchemist.validator.schema_validator import check_record, validate_schema


def test_conformant_rows_have_no_errors(client_rows, worker_rows, task_rows):
    assert validate_schema(client_rows, "client") == []
    assert validate_schema(worker_rows, "worker") == []
    assert validate_schema(task_rows, "task") == []


def test_blank_required_cell_reports_field_required():
    # --- Arrange ---
    rows = [{"ClientID": "", "ClientName": "Acme", "PriorityLevel": "3"}]

    # --- Act ---
    errors = validate_schema(rows, "client")

    # --- Assert ---
    assert len(errors) == 1
    err = errors[0]
    assert err.level == "error"
    assert err.rule_type == "schema"
    assert err.field == "ClientID"
    assert err.row_index == 0
    assert err.message.startswith("ClientID: ")
    assert "required" in err.message.lower()


def test_every_violation_of_a_row_is_reported():
    rows = [
        {"TaskID": "T1", "TaskName": "ETL", "Duration": "3"},
        {"TaskID": "T2", "TaskName": "", "Duration": "-1", "MaxConcurrent": "0"},
    ]

    errors = validate_schema(rows, "task")

    assert {e.row_index for e in errors} == {1}
    assert {e.field for e in errors} == {"TaskName", "Duration", "MaxConcurrent"}


def test_priority_bounds_and_type():
    rows = [
        {"ClientID": "C1", "ClientName": "A", "PriorityLevel": "6"},
        {"ClientID": "C2", "ClientName": "B", "PriorityLevel": "high"},
        {"ClientID": "C3", "ClientName": "C", "PriorityLevel": 5},
    ]

    errors = validate_schema(rows, "client")

    assert [e.row_index for e in errors] == [0, 1]
    assert all(e.field == "PriorityLevel" for e in errors)


def test_worker_qualification_message_is_readable():
    row = {
        "WorkerID": "W1",
        "WorkerName": "Alice",
        "AvailableSlots": "[1]",
        "MaxLoadPerPhase": "1",
        "QualificationLevel": "Wizard",
    }

    errors = check_record(row, "worker")

    assert len(errors) == 1
    assert errors[0]["loc"] == ("QualificationLevel",)
    assert "Junior, Mid, Senior, Expert" in errors[0]["msg"]


def test_issue_ids_are_stable_across_runs():
    rows = [{"ClientID": "C1", "ClientName": "", "PriorityLevel": "3"}]
    first = validate_schema(rows, "client")
    second = validate_schema(rows, "client")
    assert [e.id for e in first] == [e.id for e in second]
    assert first[0].id.startswith("client-schema-")
