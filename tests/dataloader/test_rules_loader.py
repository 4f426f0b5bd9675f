# tests/dataloader/test_rules_loader.py
import json
from pathlib import Path

import pytest

from alchemist.dataloader import RulesLoader
from alchemist.errors import RuleError
from alchemist.rules import CoRunRule, LoadLimitRule


def test_load_yaml_rules_document(tmp_path: Path):
    # --- Arrange ---
    path = tmp_path / "rules.yaml"
    path.write_text(
        "rules:\n"
        "  - id: r1\n"
        "    type: coRun\n"
        "    name: Pair\n"
        "    taskIds: [T1, T2]\n"
        "  - id: r2\n"
        "    type: loadLimit\n"
        "    name: Cap\n"
        "    workerGroup: GroupA\n"
        "    maxSlotsPerPhase: 2\n"
        "    isActive: false\n"
        "priorityMethod: presets\n"
        "presetProfile: fairDistribution\n",
        encoding="utf-8",
    )

    # --- Act ---
    ruleset = RulesLoader().load(path)

    # --- Assert ---
    assert [type(r) for r in ruleset.rules] == [CoRunRule, LoadLimitRule]
    assert ruleset.rules[1].is_active is False
    assert ruleset.priority_method == "presets"
    assert ruleset.preset_profile == "fairDistribution"


def test_load_json_list_shorthand(tmp_path: Path):
    path = tmp_path / "rules.json"
    path.write_text(
        json.dumps([{"id": "r1", "type": "coRun", "task_ids": ["T1", "T2"]}]), encoding="utf-8"
    )

    ruleset = RulesLoader().load(path)

    assert ruleset.rules[0].task_ids == ["T1", "T2"]
    assert ruleset.priority_weights.fairness == 0.2


@pytest.mark.parametrize(
    "content",
    [
        '{"rules": [{"id": "r1", "type": "teleport"}]}',
        '{"rules": [{"id": "r1", "type": "coRun", "color": "red"}]}',
        "{not json",
        '"just a string"',
    ],
)
def test_invalid_documents_raise_rule_error(tmp_path: Path, content: str):
    path = tmp_path / "rules.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(RuleError):
        RulesLoader().load(path)


def test_missing_file_raises(tmp_path: Path):
    with pytest.raises(RuleError):
        RulesLoader().load(tmp_path / "missing.yaml")
