from alchemist.rules.config_export import generate_rules_configuration, write_rules_json
from alchemist.rules.models import (
    PRESET_WEIGHTS,
    BusinessRule,
    CoRunRule,
    LoadLimitRule,
    PatternMatchRule,
    PhaseWindowRule,
    PrecedenceOverrideRule,
    PriorityWeights,
    RuleConflict,
    RuleSet,
    SlotRestrictionRule,
)
from alchemist.rules.ruleset import (
    AffectedEntities,
    RuleImpact,
    RulePreview,
    add_rule,
    affected_entities,
    check_rules_against_data,
    delete_rule,
    detect_rule_conflicts,
    duplicate_rule,
    normalize_weights,
    preview_rule,
    toggle_rule,
    update_rule,
    validate_rule,
    weights_for_preset,
)

__all__ = [
    "AffectedEntities",
    "BusinessRule",
    "CoRunRule",
    "LoadLimitRule",
    "PRESET_WEIGHTS",
    "PatternMatchRule",
    "PhaseWindowRule",
    "PrecedenceOverrideRule",
    "PriorityWeights",
    "RuleConflict",
    "RuleImpact",
    "RulePreview",
    "RuleSet",
    "SlotRestrictionRule",
    "add_rule",
    "affected_entities",
    "check_rules_against_data",
    "delete_rule",
    "detect_rule_conflicts",
    "duplicate_rule",
    "generate_rules_configuration",
    "normalize_weights",
    "preview_rule",
    "toggle_rule",
    "update_rule",
    "validate_rule",
    "weights_for_preset",
    "write_rules_json",
]
