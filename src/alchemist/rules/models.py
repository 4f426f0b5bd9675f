# src/alchemist/rules/models.py
"""
@brief
User-authored allocation rules and prioritization weights.

@details
The six rule variants form a pydantic discriminated union on `type`, so a
rule document is parsed straight into the matching class and every consumer
can dispatch on the class instead of on a string tag. Field names follow
Python style; the camelCase aliases are the JSON wire format.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

PriorityMethod = Literal["sliders", "ranking", "ahp", "presets"]
PresetProfile = Literal["maximizeFulfillment", "fairDistribution", "minimizeWorkload", "custom"]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _RuleModel(BaseModel):
    model_config = {
        "extra": "forbid",
        "populate_by_name": True,
    }


class _BaseRule(_RuleModel):
    id: str = Field(..., min_length=1)
    name: str = ""
    description: str | None = None
    is_active: bool = Field(True, alias="isActive")
    created_at: datetime = Field(default_factory=_utc_now, alias="createdAt")
    updated_at: datetime = Field(default_factory=_utc_now, alias="updatedAt")


class CoRunRule(_BaseRule):
    """Tasks that must run together."""

    type: Literal["coRun"] = "coRun"
    task_ids: list[str] = Field(default_factory=list, alias="taskIds")


class SlotRestrictionRule(_BaseRule):
    """A client or worker group must share at least `min_common_slots` phases."""

    type: Literal["slotRestriction"] = "slotRestriction"
    target_type: Literal["client", "worker"] = Field("worker", alias="targetType")
    group_tag: str = Field("", alias="groupTag")
    min_common_slots: int = Field(1, alias="minCommonSlots")


class LoadLimitRule(_BaseRule):
    type: Literal["loadLimit"] = "loadLimit"
    worker_group: str = Field("", alias="workerGroup")
    max_slots_per_phase: int = Field(1, alias="maxSlotsPerPhase")


class PhaseWindowRule(_BaseRule):
    type: Literal["phaseWindow"] = "phaseWindow"
    task_id: str = Field("", alias="taskId")
    allowed_phases: list[int] = Field(default_factory=list, alias="allowedPhases")


class PatternMatchRule(_BaseRule):
    type: Literal["patternMatch"] = "patternMatch"
    regex: str = ""
    template: str = ""
    parameters: dict[str, Any] = Field(default_factory=dict)


class PrecedenceOverrideRule(_BaseRule):
    """Overrides the listed rules; `priority` 1-10 orders competing overrides."""

    type: Literal["precedenceOverride"] = "precedenceOverride"
    override_type: str = Field("", alias="overrideType")
    target_rule_ids: list[str] = Field(default_factory=list, alias="targetRuleIds")
    priority: int = 1
    conditions: dict[str, Any] = Field(default_factory=dict)


BusinessRule = Annotated[
    Union[
        CoRunRule,
        SlotRestrictionRule,
        LoadLimitRule,
        PhaseWindowRule,
        PatternMatchRule,
        PrecedenceOverrideRule,
    ],
    Field(discriminator="type"),
]

RULE_LIST_ADAPTER: TypeAdapter[list[BusinessRule]] = TypeAdapter(list[BusinessRule])


class PriorityWeights(_RuleModel):
    """Relative importance of the allocation criteria (not necessarily summing to 1)."""

    fairness: float = Field(0.2, ge=0.0)
    priority_level: float = Field(0.3, ge=0.0, alias="priorityLevel")
    task_fulfillment: float = Field(0.25, ge=0.0, alias="taskFulfillment")
    worker_utilization: float = Field(0.15, ge=0.0, alias="workerUtilization")
    constraints: float = Field(0.1, ge=0.0)

    def total(self) -> float:
        return (
            self.fairness
            + self.priority_level
            + self.task_fulfillment
            + self.worker_utilization
            + self.constraints
        )


PRESET_WEIGHTS: dict[str, PriorityWeights] = {
    "maximizeFulfillment": PriorityWeights(
        fairness=0.1,
        priority_level=0.4,
        task_fulfillment=0.4,
        worker_utilization=0.05,
        constraints=0.05,
    ),
    "fairDistribution": PriorityWeights(
        fairness=0.5,
        priority_level=0.15,
        task_fulfillment=0.15,
        worker_utilization=0.15,
        constraints=0.05,
    ),
    "minimizeWorkload": PriorityWeights(
        fairness=0.2,
        priority_level=0.1,
        task_fulfillment=0.2,
        worker_utilization=0.4,
        constraints=0.1,
    ),
}


class RuleSet(_RuleModel):
    """
    @brief
    A saved rules document: rules plus prioritization settings.

    @details
    This is the shape read by the CLI's --rules option (YAML or JSON).
    """

    rules: list[BusinessRule] = Field(default_factory=list)
    priority_weights: PriorityWeights = Field(default_factory=PriorityWeights, alias="priorityWeights")
    priority_method: PriorityMethod = Field("sliders", alias="priorityMethod")
    preset_profile: PresetProfile = Field("custom", alias="presetProfile")


class RuleConflict(_RuleModel):
    """A detected interaction between active rules and how it is resolved."""

    conflict_id: str = Field(..., alias="conflictId")
    kind: Literal["overlapping", "contradictory"]
    severity: Literal["error", "warning"] = "warning"
    affected_rules: list[str] = Field(default_factory=list, alias="affectedRules")
    resolution: Literal["prioritize", "merge", "disable"]
    reason: str


__all__ = [
    "BusinessRule",
    "CoRunRule",
    "LoadLimitRule",
    "PRESET_WEIGHTS",
    "PatternMatchRule",
    "PhaseWindowRule",
    "PrecedenceOverrideRule",
    "PresetProfile",
    "PriorityMethod",
    "PriorityWeights",
    "RULE_LIST_ADAPTER",
    "RuleConflict",
    "RuleSet",
    "SlotRestrictionRule",
]
