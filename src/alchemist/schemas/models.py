# src/alchemist/schemas/models.py
"""
@brief
Pydantic data models for the Alchemist validation core.

@details
Defines four groups of canonical model types:
    - ClientRecord / WorkerRecord / TaskRecord: declared field schemas that raw
      spreadsheet rows are checked against (presence, type, bounds)
    - ValidationIssue / ValidationResult / ValidationSummary: the report shapes
      exposed to UI and export consumers (camelCase on the wire)
    - Config and its nested blocks: runtime configuration (from config.yaml)
    - QualificationLevel / RuleType: closed vocabularies shared across modules

Record models accept the loose encodings that arrive from spreadsheets
("3" for 3, 4 for "Senior") but never rewrite values; rewriting is the job of
alchemist.normalizer.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

EntityType = Literal["client", "worker", "task"]
IssueLevel = Literal["error", "warning"]
Confidence = Literal["high", "medium", "low"]

DEFAULT_HOURS_PER_SLOT = 8.0


class QualificationLevel(str, Enum):
    """Canonical worker qualification tiers."""

    JUNIOR = "Junior"
    MID = "Mid"
    SENIOR = "Senior"
    EXPERT = "Expert"


class RuleType(str, Enum):
    """
    @brief
    Stable ruleType vocabulary shared by validators and the fix advisor.

    @details
    Every tag a validator can emit must be listed here; the fix advisor
    refuses to import if any member lacks a suggestion provider.
    """

    SCHEMA = "schema"
    DUPLICATE_DETECTION = "duplicate-detection"
    DUPLICATE_ID = "duplicate-id"
    REFERENCE_INTEGRITY = "reference-integrity"
    SKILL_COVERAGE = "skill-coverage"
    CAPACITY_PLANNING = "capacity-planning"
    PRIORITY_DISTRIBUTION = "priority-distribution"
    PRIORITY_CAPACITY = "priority-capacity-match"
    INVALID_FORMAT = "invalid-format"
    TASK_COUNT_LIMIT = "task-count-limit"
    CAPACITY_CHECK = "capacity-check"
    LOAD_BALANCE_CHECK = "load-balance-check"
    SKILL_VALIDATION = "skill-validation"
    DURATION_CHECK = "duration-check"
    CONCURRENCY_CHECK = "concurrency-check"


class _StrictBaseModel(BaseModel):
    """
    @brief
    Base model enforcing strict defaults for configuration and report contracts.

    @details
    Forbids unknown fields and allows population by python field name as well
    as by the camelCase alias used on the wire.
    """

    model_config = {
        "extra": "forbid",  # Reject unknown fields
        "populate_by_name": True,  # Allow population by field name
        "use_enum_values": True,  # Export raw enum values
    }


class _RecordModel(BaseModel):
    """
    @brief
    Base model for raw entity rows.

    @details
    Spreadsheets routinely carry columns the core does not know about, so
    extra keys are ignored instead of reported.
    """

    model_config = {
        "extra": "ignore",
        "str_strip_whitespace": False,
    }


# ------------------------------------------------------------
# Entity record schemas
# ------------------------------------------------------------
class ClientRecord(_RecordModel):
    """
    @brief
    Declared schema of one Client row.

    @params
        ClientID : str
            Unique client key.
        PriorityLevel : int
            Integer priority, 1 (lowest) to 5 (highest).
        RequestedTaskIDs : str
            Comma-separated TaskIDs; references are checked cross-entity.
    """

    ClientID: str = Field(..., min_length=1, description="Unique client key")
    ClientName: str = Field(..., min_length=1, description="Display name")
    PriorityLevel: int = Field(..., ge=1, le=5, description="Priority 1-5")
    RequestedTaskIDs: str = Field("", description="Comma-separated TaskIDs")
    GroupTag: str | None = Field(None, description="Free-text grouping label")
    AttributesJSON: str | None = Field(None, description="JSON-encoded metadata blob")


class WorkerRecord(_RecordModel):
    """
    @brief
    Declared schema of one Worker row.

    @details
    AvailableSlots and QualificationLevel carry dual encodings; the
    before-validators accept both and report one readable message when
    neither fits.
    """

    WorkerID: str = Field(..., min_length=1, description="Unique worker key")
    WorkerName: str = Field(..., min_length=1, description="Display name")
    Skills: str = Field("", description="Comma-separated skill tags")
    AvailableSlots: int | str = Field(..., description="Slot count or slot list text")
    MaxLoadPerPhase: int = Field(..., ge=0, description="Per-phase load cap")
    WorkerGroup: str | None = Field(None, description="Free-text worker group")
    QualificationLevel: str | int = Field(..., description="Junior|Mid|Senior|Expert or 1-5")

    @field_validator("AvailableSlots", mode="before")
    @classmethod
    def _check_available_slots(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("must be a non-negative integer or a slot list")
        if isinstance(value, (int, float)):
            if float(value).is_integer() and value >= 0:
                return int(value)
            raise ValueError("must be a non-negative integer or a slot list")
        if isinstance(value, str):
            return value
        raise ValueError("must be a non-negative integer or a slot list")

    @field_validator("QualificationLevel", mode="before")
    @classmethod
    def _check_qualification_level(cls, value: Any) -> Any:
        message = "must be one of Junior, Mid, Senior, Expert or a number 1-5"
        if isinstance(value, bool):
            raise ValueError(message)
        if isinstance(value, (int, float)):
            if float(value).is_integer() and 1 <= value <= 5:
                return int(value)
            raise ValueError(message)
        if isinstance(value, str):
            text = value.strip()
            if text.isascii() and text.isdigit() and len(text) <= 9 and 1 <= int(text) <= 5:
                return int(text)
            for level in QualificationLevel:
                if level.value.lower() == text.lower():
                    return level.value
        raise ValueError(message)


class TaskRecord(_RecordModel):
    """
    @brief
    Declared schema of one Task row.

    @details
    Category is free text: unknown categories are tolerated. Duration of 0 is
    schema-valid and left to the business-rule sanity checks.
    """

    TaskID: str = Field(..., min_length=1, description="Unique task key")
    TaskName: str = Field(..., min_length=1, description="Display name")
    Category: str = Field("", description="Free-text category")
    Duration: int = Field(..., ge=0, description="Duration in hours/phases")
    RequiredSkills: str = Field("", description="Comma-separated required skills")
    PreferredPhases: str | None = Field(None, description="'[1,2]', '1 - 3' or '1,2'")
    MaxConcurrent: int = Field(1, ge=1, description="Parallel instances allowed")

    @field_validator("PreferredPhases", mode="before")
    @classmethod
    def _phases_as_text(cls, value: Any) -> Any:
        # spreadsheet parsers hand single-phase cells over as numbers
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


# ------------------------------------------------------------
# Validation report shapes
# ------------------------------------------------------------
class ValidationIssue(_StrictBaseModel):
    """
    @brief
    One validation finding (error or warning).

    @details
    Serialized with the camelCase keys consumed by the UI:
    id, level, message, field, rowIndex, entityType, ruleType. The optional
    `entities` block carries machine-readable context (offending ID, missing
    skills, computed totals) so the fix advisor never parses messages.
    """

    id: str
    level: IssueLevel
    message: str
    field: str | None = None
    row_index: int | None = Field(None, alias="rowIndex")
    entity_type: EntityType = Field(..., alias="entityType")
    rule_type: RuleType = Field(..., alias="ruleType")
    entities: dict[str, Any] | None = None


class ValidationResult(_StrictBaseModel):
    """Errors and warnings of one validation group; valid iff no errors."""

    is_valid: bool = Field(True, alias="isValid")
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)

    @classmethod
    def from_issues(
        cls, errors: list[ValidationIssue], warnings: list[ValidationIssue]
    ) -> ValidationResult:
        return cls(is_valid=not errors, errors=list(errors), warnings=list(warnings))


class ValidationSummary(_StrictBaseModel):
    """
    @brief
    Unified result of validate_all().

    @details
    Exposes one ValidationResult per entity type plus cross-entity, and the
    aggregate counts. Warnings never affect validity.
    """

    clients: ValidationResult = Field(default_factory=ValidationResult)
    workers: ValidationResult = Field(default_factory=ValidationResult)
    tasks: ValidationResult = Field(default_factory=ValidationResult)
    cross_entity: ValidationResult = Field(default_factory=ValidationResult, alias="crossEntity")
    total_errors: int = Field(0, alias="totalErrors")
    total_warnings: int = Field(0, alias="totalWarnings")

    @property
    def is_valid(self) -> bool:
        return self.total_errors == 0

    def groups(self) -> dict[str, ValidationResult]:
        return {
            "clients": self.clients,
            "workers": self.workers,
            "tasks": self.tasks,
            "crossEntity": self.cross_entity,
        }

    def all_errors(self) -> list[ValidationIssue]:
        return [e for group in self.groups().values() for e in group.errors]

    def all_warnings(self) -> list[ValidationIssue]:
        return [w for group in self.groups().values() for w in group.warnings]

    def error_rows(self, entity_type: EntityType) -> set[int]:
        """Row indexes carrying errors in the per-entity group of `entity_type`."""
        group = {"client": self.clients, "worker": self.workers, "task": self.tasks}[entity_type]
        return {e.row_index for e in group.errors if e.row_index is not None}


class FixSuggestion(_StrictBaseModel):
    """
    @brief
    One proposed correction for a ValidationIssue.

    @details
    `id` is the fix identifier passed back to apply_fix (e.g. "fix-json").
    Only suggestions with canAutoFix=True can be applied without human input.
    """

    id: str
    description: str
    action: str
    confidence: Confidence
    preview: str | None = None
    can_auto_fix: bool = Field(False, alias="canAutoFix")


# ------------------------------------------------------------
# Runtime configuration
# ------------------------------------------------------------
class ValidationConfig(_StrictBaseModel):
    """
    @brief
    Thresholds of the business-rule and cross-entity heuristics.

    @details
    Defaults reproduce the reference behavior. `hours_per_slot` is the
    multiplier turning worker slot counts into hours of capacity.
    """

    high_priority_threshold: int = Field(4, ge=1, le=5)
    high_priority_ratio: float = Field(0.3, ge=0.0, le=1.0)
    max_requested_tasks: int = Field(10, ge=1)
    max_skills_per_worker: int = Field(15, ge=1)
    load_to_slot_ratio: float = Field(2.0, gt=0.0)
    max_task_duration: int = Field(40, ge=1)
    max_concurrent: int = Field(10, ge=1)
    hours_per_slot: float = Field(DEFAULT_HOURS_PER_SLOT, gt=0.0)
    data_quality_checks: bool = Field(
        True, description="Emit invalid-format warnings for unparseable JSON / phase text"
    )
    write_report: bool = True


class ExportConfig(_StrictBaseModel):
    """Controls the production dataset export."""

    include_invalid_rows: bool = False
    apply_normalization: bool = True
    allow_errors: bool = Field(
        False, description="If True, export even when the summary still has errors"
    )


class FixConfig(_StrictBaseModel):
    """Controls the bulk auto-fix pass."""

    bulk_min_confidence: Confidence = "high"


class LoggingConfig(_StrictBaseModel):
    """Console logging set up by the CLI."""

    level: str = "INFO"
    format: str = "[%(levelname)s] %(message)s"


class Config(_StrictBaseModel):
    """
    @brief
    Root runtime configuration.

    @details
    Every block has defaults, so an empty mapping is a valid configuration.
    """

    output_dir: str | None = "data/output"
    validation: ValidationConfig = Field(default_factory=ValidationConfig.model_construct)
    export: ExportConfig = Field(default_factory=ExportConfig.model_construct)
    fixes: FixConfig = Field(default_factory=FixConfig.model_construct)
    logging: LoggingConfig = Field(default_factory=LoggingConfig.model_construct)


__all__ = [
    "ClientRecord",
    "Config",
    "DEFAULT_HOURS_PER_SLOT",
    "EntityType",
    "ExportConfig",
    "FixConfig",
    "FixSuggestion",
    "LoggingConfig",
    "QualificationLevel",
    "RuleType",
    "TaskRecord",
    "ValidationConfig",
    "ValidationIssue",
    "ValidationResult",
    "ValidationSummary",
    "WorkerRecord",
]
