from alchemist.normalizer.normalizer import (
    normalize_attributes_json,
    normalize_available_slots,
    normalize_client,
    normalize_preferred_phases,
    normalize_qualification_level,
    normalize_skills,
    normalize_task,
    normalize_worker,
    validate_task_ids,
)
from alchemist.normalizer.types import (
    NormalizedClient,
    NormalizedTask,
    NormalizedWorker,
    TaskIdPartition,
)

__all__ = [
    "NormalizedClient",
    "NormalizedTask",
    "NormalizedWorker",
    "TaskIdPartition",
    "normalize_attributes_json",
    "normalize_available_slots",
    "normalize_client",
    "normalize_preferred_phases",
    "normalize_qualification_level",
    "normalize_skills",
    "normalize_task",
    "normalize_worker",
    "validate_task_ids",
]
