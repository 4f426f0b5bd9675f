from alchemist.validator.reference_index import ReferenceIndex
from alchemist.validator.sequencing import ValidationSequencer
from alchemist.validator.validator import (
    Validator,
    validate_all,
    validate_clients,
    validate_cross_entity,
    validate_tasks,
    validate_workers,
)

__all__ = [
    "ReferenceIndex",
    "ValidationSequencer",
    "Validator",
    "validate_all",
    "validate_clients",
    "validate_cross_entity",
    "validate_tasks",
    "validate_workers",
]
