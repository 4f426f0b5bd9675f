from alchemist.fixes.advisor import (
    BulkFixResult,
    EntityCollections,
    FixAdvisor,
    FixOutcome,
    apply_bulk_fix,
    apply_fix,
    get_fix_suggestions,
)

__all__ = [
    "BulkFixResult",
    "EntityCollections",
    "FixAdvisor",
    "FixOutcome",
    "apply_bulk_fix",
    "apply_fix",
    "get_fix_suggestions",
]
