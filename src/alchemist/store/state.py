# src/alchemist/store/state.py
"""
@brief
Pure state-transition core for the three entity collections.

@details
EntityState is immutable. Every mutation returns a new state with
`version + 1` and `is_modified=True`; nothing here performs I/O. An outer
layer (CLI, UI adapter) can watch `version` to decide when to re-validate
or persist.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any

from alchemist.errors import DataError
from alchemist.fixes.advisor import ID_FIELDS, EntityCollections

Row = Mapping[str, Any]

_COLLECTIONS = {"client": "clients", "worker": "workers", "task": "tasks"}


def _freeze(rows: Sequence[Row]) -> tuple[Row, ...]:
    return tuple(MappingProxyType(dict(r)) for r in rows)


def _collection_name(entity_type: str) -> str:
    try:
        return _COLLECTIONS[entity_type]
    except KeyError:
        raise DataError(
            f"Unknown entity type: {entity_type}",
            source="store.state",
            suggested_action="Use one of: client, worker, task.",
        ) from None


@dataclass(frozen=True, slots=True)
class EntityState:
    clients: tuple[Row, ...] = ()
    workers: tuple[Row, ...] = ()
    tasks: tuple[Row, ...] = ()
    version: int = 0
    is_modified: bool = False

    @classmethod
    def initial(
        cls, clients: Sequence[Row] = (), workers: Sequence[Row] = (), tasks: Sequence[Row] = ()
    ) -> EntityState:
        return cls(_freeze(clients), _freeze(workers), _freeze(tasks))

    def rows(self, entity_type: str) -> tuple[Row, ...]:
        return getattr(self, _collection_name(entity_type))

    def to_collections(self) -> EntityCollections:
        """Mutable copies for the fix advisor and exporters."""
        return EntityCollections.of(self.clients, self.workers, self.tasks)

    def _with(self, entity_type: str, rows: tuple[Row, ...]) -> EntityState:
        return replace(
            self,
            **{_collection_name(entity_type): rows},
            version=self.version + 1,
            is_modified=True,
        )


def _check_index(state: EntityState, entity_type: str, row_index: int) -> None:
    rows = state.rows(entity_type)
    if not 0 <= row_index < len(rows):
        raise DataError(
            f"Row {row_index} out of range for {entity_type} collection of {len(rows)}",
            source="store.state",
        )


def replace_collection(state: EntityState, entity_type: str, rows: Sequence[Row]) -> EntityState:
    """Wholesale replacement, e.g. after a fresh upload."""
    return state._with(entity_type, _freeze(rows))


def add_entity(state: EntityState, entity_type: str, row: Row) -> EntityState:
    return state._with(entity_type, (*state.rows(entity_type), *_freeze([row])))


def update_entity(
    state: EntityState, entity_type: str, row_index: int, changes: Mapping[str, Any]
) -> EntityState:
    """Field-level edit of one row; other rows are shared with the old state."""
    _check_index(state, entity_type, row_index)
    rows = list(state.rows(entity_type))
    rows[row_index] = MappingProxyType({**rows[row_index], **changes})
    return state._with(entity_type, tuple(rows))


def delete_entity(state: EntityState, entity_type: str, row_index: int) -> EntityState:
    _check_index(state, entity_type, row_index)
    rows = state.rows(entity_type)
    return state._with(entity_type, rows[:row_index] + rows[row_index + 1 :])


def find_entity(state: EntityState, entity_type: str, entity_id: str) -> int | None:
    """Row index of the first row holding `entity_id`, or None."""
    rows = state.rows(entity_type)
    id_field = ID_FIELDS[entity_type]
    for i, row in enumerate(rows):
        if str(row.get(id_field, "")).strip() == entity_id:
            return i
    return None


def with_fixed_data(state: EntityState, data: EntityCollections) -> EntityState:
    """Adopt collections returned by the fix advisor as one transition."""
    return replace(
        state,
        clients=_freeze(data.clients),
        workers=_freeze(data.workers),
        tasks=_freeze(data.tasks),
        version=state.version + 1,
        is_modified=True,
    )


def mark_saved(state: EntityState) -> EntityState:
    """Clear the modified flag; the version is unchanged since data did not change."""
    return replace(state, is_modified=False)


__all__ = [
    "EntityState",
    "add_entity",
    "delete_entity",
    "find_entity",
    "mark_saved",
    "replace_collection",
    "update_entity",
    "with_fixed_data",
]
