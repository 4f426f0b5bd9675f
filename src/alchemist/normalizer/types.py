# src/alchemist/normalizer/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

from alchemist.schemas.models import QualificationLevel


class TaskIdPartition(NamedTuple):
    """RequestedTaskIDs split into resolvable and unresolvable entries (input order kept)."""

    valid: list[str]
    invalid: list[str]


@dataclass(frozen=True, slots=True)
class NormalizedClient:
    """
    Canonical Client record.

    Fields:
        priority_level: None when the raw value is not an integer at all
                        (the schema validator reports it; heuristics skip it).
        requested_task_ids: trimmed, non-empty entries in input order.
        attributes_json: always parseable JSON text.
        attributes_converted: True when the raw blob was not JSON and got wrapped.
    """

    client_id: str
    client_name: str
    priority_level: int | None
    requested_task_ids: list[str] = field(default_factory=list)
    group_tag: str = ""
    attributes_json: str = "{}"
    attributes_converted: bool = False


@dataclass(frozen=True, slots=True)
class NormalizedWorker:
    """Canonical Worker record; skills are lower-cased tokens, slots are phase indexes."""

    worker_id: str
    worker_name: str
    skills: list[str] = field(default_factory=list)
    available_slots: list[int] = field(default_factory=list)
    max_load_per_phase: int | None = None
    worker_group: str = ""
    qualification_level: QualificationLevel = QualificationLevel.MID


@dataclass(frozen=True, slots=True)
class NormalizedTask:
    """
    Canonical Task record; preferred_phases is ascending and distinct.

    phases_unrecognized is True when PreferredPhases held text that no
    supported encoding could read.
    """

    task_id: str
    task_name: str
    category: str = ""
    duration: int | None = None
    required_skills: list[str] = field(default_factory=list)
    preferred_phases: list[int] = field(default_factory=list)
    max_concurrent: int | None = None
    phases_unrecognized: bool = False
