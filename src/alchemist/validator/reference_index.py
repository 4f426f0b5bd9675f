# src/alchemist/validator/reference_index.py
"""
@brief
Read-only lookup structures derived from the three canonical collections.

@details
Consumed by the cross-entity validator, the allocation-rule checks and the
fix advisor. The index holds no mutable state: rebuild it whenever the
collections change (collections are tens to low hundreds of rows).
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

from alchemist.normalizer.types import NormalizedClient, NormalizedTask, NormalizedWorker


def _freeze_groups(groups: dict[str, list]) -> Mapping[str, tuple]:
    return MappingProxyType({name: tuple(members) for name, members in groups.items()})


@dataclass(frozen=True)
class ReferenceIndex:
    """
    @brief
    Immutable snapshot of IDs, skills and group memberships.

    @details
    Group maps skip blank group labels: an empty WorkerGroup or GroupTag
    means "no group", not a group named "".
    """

    task_ids: frozenset[str] = frozenset()
    client_ids: frozenset[str] = frozenset()
    worker_ids: frozenset[str] = frozenset()
    worker_skills: frozenset[str] = frozenset()
    required_skills: frozenset[str] = frozenset()
    workers_by_group: Mapping[str, tuple[NormalizedWorker, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    clients_by_group: Mapping[str, tuple[NormalizedClient, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def build(
        cls,
        clients: Sequence[NormalizedClient],
        workers: Sequence[NormalizedWorker],
        tasks: Sequence[NormalizedTask],
    ) -> ReferenceIndex:
        """
        @brief
        Build the index from canonical records.

        @params
            clients, workers, tasks : Sequence of normalized records.

        @returns
            A new ReferenceIndex. Blank IDs are not indexed.
        """
        # (1) ID sets
        task_ids = frozenset(t.task_id for t in tasks if t.task_id)
        client_ids = frozenset(c.client_id for c in clients if c.client_id)
        worker_ids = frozenset(w.worker_id for w in workers if w.worker_id)

        # (2) Skill unions (tokens are already lower-cased by the normalizer)
        worker_skills = frozenset(s for w in workers for s in w.skills)
        required_skills = frozenset(s for t in tasks for s in t.required_skills)

        # (3) Group memberships
        workers_by_group: dict[str, list[NormalizedWorker]] = defaultdict(list)
        for worker in workers:
            if worker.worker_group:
                workers_by_group[worker.worker_group].append(worker)

        clients_by_group: dict[str, list[NormalizedClient]] = defaultdict(list)
        for client in clients:
            if client.group_tag:
                clients_by_group[client.group_tag].append(client)

        return cls(
            task_ids=task_ids,
            client_ids=client_ids,
            worker_ids=worker_ids,
            worker_skills=worker_skills,
            required_skills=required_skills,
            workers_by_group=_freeze_groups(workers_by_group),
            clients_by_group=_freeze_groups(clients_by_group),
        )

    def common_slots(self, worker_group: str) -> frozenset[int]:
        """
        @brief
        Phase indexes at which every member of `worker_group` is available.

        @details
        Intersection of the members' normalized AvailableSlots. An unknown
        or empty group, or an empty intersection, yields an empty set.
        """
        members = self.workers_by_group.get(worker_group, ())
        if not members:
            return frozenset()
        common = set(members[0].available_slots)
        for worker in members[1:]:
            common &= set(worker.available_slots)
        return frozenset(common)

    def uncovered_skills(self) -> list[str]:
        """Task-required skills no worker lists, sorted."""
        return sorted(self.required_skills - self.worker_skills)


__all__ = ["ReferenceIndex"]
