"""
Change classification.

Partitions the entities of a data set by their change state. The report
is computed on demand and never cached: it always reflects the state
tags at the moment it was built.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from dataview.core.dataset.models import EntityState


@dataclass(frozen=True)
class ChangeReport:
    """
    Entities grouped by EntityState.

    Every state has a bucket (possibly empty); buckets are disjoint and
    together hold every classified entity.

    Example:
        >>> report = view.get_changes()
        >>> report.counts()
        {'unchanged': 12, 'added': 1, 'modified': 2, 'removed': 0}
        >>> [e.id for e in report.modified]
        [4, 9]
    """

    buckets: dict[EntityState, list[Any]] = field(
        default_factory=lambda: {state: [] for state in EntityState}
    )

    def __getitem__(self, state: EntityState | str) -> list[Any]:
        return self.buckets[EntityState(state)]

    @property
    def added(self) -> list[Any]:
        return self.buckets[EntityState.ADDED]

    @property
    def modified(self) -> list[Any]:
        return self.buckets[EntityState.MODIFIED]

    @property
    def removed(self) -> list[Any]:
        return self.buckets[EntityState.REMOVED]

    @property
    def unchanged(self) -> list[Any]:
        return self.buckets[EntityState.UNCHANGED]

    @property
    def pending(self) -> list[Any]:
        """Entities with a change to write: added, then modified, then removed."""
        return [*self.added, *self.modified, *self.removed]

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.modified or self.removed)

    def counts(self) -> dict[str, int]:
        return {state.value: len(entities) for state, entities in self.buckets.items()}


def classify(
    entities: Iterable[Any], state_of: Callable[[Any], EntityState]
) -> ChangeReport:
    """
    Build a ChangeReport by reading each entity's state tag.

    Args:
        entities: Entities to classify
        state_of: Returns the EntityState of an entity

    Returns:
        ChangeReport with one bucket per state
    """
    report = ChangeReport()
    for entity in entities:
        report.buckets[state_of(entity)].append(entity)
    return report
