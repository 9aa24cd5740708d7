"""
Reactive primitives.

Observable values, observable lists and dependency-tracked computed
values. The data view builds its cached projection on top of these.
"""

from .computed import Computed
from .observable import (
    EqualityComparer,
    Observable,
    ObservableList,
    Subscribable,
    Subscription,
    primitive_equals,
    sequence_equals,
    untracked,
)

__all__ = [
    "Computed",
    "EqualityComparer",
    "Observable",
    "ObservableList",
    "Subscribable",
    "Subscription",
    "primitive_equals",
    "sequence_equals",
    "untracked",
]
