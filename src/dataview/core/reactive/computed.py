"""
Computed values: memoized, dependency-tracked derivations.

A Computed wraps an evaluator function. The first read runs the evaluator
and records every observable it read; the result is cached until one of
those dependencies changes. Dependencies are re-collected on every
evaluation, so a branch that stops reading an observable also stops
depending on it.

Evaluation is deferred: when a dependency changes and nobody is
subscribed, the computed is only marked dirty and re-evaluated on the
next read. When there are subscribers it re-evaluates immediately and
notifies them only if ``equality(old, new)`` is false.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from dataview.core.reactive.observable import (
    EqualityComparer,
    Subscribable,
    Subscription,
    evaluation_frame,
    primitive_equals,
    register_dependency,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Computed(Subscribable[T]):
    """
    A cached value derived from other observables.

    Example:
        >>> first = Observable("Ada")
        >>> last = Observable("Lovelace")
        >>> full = Computed(lambda: f"{first()} {last()}")
        >>> full()
        'Ada Lovelace'
        >>> last.set("Byron")
        >>> full()
        'Ada Byron'
    """

    def __init__(
        self,
        evaluator: Callable[[], T],
        equality: EqualityComparer = primitive_equals,
        name: str | None = None,
    ) -> None:
        """
        Initialize a computed value.

        Args:
            evaluator: Zero-argument function producing the value
            equality: Comparer deciding whether a new value is a change
            name: Label used in debug logs
        """
        super().__init__()
        self._evaluator = evaluator
        self.equality = equality
        self.name = name or getattr(evaluator, "__name__", "computed")
        self._value: Any = None
        self._dirty = True
        self._evaluating = False
        self._dependencies: dict[int, Subscription] = {}
        self.evaluation_count = 0

    def __call__(self) -> T:
        register_dependency(self)
        return self.peek()

    def peek(self) -> T:
        """Read the value without registering a dependency."""
        if self._dirty:
            self._evaluate()
        value: T = self._value
        return value

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def dependency_count(self) -> int:
        return len(self._dependencies)

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        # A subscribed computed must be evaluated so it knows its dependencies
        if self._dirty:
            self._evaluate()
        return super().subscribe(callback)

    def dispose(self) -> None:
        """Drop every dependency subscription; the next read re-evaluates."""
        for subscription in self._dependencies.values():
            subscription.dispose()
        self._dependencies.clear()
        self._dirty = True

    def _evaluate(self) -> None:
        if self._evaluating:
            raise RuntimeError(f"Cycle detected while evaluating {self.name!r}")

        self._evaluating = True
        try:
            with evaluation_frame() as frame:
                new_value = self._evaluator()
        finally:
            self._evaluating = False

        self._rebind(frame)
        self.evaluation_count += 1

        first = self.evaluation_count == 1
        old_value = self._value
        self._value = new_value
        self._dirty = False

        logger.debug(
            "Evaluated %s (#%d, %d dependencies)",
            self.name,
            self.evaluation_count,
            len(self._dependencies),
        )

        if not first and not self.equality(old_value, new_value):
            self._notify(new_value)

    def _rebind(self, frame: dict[int, Subscribable[Any]]) -> None:
        for key in list(self._dependencies):
            if key not in frame:
                self._dependencies.pop(key).dispose()
        for key, source in frame.items():
            if key not in self._dependencies and source is not self:
                self._dependencies[key] = source.subscribe(self._on_dependency_changed)

    def _on_dependency_changed(self, _value: Any) -> None:
        if self._evaluating:
            return
        self._dirty = True
        if self.has_subscribers:
            self._evaluate()

    def __repr__(self) -> str:
        state = "dirty" if self._dirty else repr(self._value)
        return f"Computed({self.name}: {state})"
