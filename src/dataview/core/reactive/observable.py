"""
Observable values with automatic dependency tracking.

An Observable holds a value and notifies its subscribers when the value
changes. Reading an observable by calling it registers the read with the
innermost evaluation frame, which is how a Computed learns what it
depends on without declaring anything.

Evaluation is synchronous, and scheduling is single-threaded and
cooperative (asyncio), so the frame stack is a plain module-level list.

Example:
    >>> name = Observable("draft")
    >>> seen = []
    >>> sub = name.subscribe(seen.append)
    >>> name.set("final")
    >>> seen
    ['final']
    >>> sub.dispose()
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import contextmanager
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

EqualityComparer = Callable[[Any, Any], bool]

_PRIMITIVES = (str, int, float, bool, bytes, type(None))

# Stack of evaluation frames; each frame maps id(dependency) -> dependency
_frames: list[dict[int, Subscribable[Any]]] = []


def primitive_equals(old: Any, new: Any) -> bool:
    """
    Default comparer: identical objects, or equal primitives of the same type.

    Mutable containers and models always count as changed unless they are
    the very same object.
    """
    if old is new:
        return True
    if type(old) is type(new) and isinstance(old, _PRIMITIVES):
        return bool(old == new)
    return False


def sequence_equals(old: Any, new: Any) -> bool:
    """
    Structural comparer for sequences: same length and element-wise equal.

    Used where a recomputation producing identical data must not be
    reported as a change.
    """
    if old is new:
        return True
    if not isinstance(old, Sequence) or not isinstance(new, Sequence):
        return False
    if len(old) != len(new):
        return False
    return all(a is b or a == b for a, b in zip(old, new))


def register_dependency(source: Subscribable[Any]) -> None:
    """Record a read of ``source`` in the innermost evaluation frame."""
    if _frames:
        _frames[-1].setdefault(id(source), source)


@contextmanager
def evaluation_frame() -> Iterator[dict[int, Subscribable[Any]]]:
    """Collect every observable read while the block runs."""
    frame: dict[int, Subscribable[Any]] = {}
    _frames.append(frame)
    try:
        yield frame
    finally:
        _frames.pop()


@contextmanager
def untracked() -> Iterator[None]:
    """Run a block whose reads are not recorded as dependencies."""
    with evaluation_frame():
        yield


class Subscription:
    """Handle returned by ``subscribe``; call ``dispose()`` to stop listening."""

    def __init__(self, target: Subscribable[Any], callback: Callable[[Any], None]) -> None:
        self.target = target
        self.callback = callback
        self.disposed = False

    def dispose(self) -> None:
        if not self.disposed:
            self.disposed = True
            self.target._remove_subscription(self)


class Subscribable(Generic[T]):
    """Base for anything that can be subscribed to and read reactively."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        """
        Call ``callback`` with the new value on every notified change.

        Args:
            callback: Function receiving the new value

        Returns:
            Subscription handle
        """
        subscription = Subscription(self, callback)
        self._subscriptions.append(subscription)
        return subscription

    @property
    def has_subscribers(self) -> bool:
        return bool(self._subscriptions)

    def _remove_subscription(self, subscription: Subscription) -> None:
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            pass

    def _notify(self, value: T) -> None:
        # Copy: callbacks may subscribe or dispose while we iterate
        for subscription in list(self._subscriptions):
            if not subscription.disposed:
                subscription.callback(value)


class Observable(Subscribable[T]):
    """
    A single reactive value.

    Call the observable to read it (tracked), ``peek()`` to read it without
    registering a dependency, and ``set()`` to write it. Subscribers are
    notified only when ``equality(old, new)`` is false.
    """

    def __init__(self, value: T, equality: EqualityComparer = primitive_equals) -> None:
        super().__init__()
        self._value = value
        self.equality = equality

    def __call__(self) -> T:
        register_dependency(self)
        return self._value

    def peek(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        if self.equality(self._value, value):
            return
        self._value = value
        self._notify(value)

    def value_has_mutated(self) -> None:
        """Notify subscribers after the held object was changed in place."""
        self._notify(self._value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"


class ObservableList(Observable[list[T]]):
    """
    An observable list with in-place mutators.

    Every mutator notifies subscribers once. Reads through ``len()``,
    iteration and indexing are tracked like a call.
    """

    def __init__(self, items: Iterable[T] | None = None) -> None:
        super().__init__(list(items or []))

    def __len__(self) -> int:
        return len(self())

    def __iter__(self) -> Iterator[T]:
        return iter(self())

    def __getitem__(self, index: int) -> T:
        return self()[index]

    def __contains__(self, item: object) -> bool:
        return item in self()

    def size(self) -> int:
        return len(self)

    def append(self, item: T) -> None:
        self._value.append(item)
        self.value_has_mutated()

    def extend(self, items: Iterable[T]) -> None:
        added = list(items)
        if not added:
            return
        self._value.extend(added)
        self.value_has_mutated()

    def remove(self, item: T) -> None:
        """Remove ``item`` (by identity first, then equality); missing items are ignored."""
        for index, existing in enumerate(self._value):
            if existing is item:
                del self._value[index]
                self.value_has_mutated()
                return
        if item in self._value:
            self._value.remove(item)
            self.value_has_mutated()

    def remove_all(self, items: Iterable[T]) -> None:
        doomed = {id(item) for item in items}
        if not doomed:
            return
        kept = [item for item in self._value if id(item) not in doomed]
        if len(kept) != len(self._value):
            self._value[:] = kept
            self.value_has_mutated()

    def replace(self, old: T, new: T) -> None:
        for index, existing in enumerate(self._value):
            if existing is old:
                self._value[index] = new
                self.value_has_mutated()
                return
        raise ValueError(f"{old!r} is not in the list")

    def clear(self) -> None:
        if self._value:
            self._value.clear()
            self.value_has_mutated()

    def set(self, value: list[T]) -> None:
        """Replace the whole content; always notifies."""
        self._value = list(value)
        self._notify(self._value)
