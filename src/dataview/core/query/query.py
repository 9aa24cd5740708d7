"""
In-memory query: filtering, ordering and paging of entity sequences.

The Query is the only thing a DataView knows about how its projection is
shaped. Every parameter lives in an observable, so changing the filter,
the order or the page of a query bound to a view invalidates the view's
cached projection.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import Any, Protocol, TypeVar, runtime_checkable

from dataview.core.reactive import Observable

T = TypeVar("T")

Predicate = Callable[[Any], bool]

# Parameter names reserved by to_params(); filters cannot use them
RESERVED_PARAMS = frozenset({"order_by", "limit", "offset"})


@runtime_checkable
class QueryProtocol(Protocol):
    """
    Protocol for the query collaborator of a DataView.

    A query turns a full entity sequence into a filtered, ordered and
    paged sub-sequence, and describes the same selection to a remote
    source as transport parameters.
    """

    @property
    def page_size(self) -> int:
        """Configured page size; zero or negative means no paging."""
        ...

    def apply(self, items: Iterable[Any], respect_paging: bool = True) -> list[Any]:
        """
        Filter, order and (optionally) page a sequence.

        Args:
            items: Full entity sequence
            respect_paging: Whether to cut the result to the current page

        Returns:
            New list holding the selected entities
        """
        ...

    def matches(self, entity: Any) -> bool:
        """Whether ``entity`` passes the query's filters (paging ignored)."""
        ...

    def to_params(self, include_paging: bool = True) -> dict[str, Any]:
        """Describe the selection as remote request parameters."""
        ...


class Query:
    """
    Filter, order and page specification for a sequence of entities.

    Filters come in two forms: ``where`` equality filters, which can be
    sent to a remote source, and an optional ``predicate`` applied locally
    only. Ordering takes field names, prefixed with ``-`` for descending.

    Example:
        >>> query = Query(where={"status": "open"}, order_by="-priority", page_size=20)
        >>> page = query.apply(tasks)
        >>> query.next_page()
        >>> query.to_params()
        {'status': 'open', 'order_by': '-priority', 'limit': 20, 'offset': 20}
    """

    def __init__(
        self,
        *,
        where: dict[str, Any] | None = None,
        predicate: Predicate | None = None,
        order_by: str | Sequence[str] | None = None,
        page_size: int = 0,
        page_index: int = 0,
    ) -> None:
        self._where: Observable[dict[str, Any]] = Observable({})
        self._predicate: Observable[Predicate | None] = Observable(predicate)
        self._order_by: Observable[tuple[str, ...]] = Observable(())
        self._page_size = Observable(page_size)
        self._page_index = Observable(0)

        if where:
            self.filter(**where)
        if order_by:
            self.order(*([order_by] if isinstance(order_by, str) else order_by))
        self.page_index = page_index

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    @property
    def page_size(self) -> int:
        return self._page_size()

    @page_size.setter
    def page_size(self, value: int) -> None:
        self._page_size.set(int(value))

    @property
    def page_index(self) -> int:
        return self._page_index()

    @page_index.setter
    def page_index(self, value: int) -> None:
        if value < 0:
            raise ValueError(f"page_index must be >= 0, got {value}")
        self._page_index.set(int(value))

    @property
    def where(self) -> dict[str, Any]:
        return dict(self._where())

    @property
    def predicate(self) -> Predicate | None:
        return self._predicate()

    @predicate.setter
    def predicate(self, value: Predicate | None) -> None:
        self._predicate.set(value)

    @property
    def order_by(self) -> tuple[str, ...]:
        return self._order_by()

    @property
    def is_paged(self) -> bool:
        return self.page_size > 0

    @property
    def offset(self) -> int:
        """Index of the first entity of the current page."""
        return self.page_index * self.page_size if self.page_size > 0 else 0

    def filter(self, **equals: Any) -> Query:
        """
        Add equality filters; a value of None removes that filter.

        Raises:
            ValueError: If a filter name collides with a reserved parameter
        """
        clashing = RESERVED_PARAMS.intersection(equals)
        if clashing:
            raise ValueError(f"Reserved parameter names cannot be filtered on: {sorted(clashing)}")

        where = dict(self._where.peek())
        for name, value in equals.items():
            if value is None:
                where.pop(name, None)
            else:
                where[name] = value
        if where != self._where.peek():
            self._where.set(where)
        return self

    def clear_filters(self) -> Query:
        if self._where.peek():
            self._where.set({})
        self._predicate.set(None)
        return self

    def order(self, *fields: str) -> Query:
        """Replace the ordering; ``-field`` sorts descending."""
        self._order_by.set(tuple(f.strip() for f in fields if f and f.strip()))
        return self

    def next_page(self) -> None:
        self.page_index = self._page_index.peek() + 1

    def previous_page(self) -> None:
        if self._page_index.peek() > 0:
            self.page_index = self._page_index.peek() - 1

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def matches(self, entity: Any) -> bool:
        for name, expected in self._where().items():
            if _field(entity, name) != expected:
                return False
        predicate = self._predicate()
        return predicate is None or bool(predicate(entity))

    def apply(self, items: Iterable[T], respect_paging: bool = True) -> list[T]:
        selected = [item for item in items if self.matches(item)]

        # Stable sort, least significant field first
        for spec in reversed(self._order_by()):
            descending = spec.startswith("-")
            name = spec.lstrip("-+")
            selected.sort(key=lambda item, n=name: _sort_key(_field(item, n)), reverse=descending)

        if respect_paging and self.page_size > 0:
            start = self.offset
            return selected[start : start + self.page_size]
        return selected

    def to_params(self, include_paging: bool = True) -> dict[str, Any]:
        params: dict[str, Any] = dict(self._where.peek())
        order_by = self._order_by.peek()
        if order_by:
            params["order_by"] = ",".join(order_by)
        page_size = self._page_size.peek()
        if include_paging and page_size > 0:
            params["limit"] = page_size
            params["offset"] = self._page_index.peek() * page_size
        return params

    def copy(self) -> Query:
        return Query(
            where=self._where.peek(),
            predicate=self._predicate.peek(),
            order_by=self._order_by.peek(),
            page_size=self._page_size.peek(),
            page_index=self._page_index.peek(),
        )

    def __repr__(self) -> str:
        return (
            f"Query(where={self._where.peek()!r}, order_by={self._order_by.peek()!r}, "
            f"page_size={self._page_size.peek()}, page_index={self._page_index.peek()})"
        )


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def _sort_key(value: Any) -> tuple[bool, Any]:
    # None sorts last in ascending order
    return (value is None, value)
