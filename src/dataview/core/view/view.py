"""
DataView: a reactive, cached projection over a data set.

A DataView binds one data set to one query. Reading the view returns the
query applied to the data set's entities; the result is memoized in a
Computed and recomputed only when the entities, the synchronization flag
or a query parameter it read has changed. Subscribers hear about a new
projection only when it differs element-wise from the previous one.

While a paged view is being refreshed, the previous page keeps being
served until the data set is synchronized again, so a list does not
flash empty during a page change.

Writes go through the data set; ``save_changes`` commits every buffered
change of the data set as one batch.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from typing import Generic, TypeVar

from dataview.core.dataset import DataSetProtocol, LoadMode
from dataview.core.query import Query, QueryProtocol
from dataview.core.reactive import Computed, ObservableList, Subscription, sequence_equals

from .changes import ChangeReport, classify
from .commit import BatchCommitCoordinator, CommitResult

logger = logging.getLogger(__name__)

T = TypeVar("T")
K = TypeVar("K")


class DataView(Generic[T, K]):
    """
    Filtered, paged, change-aware view of a data set.

    Example:
        >>> view = create(contacts, Query(where={"city": "Paris"}, page_size=20))
        >>> await view.refresh()
        >>> for contact in view:
        ...     print(contact.name)
        >>> view.get_changes().has_changes
        False
    """

    def __init__(self, data_set: DataSetProtocol[T, K], query: QueryProtocol | None = None) -> None:
        """
        Initialize the view.

        Args:
            data_set: Data set the view reads from and writes to
            query: Query shaping the projection (a fresh Query if omitted)
        """
        self._set = data_set
        self._query: QueryProtocol = query if query is not None else Query()
        self.last_result: ObservableList[T] = ObservableList()
        self._projection: Computed[list[T]] = Computed(
            self._evaluate, equality=sequence_equals, name="DataView.projection"
        )
        self._committer = BatchCommitCoordinator(data_set)

    @property
    def set(self) -> DataSetProtocol[T, K]:
        """The bound data set; fixed for the lifetime of the view."""
        return self._set

    @property
    def query(self) -> QueryProtocol:
        return self._query

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def _evaluate(self) -> list[T]:
        if (
            self._query.page_size > 0
            and not self._set.is_synchronized()
            and len(self.last_result) > 0
        ):
            return list(self.last_result())
        return self._query.apply(self._set.all_entities(), True)

    def projection(self) -> list[T]:
        """Current projection; recomputed only if a dependency changed."""
        return self._projection()

    def __call__(self) -> list[T]:
        return self._projection()

    def __iter__(self) -> Iterator[T]:
        return iter(self._projection())

    def __len__(self) -> int:
        return len(self._projection())

    def peek(self) -> list[T]:
        """Current projection without registering a dependency."""
        return self._projection.peek()

    def subscribe(self, callback: Callable[[list[T]], None]) -> Subscription:
        """
        Observe projection changes.

        The callback receives the new projection whenever it differs
        element-wise from the previous one.
        """
        return self._projection.subscribe(callback)

    def dispose(self) -> None:
        """Stop tracking the data set and query."""
        self._projection.dispose()

    # ------------------------------------------------------------------
    # Remote-backed operations
    # ------------------------------------------------------------------

    async def refresh(self, mode: LoadMode | str | None = None) -> list[T]:
        """
        Refresh the view from the remote source.

        When paging is active, the returned page is retained as
        ``last_result`` and served while the data set resynchronizes.

        Returns:
            The page returned by the data set
        """
        page = await self._set.refresh(mode, self._query)
        if self._query.page_size > 0:
            self.last_result.set(page)
        logger.debug("View refreshed: %d entities", len(page))
        return page

    async def load(self, key: K, mode: LoadMode | str | None = None) -> T:
        """
        Load a remote entity by key, scoped by the view's query.

        Raises:
            EntityNotFoundError: If the key does not resolve
        """
        return await self._set.load(key, mode, self._query)

    async def sync(self) -> None:
        """Synchronize the data set with remote content filtered by the view's query."""
        await self._set.sync(self._query)

    async def add(self, entity: T) -> T:
        """Add an entity; posted immediately if the data set is unbuffered."""
        return await self._set.add(entity)

    async def update(self, entity: T) -> T:
        """Mark an entity as updated; put immediately if the data set is unbuffered."""
        return await self._set.update(entity)

    async def remove(self, entity: T) -> None:
        """Remove an entity; deleted immediately if the data set is unbuffered."""
        await self._set.remove(entity)

    def find_by_key(self, key: K) -> T | None:
        return self._set.find_by_key(key)

    async def save_entity(self, entity: T) -> T:
        """Save the changes of one entity to the remote source."""
        return await self._set.save_entity(entity)

    def reset_entity(self, entity: T) -> None:
        """Reset an entity to its last-known-good state."""
        self._set.reset_entity(entity)

    # ------------------------------------------------------------------
    # Changes
    # ------------------------------------------------------------------

    def get_changes(self) -> ChangeReport:
        """Report every entity of the data set grouped by change state."""
        return classify(self._set.all_entities(), self._set.state_of)

    async def save_changes(self) -> CommitResult:
        """
        Commit all pending operations (POST, PUT, DELETE) as one batch.

        Returns:
            CommitResult of the batch

        Raises:
            PartialBatchFailureError: If some operations failed; the others
                stay applied
            BatchCommitError: If every operation failed
        """
        return await self._committer.commit(self.get_changes())

    def __repr__(self) -> str:
        return f"DataView({self._set!r}, {self._query!r})"


def create(data_set: DataSetProtocol[T, K], query: QueryProtocol | None = None) -> DataView[T, K]:
    """Create a data view for the given data set."""
    return DataView(data_set, query)


__all__ = ["DataView", "create"]
