"""
DataSet protocol.

Defines the interface a DataView requires from the data set it wraps.
Any implementation honouring it can back a view; the bundled one is
``dataview.core.dataset.DataSet``.
"""

from __future__ import annotations

from typing import Protocol, TypeVar, runtime_checkable

from dataview.core.query import QueryProtocol

from .models import EntityState, LoadMode

T = TypeVar("T")
K = TypeVar("K")


@runtime_checkable
class DataSetProtocol(Protocol[T, K]):
    """
    Protocol for the buffered entity store behind a DataView.

    Implementations are responsible for:
    - Owning the entities and their change state
    - Buffering mutations, or writing them through, per their buffer policy
    - Talking to the remote source of truth
    - Making ``all_entities`` and ``is_synchronized`` observable reads, so a
      view's cached projection invalidates when they change
    """

    def all_entities(self) -> list[T]:
        """Current buffered entities; no side effect."""
        ...

    def is_synchronized(self) -> bool:
        """True when no refresh or sync is outstanding."""
        ...

    def state_of(self, entity: T) -> EntityState:
        """Change state of ``entity``."""
        ...

    def find_by_key(self, key: K) -> T | None:
        """Local lookup; None when absent."""
        ...

    async def refresh(
        self, mode: LoadMode | str | None = None, query: QueryProtocol | None = None
    ) -> list[T]:
        """
        Repopulate the buffer from the remote source, filtered by ``query``.

        Returns:
            The resulting page of entities
        """
        ...

    async def load(
        self, key: K, mode: LoadMode | str | None = None, query: QueryProtocol | None = None
    ) -> T:
        """
        Fetch and materialize a single entity.

        Raises:
            EntityNotFoundError: If the key does not resolve
        """
        ...

    async def sync(self, query: QueryProtocol | None = None) -> None:
        """Reconcile the buffer with the remote source, scoped by ``query``."""
        ...

    async def add(self, entity: T) -> T:
        ...

    async def update(self, entity: T) -> T:
        ...

    async def remove(self, entity: T) -> None:
        ...

    async def save_entity(self, entity: T) -> T:
        """Write the buffered change of one entity to the remote source."""
        ...

    def reset_entity(self, entity: T) -> None:
        """Discard the buffered change of one entity; no remote call."""
        ...

    async def remote_create(self, entity: T) -> T:
        ...

    async def remote_update(self, entity: T) -> T:
        ...

    async def remote_remove(self, entity: T) -> None:
        ...


__all__ = ["DataSetProtocol"]
