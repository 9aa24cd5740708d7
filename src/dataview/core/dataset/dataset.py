"""
Buffered entity store backed by a remote source.

The DataSet owns the local buffer of entities and the change state of
each one. Mutations are either buffered (the default) and written later
by ``save_entity`` or a view's ``save_changes``, or written through to
the remote source immediately when ``buffer`` is False.

The buffer and the synchronization flag are observables, so any Computed
reading ``all_entities()`` or ``is_synchronized()`` is invalidated when
they change.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Generic, TypeVar

from dataview.core.config.models import DataSetConfig
from dataview.core.exceptions import EntityNotFoundError, EntityStateError, RemoteOperationError
from dataview.core.query import QueryProtocol
from dataview.core.reactive import Observable, ObservableList
from dataview.core.remote import RemoteSource

from .models import Entity, EntityState, LoadMode

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)


class DataSet(Generic[E]):
    """
    Local buffer of entities with remote refresh, sync and write-back.

    Example:
        >>> source = MemoryRemoteSource([{"id": 1, "name": "Ada"}])
        >>> contacts = DataSet(Contact, source)
        >>> await contacts.refresh()
        >>> ada = contacts.find_by_key(1)
        >>> ada.name = "Ada Lovelace"
        >>> await contacts.update(ada)
        >>> contacts.state_of(ada)
        <EntityState.MODIFIED: 'modified'>
        >>> await contacts.save_entity(ada)
    """

    def __init__(
        self,
        entity_type: type[E],
        source: RemoteSource,
        *,
        key_field: str = "id",
        buffer: bool = True,
    ) -> None:
        """
        Initialize the data set.

        Args:
            entity_type: Entity model used to materialize remote records
            source: Remote source of truth
            key_field: Name of the field holding the entity key
            buffer: Buffer mutations locally (True) or write them through (False)
        """
        self.entity_type = entity_type
        self.source = source
        self.key_field = key_field
        self.buffer = buffer
        self._entities: ObservableList[E] = ObservableList()
        self._outstanding = Observable(0)

    @classmethod
    def from_config(
        cls, entity_type: type[E], source: RemoteSource, config: DataSetConfig
    ) -> DataSet[E]:
        return cls(entity_type, source, key_field=config.key_field, buffer=config.buffer)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def all_entities(self) -> list[E]:
        return list(self._entities())

    def is_synchronized(self) -> bool:
        return self._outstanding() == 0

    def __len__(self) -> int:
        return len(self._entities.peek())

    def key_of(self, entity: E) -> Any:
        return getattr(entity, self.key_field, None)

    def state_of(self, entity: E) -> EntityState:
        return entity.entity_state

    def owns(self, entity: E) -> bool:
        return any(existing is entity for existing in self._entities.peek())

    def find_by_key(self, key: Any) -> E | None:
        if key is None:
            return None
        for entity in self._entities():
            if self.key_of(entity) == key:
                return entity
        return None

    # ------------------------------------------------------------------
    # Remote reads
    # ------------------------------------------------------------------

    async def refresh(
        self, mode: LoadMode | str | None = None, query: QueryProtocol | None = None
    ) -> list[E]:
        """
        Repopulate the buffer from the remote source, filtered by ``query``.

        Records already buffered with a pending change are left untouched.

        Args:
            mode: LoadMode; LOCAL answers from the buffer, ALL tries the
                buffer first and falls back to the remote source
            query: Selection to request

        Returns:
            The resulting page of entities
        """
        load_mode = LoadMode(mode) if mode else LoadMode.REMOTE

        if load_mode is not LoadMode.REMOTE:
            local = self._select_local(query)
            if load_mode is LoadMode.LOCAL or local:
                return local

        params = query.to_params() if query is not None else {}
        async with self._synchronizing():
            rows = await self.source.fetch(params)
            page = self._store_many(rows)

        logger.debug("Refreshed %s: %d records", self.entity_type.__name__, len(page))
        return page

    async def load(
        self, key: Any, mode: LoadMode | str | None = None, query: QueryProtocol | None = None
    ) -> E:
        """
        Fetch and materialize a single entity by key.

        Raises:
            EntityNotFoundError: If the key does not resolve, or resolves to
                a record outside the query's filters
        """
        load_mode = LoadMode(mode) if mode else LoadMode.REMOTE

        if load_mode is not LoadMode.REMOTE:
            local = self._find(key)
            if local is not None:
                return local
            if load_mode is LoadMode.LOCAL:
                raise EntityNotFoundError(key)

        data = await self.source.fetch_one(key)
        if data is None:
            raise EntityNotFoundError(key)

        if query is not None and not query.matches(self.entity_type.model_validate(data)):
            raise EntityNotFoundError(key, f"Entity {key!r} is outside the query scope")

        return self._store_many([data])[0]

    async def sync(self, query: QueryProtocol | None = None) -> None:
        """
        Reconcile the buffer with the remote source, scoped by ``query``.

        Remote records in scope are upserted; unchanged local entities in
        scope that the remote no longer returns are dropped. Entities with
        pending changes are never overwritten or dropped.
        """
        params = query.to_params(include_paging=False) if query is not None else {}
        async with self._synchronizing():
            rows = await self.source.fetch(params)
            fetched = {id(entity) for entity in self._store_many(rows)}

            stale = [
                entity
                for entity in self._entities.peek()
                if entity.entity_state is EntityState.UNCHANGED
                and id(entity) not in fetched
                and (query is None or query.matches(entity))
            ]
            self._entities.remove_all(stale)

        logger.debug(
            "Synchronized %s: %d records, %d dropped",
            self.entity_type.__name__,
            len(rows),
            len(stale),
        )

    # ------------------------------------------------------------------
    # Buffered mutations
    # ------------------------------------------------------------------

    async def add(self, entity: E | dict[str, Any]) -> E:
        """
        Add a new entity; it is created remotely on save (or now, unbuffered).

        Args:
            entity: Entity instance, or a dict validated into one

        Raises:
            EntityStateError: If the entity already belongs to this data set
        """
        if isinstance(entity, dict):
            entity = self.entity_type.model_validate(entity)
        if self.owns(entity):
            raise EntityStateError(f"Entity {self.key_of(entity)!r} is already in the data set")

        entity._entity_state = EntityState.ADDED
        entity._original = None
        self._entities.append(entity)

        if not self.buffer:
            await self.remote_create(entity)
        return entity

    async def update(self, entity: E) -> E:
        """
        Mark an entity whose fields were changed as modified.

        An added entity stays added: it still needs to be created.

        Raises:
            EntityStateError: If the entity is not owned or is marked removed
        """
        self._require_owned(entity)
        state = entity.entity_state
        if state is EntityState.REMOVED:
            raise EntityStateError(f"Entity {self.key_of(entity)!r} is marked for removal")
        if state is EntityState.UNCHANGED:
            entity._entity_state = EntityState.MODIFIED
        self._entities.value_has_mutated()

        if not self.buffer:
            await self.save_entity(entity)
        return entity

    async def remove(self, entity: E) -> None:
        """Mark an entity for removal; it is deleted remotely on save."""
        self._require_owned(entity)
        if entity.entity_state is not EntityState.REMOVED:
            entity._entity_state = EntityState.REMOVED
            self._entities.value_has_mutated()

        if not self.buffer:
            await self.remote_remove(entity)

    async def save_entity(self, entity: E) -> E:
        """Write one entity's buffered change to the remote source."""
        self._require_owned(entity)
        state = entity.entity_state
        if state is EntityState.ADDED:
            return await self.remote_create(entity)
        if state is EntityState.MODIFIED:
            return await self.remote_update(entity)
        if state is EntityState.REMOVED:
            await self.remote_remove(entity)
        return entity

    def reset_entity(self, entity: E) -> None:
        """
        Discard one entity's buffered change without any remote call.

        Modified and removed entities get their last-known-good fields
        back. An entity the remote source has never confirmed (added, or
        added then removed) has no such state, so it is dropped from the
        buffer.
        """
        self._require_owned(entity)
        if entity.entity_state is EntityState.UNCHANGED:
            return

        original = entity._original
        if original is None:
            entity._entity_state = EntityState.UNCHANGED
            self._entities.remove(entity)
            return

        self._assign(entity, original)
        entity._entity_state = EntityState.UNCHANGED
        self._entities.value_has_mutated()

    # ------------------------------------------------------------------
    # Remote verbs
    # ------------------------------------------------------------------

    async def remote_create(self, entity: E) -> E:
        data = self._payload(entity)
        try:
            stored = await self.source.create(data)
        except RemoteOperationError as e:
            logger.warning("Remote create failed for %s: %s", self.entity_type.__name__, e)
            raise

        self._assign(entity, {**data, **stored})
        self._mark_clean(entity)
        self._entities.value_has_mutated()
        return entity

    async def remote_update(self, entity: E) -> E:
        key = self._require_key(entity, "update")
        data = self._payload(entity)
        try:
            stored = await self.source.update(key, data)
        except RemoteOperationError as e:
            logger.warning("Remote update failed for %r: %s", key, e)
            raise

        self._assign(entity, {**data, **stored})
        self._mark_clean(entity)
        self._entities.value_has_mutated()
        return entity

    async def remote_remove(self, entity: E) -> None:
        if self._is_local_only(entity):
            # Never created remotely, even if the key was set client-side
            self._entities.remove(entity)
            return

        key = self._require_key(entity, "delete")

        try:
            await self.source.delete(key)
        except RemoteOperationError as e:
            logger.warning("Remote delete failed for %r: %s", key, e)
            raise
        self._entities.remove(entity)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _synchronizing(self) -> AsyncIterator[None]:
        self._outstanding.set(self._outstanding.peek() + 1)
        try:
            yield
        finally:
            self._outstanding.set(self._outstanding.peek() - 1)

    def _find(self, key: Any) -> E | None:
        for entity in self._entities.peek():
            if self.key_of(entity) == key:
                return entity
        return None

    def _select_local(self, query: QueryProtocol | None) -> list[E]:
        entities = list(self._entities.peek())
        return query.apply(entities, True) if query is not None else entities

    def _require_owned(self, entity: E) -> None:
        if not self.owns(entity):
            raise EntityStateError(
                f"Entity {self.key_of(entity)!r} does not belong to this data set"
            )

    def _is_local_only(self, entity: E) -> bool:
        # Only _mark_clean sets the snapshot, after a remote round trip
        return entity._original is None

    def _require_key(self, entity: E, operation: str) -> Any:
        key = self.key_of(entity)
        if key is None:
            raise EntityStateError(f"Cannot {operation} an entity without a key")
        return key

    def _payload(self, entity: E) -> dict[str, Any]:
        data = entity.model_dump(mode="json")
        if data.get(self.key_field) is None:
            data.pop(self.key_field, None)
        return data

    def _materialize(self, data: dict[str, Any]) -> E:
        entity = self.entity_type.model_validate(data)
        self._mark_clean(entity)
        return entity

    def _mark_clean(self, entity: E) -> None:
        entity._entity_state = EntityState.UNCHANGED
        entity._original = entity.model_dump()

    def _assign(self, entity: E, values: dict[str, Any]) -> None:
        """Copy validated field values onto ``entity``, keeping its identity."""
        updated = self.entity_type.model_validate(values)
        for name, value in updated:
            setattr(entity, name, value)

    def _store_many(self, rows: list[dict[str, Any]]) -> list[E]:
        """
        Upsert remote records into the buffer with a single notification.

        Returns:
            The buffered entity for each row, in row order
        """
        current = list(self._entities.peek())
        positions = {self.key_of(entity): index for index, entity in enumerate(current)}
        positions.pop(None, None)
        changed = False
        stored: list[E] = []

        for row in rows:
            key = row.get(self.key_field)
            index = positions.get(key) if key is not None else None

            if index is None:
                entity = self._materialize(row)
                current.append(entity)
                if key is not None:
                    positions[key] = len(current) - 1
                changed = True
                stored.append(entity)
                continue

            existing = current[index]
            if existing.entity_state.is_pending:
                stored.append(existing)
                continue

            fresh = self._materialize(row)
            if fresh == existing:
                stored.append(existing)
                continue

            current[index] = fresh
            changed = True
            stored.append(fresh)

        if changed:
            self._entities.set(current)
        return stored

    def __repr__(self) -> str:
        return (
            f"DataSet({self.entity_type.__name__}, source={self.source.source_name!r}, "
            f"entities={len(self)}, buffer={self.buffer})"
        )
