"""
Entity data models for dataview.

Defines the Entity base model that every buffered record derives from,
the EntityState tag tracking pending changes against the remote source,
and the LoadMode values accepted by refresh and load operations.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, PrivateAttr


class EntityState(str, Enum):
    """Pending change classification of an entity relative to the remote source."""

    UNCHANGED = "unchanged"
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"

    @property
    def is_pending(self) -> bool:
        """True when the entity has a change not yet written to the remote source."""
        return self is not EntityState.UNCHANGED


class LoadMode(str, Enum):
    """Where refresh and load operations look for data.

    REMOTE always queries the remote source, LOCAL answers from the buffer
    only, and ALL answers from the buffer when it can and falls back to
    the remote source otherwise.
    """

    REMOTE = "remote"
    LOCAL = "local"
    ALL = "all"


class Entity(BaseModel):
    """
    Base class for records buffered by a DataSet.

    Subclasses declare their fields as a regular Pydantic model. The state
    tag and the last-known-good snapshot are private attributes written by
    the owning DataSet only; callers read the tag via ``entity_state``.

    Example:
        >>> class Contact(Entity):
        ...     id: int | None = None
        ...     name: str
        >>> contact = Contact(name="Ada")
        >>> contact.entity_state
        <EntityState.UNCHANGED: 'unchanged'>
    """

    model_config = ConfigDict(populate_by_name=True)

    _entity_state: EntityState = PrivateAttr(default=EntityState.UNCHANGED)
    _original: dict[str, Any] | None = PrivateAttr(default=None)

    @property
    def entity_state(self) -> EntityState:
        """Current change state of this entity."""
        return self._entity_state


class Record(Entity):
    """
    Schemaless entity accepting any field.

    Used when no dedicated model exists, e.g. by the command line when
    browsing an arbitrary remote collection.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def fields(self) -> dict[str, Any]:
        """All declared and extra fields as a plain dict."""
        return self.model_dump()
