"""
Remote source protocol and registry.

A RemoteSource is the low-level asynchronous transport a DataSet uses to
talk to the remote source of truth for one collection. Sources work on
plain dicts; turning them into entities is the DataSet's job.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class RemoteSource(Protocol):
    """
    Protocol for remote source implementations.

    Every method is a coroutine. Failures are raised as
    RemoteOperationError; a missing key on ``fetch_one`` is not a failure
    and returns None.
    """

    @property
    def source_name(self) -> str:
        """Name of this source type (e.g., 'memory', 'http')."""
        ...

    async def fetch(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        """
        Fetch the records selected by ``params``.

        Args:
            params: Equality filters plus optional ``order_by``, ``limit``
                and ``offset``

        Returns:
            Selected records, ordered and paged as requested
        """
        ...

    async def fetch_one(self, key: Any) -> dict[str, Any] | None:
        """Fetch a single record by key, or None if it does not exist."""
        ...

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create a record and return it as stored (with any assigned key)."""
        ...

    async def update(self, key: Any, data: dict[str, Any]) -> dict[str, Any]:
        """Replace the record at ``key`` and return it as stored."""
        ...

    async def delete(self, key: Any) -> None:
        """Delete the record at ``key``."""
        ...


# Source registry
_sources: dict[str, type[Any]] = {}


def register_source(name: str) -> Callable[[type[Any]], type[Any]]:
    """
    Decorator to register a remote source implementation.

    Usage:
        @register_source('memory')
        class MemoryRemoteSource:
            async def fetch(self, params):
                ...

    Args:
        name: Source name (e.g., 'memory', 'http')

    Returns:
        Decorator function
    """

    def decorator(source_class: type[Any]) -> type[Any]:
        _sources[name] = source_class
        return source_class

    return decorator


def get_source(name: str, **kwargs: Any) -> RemoteSource:
    """
    Instantiate a registered remote source.

    Args:
        name: Source name
        **kwargs: Constructor arguments for the source

    Returns:
        RemoteSource instance

    Raises:
        ValueError: If no source is registered under ``name``
    """
    source_class = _sources.get(name)
    if source_class is None:
        raise ValueError(
            f"Remote source '{name}' not registered. Available sources: {', '.join(_sources)}"
        )
    source: RemoteSource = source_class(**kwargs)
    return source


def list_sources() -> list[str]:
    """List all registered source names."""
    return list(_sources.keys())


def is_source_available(name: str) -> bool:
    """Check if a source is registered under ``name``."""
    return name in _sources
