"""
Custom exceptions for dataview.

This module defines the exception hierarchy shared by the data set, the
remote sources and the data view, providing structured error handling
with context preservation.

Exception Hierarchy:
    DataViewError (base)
    ├── ConfigError (invalid configuration)
    ├── EntityNotFoundError (key does not resolve)
    ├── EntityStateError (operation invalid for the entity's state)
    └── RemoteOperationError (a single remote call was rejected)
        └── BatchCommitError (every operation of a batch failed)
            └── PartialBatchFailureError (some, not all, failed)

Example:
    >>> from dataview.core.exceptions import RemoteOperationError
    >>> try:
    ...     await data_set.remote_update(entity)
    ... except RemoteOperationError as e:
    ...     print(f"{e.operation} failed for {e.key}: {e}")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from dataview.core.view.commit import CommitResult


class DataViewError(Exception):
    """
    Base exception for all dataview errors.

    Attributes:
        message: Human-readable error message
        context: Optional dictionary of additional context
    """

    def __init__(self, message: str, **context: object) -> None:
        """
        Initialize a dataview error with message and context.

        Args:
            message: Human-readable error message
            **context: Additional context as keyword arguments
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message


class ConfigError(DataViewError):
    """Invalid or unreadable configuration."""


class EntityNotFoundError(DataViewError):
    """
    Raised when a key does not resolve to an entity.

    Attributes:
        key: The key that was looked up
    """

    def __init__(self, key: Any, message: str | None = None) -> None:
        super().__init__(message or f"Entity not found: {key!r}", key=key)
        self.key = key


class EntityStateError(DataViewError):
    """
    Raised when an operation is not valid for an entity's current state.

    Examples are updating an entity already marked for removal, or passing
    an entity that the data set does not own.
    """


class RemoteOperationError(DataViewError):
    """
    Raised when a single remote operation is rejected.

    Covers rejections by the remote endpoint (non-2xx responses) as well
    as transport failures (timeouts, connection errors).

    Attributes:
        operation: Remote verb that failed (fetch, fetch_one, create, update, delete)
        key: Key of the entity concerned, if any
        status_code: HTTP status code when the endpoint answered, else None
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str = "",
        key: Any = None,
        status_code: int | None = None,
        **context: object,
    ) -> None:
        """
        Initialize a remote operation error.

        Args:
            message: Human-readable error message
            operation: Remote verb that failed
            key: Key of the entity concerned
            status_code: HTTP status code, if any
            **context: Additional context as keyword arguments
        """
        super().__init__(
            message, operation=operation, key=key, status_code=status_code, **context
        )
        self.operation = operation
        self.key = key
        self.status_code = status_code


class BatchCommitError(RemoteOperationError):
    """
    Raised when a batch commit fails as a whole.

    Operations that succeeded are not rolled back. The attached result
    lists what was applied and what failed; callers re-inspect per-entity
    state to decide on a retry.

    Attributes:
        result: CommitResult describing the settled batch
    """

    def __init__(self, message: str, result: CommitResult) -> None:
        super().__init__(message, operation="save_changes")
        self.result = result


class PartialBatchFailureError(BatchCommitError):
    """Raised when at least one, but not every, operation of a batch failed."""


__all__ = [
    "BatchCommitError",
    "ConfigError",
    "DataViewError",
    "EntityNotFoundError",
    "EntityStateError",
    "PartialBatchFailureError",
    "RemoteOperationError",
]
