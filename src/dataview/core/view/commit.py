"""
Batch commit of buffered changes.

Replays a ChangeReport against the remote source: one create per added
entity, one update per modified entity and one delete per removed
entity, all in flight at once, joined into a single result.

Writes are not ordered and conflicts between related entities are not
detected. A failed batch is not rolled back: operations that succeeded
stay applied, and their entities are left ``unchanged`` (or discarded,
for deletes), while failed ones keep their prior state and are retried
by the next commit.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Any

from dataview.core.dataset import DataSetProtocol
from dataview.core.exceptions import BatchCommitError, PartialBatchFailureError

from .changes import ChangeReport

logger = logging.getLogger(__name__)


@dataclass
class CommitFailure:
    """One remote operation of a batch that did not succeed."""

    entity: Any
    operation: str
    error: Exception


@dataclass
class CommitResult:
    """
    Outcome of a settled batch commit.

    Attributes:
        created: Entities whose remote create succeeded
        updated: Entities whose remote update succeeded
        removed: Entities whose remote delete succeeded
        failures: Operations that failed
    """

    created: list[Any] = field(default_factory=list)
    updated: list[Any] = field(default_factory=list)
    removed: list[Any] = field(default_factory=list)
    failures: list[CommitFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return len(self.created) + len(self.updated) + len(self.removed)

    @property
    def total(self) -> int:
        return self.succeeded + len(self.failures)

    @property
    def success(self) -> bool:
        return not self.failures

    def summary(self) -> str:
        """Generate a human-readable summary of the result."""
        if self.total == 0:
            return "no changes"

        parts = [
            f"{len(self.created)} created",
            f"{len(self.updated)} updated",
            f"{len(self.removed)} removed",
        ]
        if self.failures:
            parts.append(f"{len(self.failures)} failed")
        return ", ".join(parts)


class BatchCommitCoordinator:
    """
    Turns a change report into concurrent remote operations.

    Example:
        >>> coordinator = BatchCommitCoordinator(data_set)
        >>> result = await coordinator.commit(classify(data_set.all_entities(), data_set.state_of))
        >>> result.summary()
        '1 created, 2 updated, 0 removed'
    """

    def __init__(self, data_set: DataSetProtocol[Any, Any]) -> None:
        self.data_set = data_set

    async def commit(self, report: ChangeReport) -> CommitResult:
        """
        Issue and join every pending operation of ``report``.

        Returns:
            CommitResult when every operation succeeded (including the
            empty batch, which issues no remote call)

        Raises:
            PartialBatchFailureError: If some, but not all, operations failed
            BatchCommitError: If every operation failed
        """
        result = CommitResult()
        if not report.has_changes:
            return result

        operations: list[tuple[str, Any, Awaitable[Any]]] = [
            *(("create", e, self.data_set.remote_create(e)) for e in report.added),
            *(("update", e, self.data_set.remote_update(e)) for e in report.modified),
            *(("delete", e, self.data_set.remote_remove(e)) for e in report.removed),
        ]

        logger.debug("Committing %d operations", len(operations))
        outcomes = await asyncio.gather(
            *(awaitable for _, _, awaitable in operations), return_exceptions=True
        )

        buckets = {"create": result.created, "update": result.updated, "delete": result.removed}
        for (operation, entity, _), outcome in zip(operations, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                result.failures.append(CommitFailure(entity, operation, outcome))
            else:
                buckets[operation].append(entity)

        if result.success:
            logger.info("Batch commit succeeded: %s", result.summary())
            return result

        logger.warning("Batch commit failed: %s", result.summary())
        if result.succeeded:
            raise PartialBatchFailureError(
                f"{len(result.failures)} of {result.total} operations failed", result
            )
        raise BatchCommitError(f"All {result.total} operations failed", result)
