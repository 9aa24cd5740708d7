"""
dataview - Reactive data views over buffered remote collections.

A DataView presents a filtered, paged projection of a locally buffered
entity collection, tracks per-entity changes against the remote source
of truth, and commits buffered changes back as one batched asynchronous
operation.
"""

__version__ = "0.1.0"

# Re-export core models for convenience
from dataview.core.config.models import DataViewConfig
from dataview.core.dataset import DataSet, Entity, EntityState, LoadMode, Record
from dataview.core.exceptions import (
    BatchCommitError,
    DataViewError,
    EntityNotFoundError,
    EntityStateError,
    PartialBatchFailureError,
    RemoteOperationError,
)
from dataview.core.query import Query
from dataview.core.remote import HttpRemoteSource, MemoryRemoteSource
from dataview.core.view import ChangeReport, CommitResult, DataView, create

__all__ = [
    "BatchCommitError",
    "ChangeReport",
    "CommitResult",
    "DataSet",
    "DataView",
    "DataViewConfig",
    "DataViewError",
    "Entity",
    "EntityNotFoundError",
    "EntityState",
    "EntityStateError",
    "HttpRemoteSource",
    "LoadMode",
    "MemoryRemoteSource",
    "PartialBatchFailureError",
    "Query",
    "Record",
    "RemoteOperationError",
    "create",
    "__version__",
]
