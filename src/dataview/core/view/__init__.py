"""
Data views over buffered data sets.

A DataView composes a data set and a query into a cached reactive
projection, classifies pending changes and commits them as one batch.
"""

from .changes import ChangeReport, classify
from .commit import BatchCommitCoordinator, CommitFailure, CommitResult
from .view import DataView, create

__all__ = [
    "BatchCommitCoordinator",
    "ChangeReport",
    "CommitFailure",
    "CommitResult",
    "DataView",
    "classify",
    "create",
]
