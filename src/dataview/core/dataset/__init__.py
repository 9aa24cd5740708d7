"""
Entity models and the buffered data set.

This module provides the Entity base model and its change-state tag,
the DataSetProtocol a DataView relies on, and the bundled DataSet that
buffers entities locally on top of a remote source.
"""

from .backend import DataSetProtocol
from .dataset import DataSet
from .models import Entity, EntityState, LoadMode, Record

__all__ = [
    # Models
    "Entity",
    "EntityState",
    "LoadMode",
    "Record",
    # Store
    "DataSet",
    "DataSetProtocol",
]
